from __future__ import annotations

from models.college import College
from models.student import Student


def test_department_crud(client):
    resp = client.post("/api/departments/", json={"code": " CS ", "name": "Computer Science"})
    assert resp.status_code == 200, resp.text
    dept = resp.json()
    assert dept["code"] == "CS"

    client.post("/api/departments/", json={"code": "AE", "name": "Aeronautics"})
    assert [d["name"] for d in client.get("/api/departments/").json()] == ["Aeronautics", "Computer Science"]

    resp = client.post("/api/departments/", json={"code": "cs", "name": "Duplicate"})
    assert resp.status_code == 409

    resp = client.patch(f"/api/departments/{dept['id']}", json={"name": "Computer Engineering"})
    assert resp.json()["name"] == "Computer Engineering"

    resp = client.patch(f"/api/departments/{dept['id']}", json={"code": "  "})
    assert resp.status_code == 400


def test_delete_department_nulls_students(client, db, factory):
    dept = factory.department()
    student = factory.student(department=dept)

    resp = client.delete(f"/api/departments/{dept.id}")
    assert resp.status_code == 200
    assert resp.json()["students_affected"] == 1

    db.expire_all()
    assert db.get(Student, student.id).department_id is None


def test_college_crud_and_rename_cascades(client, db, factory):
    resp = client.post("/api/colleges/", json={"name": "Govt. Engineering College", "code": "GEC"})
    assert resp.status_code == 200, resp.text
    college_id = resp.json()["id"]

    assert client.post("/api/colleges/", json={"name": "Other", "code": "gec"}).status_code == 409
    assert client.post("/api/colleges/", json={"name": "govt. engineering college", "code": "X"}).status_code == 409

    student = factory.student(college=db.query(College).filter_by(code="GEC").one())

    resp = client.patch(f"/api/colleges/{college_id}", json={"name": "Government Engineering College"})
    assert resp.status_code == 200, resp.text

    db.expire_all()
    assert db.get(Student, student.id).college == "Government Engineering College"

    resp = client.delete(f"/api/colleges/{college_id}")
    assert resp.json()["students_affected"] == 1
    db.expire_all()
    assert db.get(Student, student.id).college is None


def test_missing_department_or_college(client):
    missing = "00000000-0000-0000-0000-000000000000"
    assert client.patch(f"/api/departments/{missing}", json={"name": "x"}).status_code == 404
    assert client.delete(f"/api/colleges/{missing}").status_code == 404
