from __future__ import annotations

from api.routes import rooms as room_routes
from models.room import Room
from models.student import Student


def test_create_room_trims_number_and_rejects_duplicates(client):
    resp = client.post("/api/rooms/", json={"room_number": "  G01 ", "capacity": 2, "floor_number": 0})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["room_number"] == "G01"
    assert body["status"] == "available"
    assert body["room_type"] == "standard"

    resp = client.post("/api/rooms/", json={"room_number": "G01", "capacity": 3})
    assert resp.status_code == 409
    assert resp.json()["detail"] == "ROOM_NUMBER_ALREADY_EXISTS"


def test_create_room_rejects_blank_number_and_bad_capacity(client):
    assert client.post("/api/rooms/", json={"room_number": "   "}).status_code == 400
    assert client.post("/api/rooms/", json={"room_number": "X1", "capacity": 0}).status_code == 422
    assert client.post("/api/rooms/", json={"room_number": "X1", "room_type": "suite"}).status_code == 422


def test_list_rooms_includes_occupancy_and_students(client, factory):
    factory.room("102", capacity=2)
    factory.room("101", capacity=3)
    factory.student(name="Asha", room_number="101")

    rooms = client.get("/api/rooms/").json()
    assert [r["room_number"] for r in rooms] == ["101", "102"]
    first = rooms[0]
    assert first["occupancy"] == 1
    assert first["available_slots"] == 2
    assert first["over_capacity"] is False
    assert [s["name"] for s in first["students"]] == ["Asha"]


def test_lowering_capacity_reconciles(client, db, factory):
    room = factory.room("103", capacity=3)
    factory.student(room_number="103")
    factory.student(room_number="103")

    resp = client.patch(f"/api/rooms/{room.id}", json={"capacity": 2})
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "full"

    resp = client.patch(f"/api/rooms/{room.id}", json={"capacity": 4})
    assert resp.json()["status"] == "available"


def test_manual_hold_survives_updates_and_can_be_released(client, factory):
    room = factory.room("104", capacity=1)
    factory.student(room_number="104")

    resp = client.patch(f"/api/rooms/{room.id}", json={"status": "maintenance"})
    assert resp.json()["status"] == "maintenance"

    resp = client.patch(f"/api/rooms/{room.id}", json={"capacity": 3})
    assert resp.json()["status"] == "maintenance"

    available = client.get("/api/rooms/available").json()
    assert available == []

    resp = client.patch(f"/api/rooms/{room.id}", json={"status": "available", "capacity": 1})
    assert resp.json()["status"] == "full"


def test_put_replaces_room(client, factory):
    room = factory.room("105", capacity=2)
    resp = client.put(
        f"/api/rooms/{room.id}",
        json={"room_number": "105", "capacity": 4, "room_type": "deluxe", "amenities": ["AC", "Wi-Fi"]},
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["capacity"] == 4
    assert body["room_type"] == "deluxe"
    assert body["amenities"] == ["AC", "Wi-Fi"]


def test_rename_room_moves_its_students(client, db, factory):
    room = factory.room("106", capacity=2)
    factory.room("107", capacity=2)
    student = factory.student(room_number="106")

    resp = client.patch(f"/api/rooms/{room.id}", json={"room_number": "107"})
    assert resp.status_code == 409

    resp = client.patch(f"/api/rooms/{room.id}", json={"room_number": "106-A"})
    assert resp.status_code == 200, resp.text

    db.expire_all()
    assert db.get(Student, student.id).room_number == "106-A"


def test_delete_room_unassigns_its_students(client, db, factory):
    room = factory.room("108", capacity=3)
    other = factory.room("109", capacity=3)
    a = factory.student(room_number="108")
    b = factory.student(room_number="108")
    c = factory.student(room_number="109")

    resp = client.delete(f"/api/rooms/{room.id}")
    assert resp.status_code == 200, resp.text
    assert resp.json()["students_unassigned"] == 2

    db.expire_all()
    assert db.get(Student, a.id).room_number is None
    assert db.get(Student, b.id).room_number is None
    assert db.get(Student, c.id).room_number == "109"
    assert db.get(Room, other.id) is not None
    assert client.get(f"/api/rooms/{room.id}").status_code == 404


def test_available_rooms_keeps_the_students_current_room(client, factory):
    factory.room("110", capacity=1)
    factory.room("111", capacity=2)
    student = factory.student(room_number="110")

    numbers = [r["room_number"] for r in client.get("/api/rooms/available").json()]
    assert numbers == ["111"]

    numbers = [r["room_number"] for r in client.get(f"/api/rooms/available?student_id={student.id}").json()]
    assert numbers == ["110", "111"]


def test_reconcile_sweep(client, db, factory):
    factory.room("112", capacity=1, status="available")
    factory.room("113", capacity=1, status="full")
    factory.student(room_number="112")

    resp = client.post("/api/rooms/reconcile")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "rooms_checked": 2, "rooms_changed": 2}

    db.expire_all()
    assert {r.room_number: r.status for r in db.query(Room).all()} == {"112": "full", "113": "available"}


def test_rooms_require_authentication(anon_client):
    assert anon_client.get("/api/rooms/").status_code == 401


def test_duplicate_room_number_at_write_time_is_conflict(client, factory, monkeypatch):
    factory.room("G01")

    # Another request inserting the same number after the uniqueness check ran.
    monkeypatch.setattr(room_routes, "_ensure_unique_room_number", lambda *args, **kwargs: None)
    resp = client.post("/api/rooms/", json={"room_number": "G01", "capacity": 2})
    assert resp.status_code == 409
    assert resp.json()["detail"] == "ROOM_NUMBER_ALREADY_EXISTS"
