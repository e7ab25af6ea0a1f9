from __future__ import annotations

import json
from datetime import date

from services.exports import export_filename, parse_csv, parse_json_rows, rows_to_csv


def test_csv_quotes_commas_quotes_and_newlines():
    rows = [{"name": 'Rao, "Bunty"', "address": "Line 1\nLine 2", "note": None, "tags": ["AC", "Wi-Fi"]}]
    text = rows_to_csv(rows, ["name", "address", "note", "tags"])

    assert text.splitlines()[0] == "name,address,note,tags"
    assert '"Rao, ""Bunty"""' in text
    parsed = parse_csv(text)
    assert parsed == [
        {"name": 'Rao, "Bunty"', "address": "Line 1\nLine 2", "note": None, "tags": json.dumps(["AC", "Wi-Fi"])}
    ]


def test_parse_csv_skips_blank_rows_and_bom():
    text = "\ufeffroom_number,capacity\n101,3\n,\n102,2\n"
    assert parse_csv(text) == [
        {"room_number": "101", "capacity": "3"},
        {"room_number": "102", "capacity": "2"},
    ]


def test_parse_json_rows_accepts_list_or_backup():
    assert parse_json_rows('[{"code": "CS"}]', "departments") == [{"code": "CS"}]
    assert parse_json_rows('{"departments": [{"code": "EE"}], "rooms": []}', "departments") == [{"code": "EE"}]


def test_export_filename():
    assert export_filename("students_export", "csv", today=date(2024, 3, 9)) == "students_export_2024-03-09.csv"


def test_student_export_round_trips_embedded_comma_and_quote(client, factory):
    tricky = 'D\'Souza, Anthony "Tony"'
    factory.student(name=tricky, student_id="RT001", address='12, "Green" Lane')

    resp = client.get("/api/data/export/students")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "students_export_" in resp.headers["content-disposition"]

    rows = parse_csv(resp.text)
    assert len(rows) == 1
    assert rows[0]["name"] == tricky
    assert rows[0]["address"] == '12, "Green" Lane'
    assert rows[0]["student_id"] == "RT001"
    assert rows[0]["room_number"] is None


def test_export_unknown_table(client):
    assert client.get("/api/data/export/users").status_code == 404


def test_backup_contains_every_table(client, factory):
    student = factory.student()
    factory.fee(student, amount=750)
    factory.room("Z1")

    resp = client.get("/api/data/backup")
    assert resp.status_code == 200
    assert "hostel_backup_" in resp.headers["content-disposition"]
    doc = resp.json()
    assert set(doc) == {"departments", "colleges", "rooms", "students", "fees"}
    assert doc["fees"][0]["amount"] == 750
    assert doc["students"][0]["id"] == str(student.id)
    assert doc["rooms"][0]["room_number"] == "Z1"
