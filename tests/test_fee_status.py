from __future__ import annotations

from datetime import date, timedelta

import pytest

from models.fee import Fee
from services.fees import derive_fee_status, is_overdue, recompute_all_statuses, summarize_student_fees


TODAY = date(2024, 6, 15)
YESTERDAY = TODAY - timedelta(days=1)
TOMORROW = TODAY + timedelta(days=1)


@pytest.mark.parametrize(
    "amount,paid,due,expected",
    [
        (1000, 0, YESTERDAY, "overdue"),
        (1000, 400, TOMORROW, "partial"),
        (1000, 400, YESTERDAY, "partial"),
        (1000, 1000, YESTERDAY, "paid"),
        (1000, 1200, TOMORROW, "paid"),
        (1000, 0, TOMORROW, "pending"),
        (1000, 0, TODAY, "pending"),
        (1000, 0, None, "pending"),
    ],
)
def test_derive_fee_status(amount, paid, due, expected):
    assert derive_fee_status(amount=amount, paid_amount=paid, due_date=due, today=TODAY) == expected


def test_summarize_student_fees():
    def fee(status):
        return Fee(status=status)

    assert summarize_student_fees([]) == "No Fees"
    assert summarize_student_fees([fee("paid"), fee("paid")]) == "Paid"
    assert summarize_student_fees([fee("paid"), fee("overdue")]) == "Partial"
    assert summarize_student_fees([fee("partial")]) == "Partial"
    assert summarize_student_fees([fee("pending"), fee("overdue")]) == "Pending"


def test_is_overdue_is_read_time():
    fee = Fee(amount=1000, paid_amount=400, due_date=YESTERDAY, status="partial")
    assert is_overdue(fee, today=TODAY) is True
    assert is_overdue(fee, today=YESTERDAY) is False

    fee.paid_amount = 1000
    assert is_overdue(fee, today=TODAY) is False


def _fee_payload(student, **overrides):
    data = {
        "student_id": str(student.id),
        "academic_year": "2024-25",
        "fee_year": "Year 1",
        "amount": 1000,
        "due_date": (date.today() + timedelta(days=10)).isoformat(),
    }
    data.update(overrides)
    return data


def test_create_fee_derives_status(client, factory):
    student = factory.student()

    resp = client.post("/api/fees/", json=_fee_payload(student))
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["status"] == "pending"
    assert body["payment_date"] is None
    assert body["payment_method"] is None
    assert body["balance"] == 1000
    assert body["student_name"] == student.name

    past_due = (date.today() - timedelta(days=1)).isoformat()
    resp = client.post("/api/fees/", json=_fee_payload(student, due_date=past_due))
    assert resp.json()["status"] == "overdue"
    assert resp.json()["is_overdue"] is True

    resp = client.post("/api/fees/", json=_fee_payload(student, paid_amount=400))
    assert resp.json()["status"] == "partial"
    assert resp.json()["payment_date"] == date.today().isoformat()

    resp = client.post(
        "/api/fees/",
        json=_fee_payload(student, paid_amount=1000, payment_method="upi", transaction_id="UPI123"),
    )
    assert resp.json()["status"] == "paid"
    assert resp.json()["transaction_id"] == "UPI123"


def test_create_fee_validation(client, factory):
    student = factory.student()

    assert client.post("/api/fees/", json=_fee_payload(student, amount=0)).status_code == 422
    assert client.post("/api/fees/", json=_fee_payload(student, paid_amount=-1)).status_code == 422

    no_due = _fee_payload(student)
    del no_due["due_date"]
    assert client.post("/api/fees/", json=no_due).status_code == 422

    resp = client.post("/api/fees/", json=_fee_payload(student, paid_amount=500, payment_method="upi"))
    assert resp.status_code == 422
    assert "TRANSACTION_ID_REQUIRED" in resp.text

    resp = client.post("/api/fees/", json=_fee_payload(student, student_id="00000000-0000-0000-0000-000000000000"))
    assert resp.status_code == 404


def test_payments_accumulate_and_update_status(client, factory):
    student = factory.student()
    fee = factory.fee(student, amount=1000, due_date=date.today() - timedelta(days=5))
    assert fee.status == "overdue"

    resp = client.post(f"/api/fees/{fee.id}/payments", json={"amount": 300, "remarks": "first instalment"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["paid_amount"] == 300
    assert body["status"] == "partial"
    assert body["payment_method"] == "cash"
    assert body["payment_date"] == date.today().isoformat()
    assert body["remarks"] == "first instalment"
    assert body["is_overdue"] is True

    resp = client.post(f"/api/fees/{fee.id}/payments", json={"amount": 700, "payment_method": "bank_transfer"})
    assert resp.status_code == 422

    resp = client.post(
        f"/api/fees/{fee.id}/payments",
        json={"amount": 700, "payment_method": "bank_transfer", "transaction_id": "NEFT-9"},
    )
    body = resp.json()
    assert body["paid_amount"] == 1000
    assert body["status"] == "paid"
    assert body["balance"] == 0
    assert body["remarks"] == "first instalment"
    assert body["is_overdue"] is False


def test_edit_fee_recomputes_status(client, factory):
    student = factory.student()
    fee = factory.fee(student, amount=1000, paid_amount=1000)

    resp = client.patch(f"/api/fees/{fee.id}", json={"amount": 1500})
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "partial"

    resp = client.patch(f"/api/fees/{fee.id}", json={"paid_amount": 0, "due_date": "2000-01-01"})
    assert resp.json()["status"] == "overdue"

    resp = client.patch(f"/api/fees/{fee.id}", json={"amount": None})
    assert resp.status_code == 400


def test_list_fees_filters_and_stats(client, factory):
    asha = factory.student(name="Asha Rao", student_id="F001")
    vikram = factory.student(name="Vikram Singh", student_id="F002")
    factory.fee(asha, amount=1000, paid_amount=1000)
    factory.fee(asha, amount=500, paid_amount=0, academic_year="2023-24", due_date=date.today() + timedelta(days=3))
    factory.fee(vikram, amount=800, paid_amount=200)

    assert len(client.get("/api/fees/").json()) == 3
    assert [f["status"] for f in client.get("/api/fees/?status=paid").json()] == ["paid"]
    assert len(client.get(f"/api/fees/?student_id={asha.id}").json()) == 2
    assert len(client.get("/api/fees/?academic_year=2023-24").json()) == 1

    rows = client.get("/api/fees/?search=vikram").json()
    assert [(r["student_name"], r["student_code"], r["balance"]) for r in rows] == [("Vikram Singh", "F002", 600)]

    stats = client.get("/api/fees/stats").json()
    assert stats["total_amount"] == 2300
    assert stats["collected"] == 1200
    assert stats["pending_dues"] == 1100
    assert stats["by_status"] == {"paid": 1, "pending": 1, "partial": 1}


def test_recompute_sweep_catches_time_passing(client, db, factory):
    student = factory.student()
    fee = factory.fee(student, amount=1000, due_date=date.today() + timedelta(days=1))
    assert fee.status == "pending"

    # Time passes; the stored status only moves on writes or the sweep.
    checked, changed = recompute_all_statuses(db, today=date.today() + timedelta(days=5))
    db.rollback()
    assert (checked, changed) == (1, 1)

    db.query(Fee).filter_by(id=fee.id).update({"due_date": date.today() - timedelta(days=1)})
    db.commit()

    listed = client.get("/api/fees/").json()[0]
    assert listed["status"] == "pending"
    assert listed["is_overdue"] is True

    resp = client.post("/api/fees/recompute-statuses")
    assert resp.json() == {"ok": True, "checked": 1, "changed": 1}
    assert client.get(f"/api/fees/{fee.id}").json()["status"] == "overdue"


def test_delete_fee(client, factory):
    student = factory.student()
    fee = factory.fee(student)
    assert client.delete(f"/api/fees/{fee.id}").status_code == 200
    assert client.get(f"/api/fees/{fee.id}").status_code == 404
