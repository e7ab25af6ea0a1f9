from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.fee import Fee
from schemas.fee import FeeOut


def derive_fee_status(*, amount: float, paid_amount: float, due_date: date | None, today: date | None = None) -> str:
    """Lifecycle state of a fee from its money fields.

    paid >= amount -> paid; some paid -> partial; nothing paid and the due date
    has passed -> overdue; otherwise pending.
    """

    today = today or date.today()
    amount = float(amount or 0)
    paid = float(paid_amount or 0)

    if paid >= amount:
        return "paid"
    if paid > 0:
        return "partial"
    if due_date is not None and due_date < today:
        return "overdue"
    return "pending"


def fee_balance(fee: Fee) -> float:
    return max(0.0, float(fee.amount or 0) - float(fee.paid_amount or 0))


def is_overdue(fee: Fee, *, today: date | None = None) -> bool:
    # Read-time check; independent of the stored status.
    today = today or date.today()
    return fee_balance(fee) > 0 and fee.due_date is not None and fee.due_date < today


def refresh_fee_status(fee: Fee, *, today: date | None = None) -> bool:
    new_status = derive_fee_status(
        amount=fee.amount,
        paid_amount=fee.paid_amount,
        due_date=fee.due_date,
        today=today,
    )
    if new_status == fee.status:
        return False
    fee.status = new_status
    return True


def apply_payment(
    fee: Fee,
    *,
    amount: float,
    payment_method: str,
    transaction_id: str | None,
    remarks: str | None,
    today: date | None = None,
) -> None:
    today = today or date.today()
    fee.paid_amount = round(float(fee.paid_amount or 0) + float(amount), 2)
    fee.payment_method = payment_method
    fee.transaction_id = transaction_id
    fee.payment_date = today
    if remarks is not None:
        fee.remarks = remarks
    refresh_fee_status(fee, today=today)


def recompute_all_statuses(db: Session, *, today: date | None = None) -> tuple[int, int]:
    """Apply the status rule to every fee. Returns ``(checked, changed)``."""

    fees = db.execute(select(Fee)).scalars().all()
    changed = sum(1 for fee in fees if refresh_fee_status(fee, today=today))
    return len(fees), changed


def summarize_student_fees(fees: list[Fee]) -> str:
    """Badge shown next to a student: Paid / Partial / Pending / No Fees."""

    statuses = [f.status for f in fees if f.status]
    if not statuses:
        return "No Fees"
    if all(s == "paid" for s in statuses):
        return "Paid"
    if any(s in ("paid", "partial") for s in statuses):
        return "Partial"
    return "Pending"


def fee_to_out(fee: Fee, *, today: date | None = None) -> FeeOut:
    out = FeeOut.model_validate(fee, from_attributes=True)
    if fee.student is not None:
        out.student_name = fee.student.name
        out.student_code = fee.student.student_id
    out.balance = fee_balance(fee)
    out.is_overdue = is_overdue(fee, today=today)
    return out
