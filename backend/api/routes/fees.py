from __future__ import annotations

import logging
import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from core.database import get_db
from models.fee import Fee
from models.student import Student
from schemas.fee import FeeCreate, FeeOut, FeeStatsOut, FeeUpdate, PaymentRequest, RecomputeResult
from services.fees import apply_payment, fee_to_out, recompute_all_statuses, refresh_fee_status
from services.reports import fee_totals


logger = logging.getLogger(__name__)


router = APIRouter()


def _get_fee(db: Session, fee_id: uuid.UUID) -> Fee:
    fee = db.get(Fee, fee_id)
    if fee is None:
        raise HTTPException(status_code=404, detail="FEE_NOT_FOUND")
    return fee


@router.get("/", response_model=list[FeeOut])
def list_fees(
    status: str | None = Query(default=None),
    student_id: uuid.UUID | None = Query(default=None),
    academic_year: str | None = Query(default=None),
    search: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[FeeOut]:
    q = select(Fee).join(Student, Student.id == Fee.student_id)
    if status and status != "all":
        q = q.where(Fee.status == status)
    if student_id is not None:
        q = q.where(Fee.student_id == student_id)
    if academic_year:
        q = q.where(Fee.academic_year == academic_year.strip())
    if search and search.strip():
        needle = f"%{search.strip().lower()}%"
        q = q.where(or_(func.lower(Student.name).like(needle), func.lower(Student.student_id).like(needle)))
    q = q.order_by(Fee.created_at.desc(), Fee.due_date.asc())

    today = date.today()
    return [fee_to_out(f, today=today) for f in db.execute(q).scalars().all()]


@router.get("/stats", response_model=FeeStatsOut)
def fee_stats(db: Session = Depends(get_db)) -> FeeStatsOut:
    billed, collected = fee_totals(db)
    rows = db.execute(select(Fee.status, func.count(Fee.id)).group_by(Fee.status)).all()
    return FeeStatsOut(
        total_amount=round(billed, 2),
        collected=round(collected, 2),
        pending_dues=round(max(0.0, billed - collected), 2),
        by_status={str(s): int(n) for s, n in rows},
    )


@router.post("/recompute-statuses", response_model=RecomputeResult)
def recompute_statuses(db: Session = Depends(get_db)) -> RecomputeResult:
    checked, changed = recompute_all_statuses(db)
    db.commit()
    if changed:
        logger.info("Fee status sweep updated %d of %d fees", changed, checked)
    return RecomputeResult(ok=True, checked=checked, changed=changed)


@router.get("/{fee_id}", response_model=FeeOut)
def get_fee(fee_id: uuid.UUID, db: Session = Depends(get_db)) -> FeeOut:
    return fee_to_out(_get_fee(db, fee_id))


@router.post("/", response_model=FeeOut)
def create_fee(payload: FeeCreate, db: Session = Depends(get_db)) -> FeeOut:
    if db.get(Student, payload.student_id) is None:
        raise HTTPException(status_code=404, detail="STUDENT_NOT_FOUND")

    today = date.today()
    fee = Fee(**payload.model_dump())
    if float(fee.paid_amount or 0) > 0:
        fee.payment_date = today
    else:
        # Nothing collected yet; the method and reference belong to a payment.
        fee.payment_method = None
        fee.transaction_id = None
    refresh_fee_status(fee, today=today)

    db.add(fee)
    db.commit()
    db.refresh(fee)
    return fee_to_out(fee, today=today)


@router.patch("/{fee_id}", response_model=FeeOut)
def update_fee(fee_id: uuid.UUID, payload: FeeUpdate, db: Session = Depends(get_db)) -> FeeOut:
    fee = _get_fee(db, fee_id)
    updates = payload.model_dump(exclude_unset=True)

    for field in ("academic_year", "fee_year", "amount", "paid_amount", "due_date"):
        if field in updates and updates[field] is None:
            raise HTTPException(status_code=400, detail=f"{field.upper()}_REQUIRED")

    for k, v in updates.items():
        setattr(fee, k, v)

    today = date.today()
    refresh_fee_status(fee, today=today)
    db.commit()
    db.refresh(fee)
    return fee_to_out(fee, today=today)


@router.post("/{fee_id}/payments", response_model=FeeOut)
def record_payment(fee_id: uuid.UUID, payload: PaymentRequest, db: Session = Depends(get_db)) -> FeeOut:
    fee = _get_fee(db, fee_id)
    today = date.today()
    apply_payment(
        fee,
        amount=payload.amount,
        payment_method=payload.payment_method,
        transaction_id=payload.transaction_id,
        remarks=payload.remarks,
        today=today,
    )
    db.commit()
    db.refresh(fee)
    logger.info("Recorded payment of %.2f on fee %s (status=%s)", payload.amount, fee.id, fee.status)
    return fee_to_out(fee, today=today)


@router.delete("/{fee_id}")
def delete_fee(fee_id: uuid.UUID, db: Session = Depends(get_db)) -> dict:
    fee = _get_fee(db, fee_id)
    db.delete(fee)
    db.commit()
    return {"ok": True}
