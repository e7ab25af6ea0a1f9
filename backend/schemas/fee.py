from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from schemas.common import clean_optional_text


PaymentMethod = Literal["cash", "upi", "bank_transfer"]
FeeStatus = Literal["pending", "partial", "paid", "overdue"]


def _require_transaction_id(method: str | None, transaction_id: str | None, paid: float) -> None:
    if method is not None and method != "cash" and paid > 0 and not transaction_id:
        raise ValueError("TRANSACTION_ID_REQUIRED")


class FeeCreate(BaseModel):
    student_id: uuid.UUID
    academic_year: str = Field(min_length=1, max_length=20)
    fee_year: str = Field(min_length=1, max_length=20)
    amount: float = Field(gt=0)
    paid_amount: float = Field(default=0, ge=0)
    payment_method: PaymentMethod = "cash"
    transaction_id: str | None = None
    due_date: date
    remarks: str | None = None

    @field_validator("transaction_id", "remarks")
    @classmethod
    def _clean(cls, v: str | None) -> str | None:
        return clean_optional_text(v)

    @model_validator(mode="after")
    def _check_transaction_id(self) -> "FeeCreate":
        _require_transaction_id(self.payment_method, self.transaction_id, self.paid_amount)
        return self


class FeeUpdate(BaseModel):
    academic_year: str | None = Field(default=None, min_length=1, max_length=20)
    fee_year: str | None = Field(default=None, min_length=1, max_length=20)
    amount: float | None = Field(default=None, gt=0)
    paid_amount: float | None = Field(default=None, ge=0)
    due_date: date | None = None
    remarks: str | None = None

    @field_validator("remarks")
    @classmethod
    def _clean(cls, v: str | None) -> str | None:
        return clean_optional_text(v)


class PaymentRequest(BaseModel):
    amount: float = Field(gt=0)
    payment_method: PaymentMethod = "cash"
    transaction_id: str | None = None
    remarks: str | None = None

    @field_validator("transaction_id", "remarks")
    @classmethod
    def _clean(cls, v: str | None) -> str | None:
        return clean_optional_text(v)

    @model_validator(mode="after")
    def _check_transaction_id(self) -> "PaymentRequest":
        _require_transaction_id(self.payment_method, self.transaction_id, self.amount)
        return self


class FeeOut(BaseModel):
    id: uuid.UUID
    student_id: uuid.UUID
    student_name: str | None = None
    student_code: str | None = None
    academic_year: str
    fee_year: str
    amount: float
    paid_amount: float
    balance: float = 0.0
    status: FeeStatus
    is_overdue: bool = False
    due_date: date | None = None
    payment_date: date | None = None
    payment_method: str | None = None
    transaction_id: str | None = None
    remarks: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FeeStatsOut(BaseModel):
    total_amount: float = 0.0
    collected: float = 0.0
    pending_dues: float = 0.0
    by_status: dict[str, int] = Field(default_factory=dict)


class RecomputeResult(BaseModel):
    ok: bool = True
    checked: int = 0
    changed: int = 0
