from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

from schemas.common import clean_optional_text, normalize_email, validate_phone
from schemas.department import DepartmentOut
from schemas.fee import FeeOut


Gender = Literal["male", "female", "other"]
StudentStatus = Literal["active", "inactive"]


class StudentBase(BaseModel):
    student_id: str = Field(min_length=1, max_length=60)
    name: str = Field(min_length=1, max_length=200)
    gender: Gender
    phone: str = Field(min_length=1)
    email: EmailStr | None = None
    parent_name: str = Field(min_length=1, max_length=200)
    parent_phone: str | None = None
    address: str | None = None
    year: int = Field(ge=1, le=4)
    department_id: uuid.UUID
    college: str = Field(min_length=1)
    room_number: str | None = None
    admission_date: date | None = None
    status: StudentStatus = "active"

    @field_validator("student_id", "name", "parent_name", "college")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("REQUIRED")
        return v

    @field_validator("gender", mode="before")
    @classmethod
    def _lower_gender(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, v: str) -> str:
        checked = validate_phone(v)
        if checked is None:
            raise ValueError("REQUIRED")
        return checked

    @field_validator("parent_phone")
    @classmethod
    def _check_parent_phone(cls, v: str | None) -> str | None:
        return validate_phone(v)

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, v):
        return normalize_email(v)

    @field_validator("address", "room_number")
    @classmethod
    def _clean_optional(cls, v: str | None) -> str | None:
        return clean_optional_text(v)


class StudentCreate(StudentBase):
    pass


class StudentUpdate(BaseModel):
    student_id: str | None = Field(default=None, max_length=60)
    name: str | None = Field(default=None, max_length=200)
    gender: Gender | None = None
    phone: str | None = None
    email: EmailStr | None = None
    parent_name: str | None = Field(default=None, max_length=200)
    parent_phone: str | None = None
    address: str | None = None
    year: int | None = Field(default=None, ge=1, le=4)
    department_id: uuid.UUID | None = None
    college: str | None = None
    # Explicit null unassigns the room.
    room_number: str | None = None
    admission_date: date | None = None
    status: StudentStatus | None = None

    @field_validator("gender", mode="before")
    @classmethod
    def _lower_gender(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("phone", "parent_phone")
    @classmethod
    def _check_phone(cls, v: str | None) -> str | None:
        return validate_phone(v)

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, v):
        return normalize_email(v)

    @field_validator("student_id", "name", "parent_name", "college", "address", "room_number")
    @classmethod
    def _clean(cls, v: str | None) -> str | None:
        return clean_optional_text(v)


class StudentOut(BaseModel):
    id: uuid.UUID
    student_id: str
    name: str
    gender: str | None = None
    phone: str | None = None
    email: str | None = None
    parent_name: str | None = None
    parent_phone: str | None = None
    address: str | None = None
    year: int
    department_id: uuid.UUID | None = None
    department_name: str | None = None
    college: str | None = None
    room_number: str | None = None
    admission_date: date
    status: str
    fee_status: str = "No Fees"
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StudentDetailOut(StudentOut):
    department: DepartmentOut | None = None
    fees: list[FeeOut] = Field(default_factory=list)
    total_amount: float = 0.0
    total_paid: float = 0.0
    balance: float = 0.0
