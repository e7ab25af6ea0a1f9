from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class DepartmentBase(BaseModel):
    code: str = Field(min_length=1, max_length=40)
    name: str = Field(min_length=1, max_length=200)

    @field_validator("code", "name")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


class DepartmentCreate(DepartmentBase):
    pass


class DepartmentUpdate(BaseModel):
    code: str | None = Field(default=None, max_length=40)
    name: str | None = Field(default=None, max_length=200)


class DepartmentOut(DepartmentBase):
    id: uuid.UUID
    created_at: datetime

    class Config:
        from_attributes = True


class CollegeBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=40)

    @field_validator("code", "name")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


class CollegeCreate(CollegeBase):
    pass


class CollegeUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    code: str | None = Field(default=None, max_length=40)


class CollegeOut(CollegeBase):
    id: uuid.UUID
    created_at: datetime

    class Config:
        from_attributes = True
