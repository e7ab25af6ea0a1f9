from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from schemas.common import normalize_email


AccountSource = Literal["hosted", "local"]


class AccountOut(BaseModel):
    id: str
    email: str | None = None
    role: str | None = None
    email_confirmed_at: datetime | None = None
    last_sign_in_at: datetime | None = None
    created_at: datetime | None = None


class AccountListResponse(BaseModel):
    source: AccountSource
    accounts: list[AccountOut] = Field(default_factory=list)


class AccountCreateRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=256)
    confirm_password: str = Field(min_length=1, max_length=256)

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, v):
        return normalize_email(v)

    @model_validator(mode="after")
    def _passwords_match(self) -> "AccountCreateRequest":
        if self.password != self.confirm_password:
            raise ValueError("PASSWORDS_DO_NOT_MATCH")
        return self


class AccountActionResponse(BaseModel):
    ok: bool = True
    source: AccountSource
    message: str
    account: AccountOut | None = None


class PasswordResetResponse(AccountActionResponse):
    # Shown once to the admin; never stored in clear.
    new_password: str
