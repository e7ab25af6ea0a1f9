from __future__ import annotations

import re


# Digits with optional leading +, spaces and dashes; 7-15 digits in total.
_PHONE_RE = re.compile(r"^\+?[\d\s-]+$")


def clean_optional_text(v: str | None) -> str | None:
    if v is None:
        return None
    v = str(v).strip()
    return v or None


def normalize_email(v):
    # Runs before EmailStr; blank input becomes None so required fields reject it.
    if not isinstance(v, str):
        return v
    return v.strip().lower() or None


def validate_phone(v: str | None) -> str | None:
    v = clean_optional_text(v)
    if v is None:
        return None
    digits = sum(ch.isdigit() for ch in v)
    if not _PHONE_RE.match(v) or not (7 <= digits <= 15):
        raise ValueError("INVALID_PHONE")
    return v
