from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.deps import get_current_user
from core.config import settings
from core.database import get_db
from core.security import create_access_token, hash_password, verify_password
from models.user import User
from schemas.auth import LoginRequest, LoginResponse, MeResponse, SignupRequest, SignupResponse


router = APIRouter()

logger = logging.getLogger(__name__)


# Simple in-memory rate limiting for login/signup.
# NOTE: In multi-worker deployments this is per-worker.
_LOGIN_WINDOW_SECONDS = 60
_LOGIN_MAX_ATTEMPTS_PER_KEY = 12
_login_attempts: dict[str, list[float]] = {}


def _rate_limit_key(request: Request, email: str) -> str:
    ip = request.client.host if request.client else "unknown"
    return f"{ip}:{email.lower().strip()}"


def _enforce_login_rate_limit(request: Request, email: str) -> None:
    key = _rate_limit_key(request, email)
    now = time.time()
    history = _login_attempts.get(key, [])
    history = [t for t in history if now - t < _LOGIN_WINDOW_SECONDS]
    history.append(now)
    _login_attempts[key] = history
    if len(history) > _LOGIN_MAX_ATTEMPTS_PER_KEY:
        raise HTTPException(status_code=429, detail="RATE_LIMITED")


def _set_auth_cookie(response: Response, token: str) -> None:
    samesite = (settings.cookie_samesite or "lax").lower().strip()
    if samesite not in {"lax", "strict", "none"}:
        raise HTTPException(status_code=500, detail="INVALID_COOKIE_SAMESITE")
    response.set_cookie(
        key="access_token",
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite=samesite,
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
    )


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> LoginResponse:
    email = str(payload.email or "").strip().lower()
    _enforce_login_rate_limit(request, email)

    ip = request.client.host if request.client else "unknown"

    user = db.execute(select(User).where(func.lower(User.email) == email)).scalar_one_or_none()
    if user is None:
        logger.warning("Login failed (unknown user) ip=%s email=%r", ip, email)
        raise HTTPException(status_code=401, detail="INVALID_CREDENTIALS")

    password = str(payload.password or "")
    password_ok = verify_password(password, user.password_hash)
    if not password_ok and password != password.strip():
        # Common UX issue: copy/paste adds a trailing newline/space.
        password_ok = verify_password(password.strip(), user.password_hash)
        if password_ok:
            logger.warning("Login password had surrounding whitespace; accepted after trimming ip=%s email=%r", ip, email)

    if not password_ok:
        logger.warning("Login failed (bad password) ip=%s email=%r password_len=%d", ip, email, len(password))
        raise HTTPException(status_code=401, detail="INVALID_CREDENTIALS")

    if not user.is_active:
        logger.warning("Login failed (disabled user) ip=%s email=%r", ip, email)
        raise HTTPException(status_code=403, detail="USER_DISABLED")
    if user.email_confirmed_at is None:
        logger.info("Login refused (awaiting approval) ip=%s email=%r", ip, email)
        raise HTTPException(status_code=403, detail="ACCOUNT_NOT_APPROVED")

    user.last_sign_in_at = datetime.now(timezone.utc)
    db.commit()

    token = create_access_token(user_id=str(user.id), email=user.email, role=user.role)
    _set_auth_cookie(response, token)
    return LoginResponse(ok=True, access_token=token)


@router.post("/signup", response_model=SignupResponse)
def signup(
    payload: SignupRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> SignupResponse:
    if settings.is_production and not settings.allow_signup:
        raise HTTPException(status_code=403, detail="SIGNUP_DISABLED")

    email = payload.email
    _enforce_login_rate_limit(request, email)
    ip = request.client.host if request.client else "unknown"

    existing = db.execute(select(User.id).where(func.lower(User.email) == email)).scalar_one_or_none()
    if existing is not None:
        logger.warning("Signup rejected (email taken) ip=%s email=%r", ip, email)
        raise HTTPException(status_code=409, detail="EMAIL_TAKEN")

    # New accounts wait for an admin to approve them (see /api/accounts).
    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        role="USER",
        is_active=True,
        email_confirmed_at=None,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Signup rejected (integrity error) ip=%s email=%r", ip, email)
        raise HTTPException(status_code=409, detail="EMAIL_TAKEN")

    logger.info("Signup success ip=%s email=%r", ip, email)
    return SignupResponse(ok=True, requires_approval=True)


@router.post("/logout")
def logout(response: Response) -> dict[str, Any]:
    response.delete_cookie(key="access_token", path="/")
    return {"ok": True}


@router.get("/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse(
        id=current_user.id,
        email=current_user.email,
        role=current_user.role,
        is_active=current_user.is_active,
        created_at=current_user.created_at,
    )
