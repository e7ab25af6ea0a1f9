from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from core.config import settings
from core.database import ENGINE, SessionLocal
from core.security import hash_password
from models import Base, User


logger = logging.getLogger(__name__)


def _ensure_schema() -> None:
    # Idempotent: only missing tables are created. Postgres deployments run
    # migrations/001_init_schema.sql, which carries the same constraints.
    Base.metadata.create_all(bind=ENGINE)


def _seed_admin_if_configured(db: Session) -> bool:
    email = (settings.seed_admin_email or "").strip().lower()
    password = settings.seed_admin_password
    if not email or not password:
        return False

    existing = db.execute(select(User).where(func.lower(User.email) == email)).scalar_one_or_none()
    if existing is not None:
        return False

    db.add(
        User(
            email=email,
            password_hash=hash_password(password),
            role="ADMIN",
            is_active=True,
            email_confirmed_at=datetime.now(timezone.utc),
        )
    )
    db.commit()
    logger.warning(
        "Seeded initial admin user from env (email=%r). Change the password after first login.",
        email,
    )
    return True


def bootstrap() -> None:
    """Startup bootstrap: make sure the tables exist and seed the admin account.

    - Creates any missing tables.
    - Optionally seeds an ADMIN user if SEED_ADMIN_EMAIL + SEED_ADMIN_PASSWORD are set.

    Safe to run on every startup.
    """

    _ensure_schema()
    with SessionLocal() as db:
        _seed_admin_if_configured(db)
