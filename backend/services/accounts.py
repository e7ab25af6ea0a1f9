from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import Settings
from core.security import generate_reset_password, hash_password
from models.user import User
from schemas.account import AccountOut
from services.auth_admin import AuthAdminError, AuthAdminForbidden, HostedAuthAdminClient


logger = logging.getLogger(__name__)


# Admin sessions whose hosted-auth calls were rejected. Once a session lands
# here it stays on the local users table for the life of the process.
# NOTE: per-worker, like the login rate limiter.
_local_sessions: set[str] = set()


class AccountError(Exception):
    def __init__(self, code: str, *, status_code: int = 400, message: str | None = None) -> None:
        super().__init__(message or code)
        self.code = code
        self.status_code = status_code
        self.message = message


def reset_fallback_sessions() -> None:
    _local_sessions.clear()


def _parse_ts(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _hosted_to_account(user: dict[str, Any]) -> AccountOut:
    return AccountOut(
        id=str(user.get("id")),
        email=user.get("email"),
        role=user.get("role"),
        email_confirmed_at=_parse_ts(user.get("email_confirmed_at")),
        last_sign_in_at=_parse_ts(user.get("last_sign_in_at")),
        created_at=_parse_ts(user.get("created_at")),
    )


def _local_to_account(user: User) -> AccountOut:
    return AccountOut(
        id=str(user.id),
        email=user.email,
        role=user.role,
        email_confirmed_at=user.email_confirmed_at,
        last_sign_in_at=user.last_sign_in_at,
        created_at=user.created_at,
    )


ClientFactory = Callable[[Settings], HostedAuthAdminClient]


class AccountDirectory:
    """Account management against the hosted auth service, with a local fallback.

    The hosted admin API needs the service-role key. When it is not configured
    the local ``users`` table is used directly; when the hosted API answers
    401/403 the calling admin's session is switched to the local table for good
    and the operation is replayed there.
    """

    def __init__(
        self,
        db: Session,
        settings: Settings,
        *,
        session_key: str,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self.session_key = session_key
        self._client_factory = client_factory or HostedAuthAdminClient

    @property
    def source(self) -> str:
        if not self.settings.hosted_auth_configured or self.session_key in _local_sessions:
            return "local"
        return "hosted"

    def _run(self, hosted: Callable[[HostedAuthAdminClient], Any], local: Callable[[], Any]) -> Any:
        if self.source == "local":
            return local()

        try:
            with self._client_factory(self.settings) as client:
                return hosted(client)
        except AuthAdminForbidden as exc:
            logger.warning(
                "Hosted auth admin API rejected session %s (status=%s); switching to local accounts",
                self.session_key,
                exc.status_code,
            )
            _local_sessions.add(self.session_key)
            return local()
        except AuthAdminError as exc:
            raise AccountError("AUTH_PROVIDER_ERROR", status_code=502, message=str(exc)) from exc

    # Local table operations

    def _get_local(self, account_id: str) -> User:
        try:
            user_uuid = uuid.UUID(str(account_id))
        except ValueError:
            raise AccountError("ACCOUNT_NOT_FOUND", status_code=404)
        user = self.db.get(User, user_uuid)
        if user is None:
            raise AccountError("ACCOUNT_NOT_FOUND", status_code=404)
        return user

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise AccountError("EMAIL_TAKEN", status_code=409)

    def _local_list(self) -> list[AccountOut]:
        users = self.db.execute(select(User).order_by(User.created_at.asc(), User.email.asc())).scalars().all()
        return [_local_to_account(u) for u in users]

    def _local_create(self, email: str, password: str) -> AccountOut:
        email = email.strip().lower()
        existing = self.db.execute(select(User.id).where(func.lower(User.email) == email)).first()
        if existing is not None:
            raise AccountError("EMAIL_TAKEN", status_code=409)
        # Accounts created by an admin are approved on creation.
        user = User(
            email=email,
            password_hash=hash_password(password),
            role="USER",
            is_active=True,
            email_confirmed_at=datetime.now(timezone.utc),
        )
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        return _local_to_account(user)

    def _local_set_confirmed(self, account_id: str, confirmed: bool) -> AccountOut:
        user = self._get_local(account_id)
        user.email_confirmed_at = datetime.now(timezone.utc) if confirmed else None
        self._commit()
        self.db.refresh(user)
        return _local_to_account(user)

    def _local_delete(self, account_id: str) -> None:
        user = self._get_local(account_id)
        self.db.delete(user)
        self._commit()

    def _local_reset_password(self, account_id: str, new_password: str) -> AccountOut:
        user = self._get_local(account_id)
        user.password_hash = hash_password(new_password)
        self._commit()
        self.db.refresh(user)
        return _local_to_account(user)

    # Public operations

    def list_accounts(self) -> list[AccountOut]:
        return self._run(
            lambda c: [_hosted_to_account(u) for u in c.list_users()],
            self._local_list,
        )

    def create_account(self, *, email: str, password: str) -> AccountOut:
        return self._run(
            lambda c: _hosted_to_account(c.create_user(email=email, password=password)),
            lambda: self._local_create(email, password),
        )

    def approve_account(self, account_id: str) -> AccountOut:
        return self._run(
            lambda c: _hosted_to_account(c.update_user(account_id, {"email_confirm": True})),
            lambda: self._local_set_confirmed(account_id, True),
        )

    def revoke_account(self, account_id: str) -> AccountOut:
        return self._run(
            lambda c: _hosted_to_account(c.update_user(account_id, {"email_confirm": False})),
            lambda: self._local_set_confirmed(account_id, False),
        )

    def delete_account(self, account_id: str) -> None:
        if account_id == self.session_key:
            raise AccountError("CANNOT_DELETE_SELF", status_code=400)
        self._run(lambda c: c.delete_user(account_id), lambda: self._local_delete(account_id))

    def reset_password(self, account_id: str) -> tuple[AccountOut, str]:
        new_password = generate_reset_password()
        account = self._run(
            lambda c: _hosted_to_account(c.update_user(account_id, {"password": new_password})),
            lambda: self._local_reset_password(account_id, new_password),
        )
        return account, new_password
