from __future__ import annotations

import logging
from typing import Any

import httpx

from core.config import Settings


logger = logging.getLogger(__name__)


class AuthAdminError(RuntimeError):
    """The hosted auth admin API failed for a reason other than authorization."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthAdminForbidden(AuthAdminError):
    """The hosted auth admin API rejected our credentials (401/403)."""


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {resp.status_code}"


class HostedAuthAdminClient:
    """Thin client for the Supabase GoTrue admin endpoints (``/auth/v1/admin/users``)."""

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        if not settings.hosted_auth_configured:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must both be set")
        key = str(settings.supabase_service_role_key)
        self._client = httpx.Client(
            base_url=f"{settings.supabase_url}/auth/v1/admin",
            headers={"apikey": key, "Authorization": f"Bearer {key}"},
            timeout=settings.auth_admin_timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HostedAuthAdminClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise AuthAdminError(f"Auth provider unreachable: {exc}") from exc

        if resp.status_code in (401, 403):
            raise AuthAdminForbidden(_error_message(resp), status_code=resp.status_code)
        if resp.status_code >= 400:
            raise AuthAdminError(_error_message(resp), status_code=resp.status_code)
        if not resp.content:
            return None
        return resp.json()

    def list_users(self) -> list[dict[str, Any]]:
        data = self._request("GET", "/users", params={"per_page": 1000})
        users = data.get("users") if isinstance(data, dict) else data
        return list(users or [])

    def create_user(self, *, email: str, password: str) -> dict[str, Any]:
        return self._request(
            "POST",
            "/users",
            json={"email": email, "password": password, "email_confirm": True},
        )

    def update_user(self, user_id: str, attributes: dict[str, Any]) -> dict[str, Any]:
        return self._request("PUT", f"/users/{user_id}", json=attributes)

    def delete_user(self, user_id: str) -> None:
        self._request("DELETE", f"/users/{user_id}")
