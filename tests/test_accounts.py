from __future__ import annotations

import json

import httpx
from fastapi import Depends

from api.deps import get_account_directory, get_current_user
from core.config import settings
from core.database import get_db
from core.security import verify_password
from main import app
from models.user import User
from services.accounts import AccountDirectory
from services.auth_admin import HostedAuthAdminClient


def test_accounts_require_admin(user_client, anon_client):
    assert user_client.get("/api/accounts/").status_code == 403
    assert anon_client.get("/api/accounts/").status_code == 401


def test_local_account_lifecycle(client, db):
    resp = client.get("/api/accounts/")
    assert resp.status_code == 200
    assert resp.json()["source"] == "local"
    assert [a["email"] for a in resp.json()["accounts"]] == ["admin@example.com"]

    resp = client.post(
        "/api/accounts/",
        json={"email": "Clerk@Example.com", "password": "clerkpass1", "confirm_password": "clerkpass1"},
    )
    assert resp.status_code == 200, resp.text
    account = resp.json()["account"]
    assert account["email"] == "clerk@example.com"
    assert account["email_confirmed_at"] is not None
    account_id = account["id"]

    resp = client.post(
        "/api/accounts/",
        json={"email": "clerk@example.com", "password": "clerkpass1", "confirm_password": "clerkpass1"},
    )
    assert resp.status_code == 409

    resp = client.post(f"/api/accounts/{account_id}/revoke")
    assert resp.json()["account"]["email_confirmed_at"] is None

    resp = client.post(f"/api/accounts/{account_id}/approve")
    assert resp.json()["account"]["email_confirmed_at"] is not None

    resp = client.post(f"/api/accounts/{account_id}/reset-password")
    assert resp.status_code == 200
    new_password = resp.json()["new_password"]
    assert len(new_password) == 10
    db.expire_all()
    user = db.query(User).filter_by(email="clerk@example.com").one()
    assert verify_password(new_password, user.password_hash)

    resp = client.delete(f"/api/accounts/{account_id}")
    assert resp.status_code == 200
    db.expire_all()
    assert db.query(User).filter_by(email="clerk@example.com").count() == 0


def test_create_account_password_mismatch(client):
    resp = client.post(
        "/api/accounts/",
        json={"email": "x@example.com", "password": "password-one", "confirm_password": "password-two"},
    )
    assert resp.status_code == 422
    assert "PASSWORDS_DO_NOT_MATCH" in resp.text


def test_admin_cannot_delete_self(client, admin_user):
    resp = client.delete(f"/api/accounts/{admin_user.id}")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "CANNOT_DELETE_SELF"


def test_unknown_account(client):
    assert client.post("/api/accounts/not-a-uuid/approve").status_code == 404


HOSTED_USERS = [
    {
        "id": "11111111-1111-1111-1111-111111111111",
        "email": "remote@example.com",
        "role": "authenticated",
        "email_confirmed_at": "2024-05-01T10:00:00Z",
        "created_at": "2024-04-30T09:00:00Z",
    }
]


def _use_hosted(handler) -> None:
    transport = httpx.MockTransport(handler)
    hosted = settings.model_copy(
        update={"supabase_url": "https://project.supabase.co", "supabase_service_role_key": "service-key"}
    )

    def _directory(current_user: User = Depends(get_current_user), db=Depends(get_db)) -> AccountDirectory:
        return AccountDirectory(
            db,
            hosted,
            session_key=str(current_user.id),
            client_factory=lambda s: HostedAuthAdminClient(s, transport=transport),
        )

    app.dependency_overrides[get_account_directory] = _directory


def test_hosted_listing_and_create(client):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, request.headers.get("apikey")))
        if request.method == "GET":
            return httpx.Response(200, json={"users": HOSTED_USERS})
        body = json.loads(request.content)
        assert body["email_confirm"] is True
        return httpx.Response(200, json={"id": "22222222-2222-2222-2222-222222222222", "email": body["email"]})

    _use_hosted(handler)

    resp = client.get("/api/accounts/")
    assert resp.status_code == 200, resp.text
    assert resp.json()["source"] == "hosted"
    assert [a["email"] for a in resp.json()["accounts"]] == ["remote@example.com"]

    resp = client.post(
        "/api/accounts/",
        json={"email": "hosted@example.com", "password": "hostedpass", "confirm_password": "hostedpass"},
    )
    assert resp.json()["source"] == "hosted"
    assert resp.json()["account"]["id"] == "22222222-2222-2222-2222-222222222222"

    assert seen == [
        ("GET", "/auth/v1/admin/users", "service-key"),
        ("POST", "/auth/v1/admin/users", "service-key"),
    ]


def test_hosted_forbidden_switches_session_to_local(client, db):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return httpx.Response(403, json={"msg": "User not allowed"})

    _use_hosted(handler)

    resp = client.get("/api/accounts/")
    assert resp.status_code == 200, resp.text
    assert resp.json()["source"] == "local"
    assert [a["email"] for a in resp.json()["accounts"]] == ["admin@example.com"]

    # The session stays local; the hosted API is not tried again.
    resp = client.post(
        "/api/accounts/",
        json={"email": "fallback@example.com", "password": "fallback1", "confirm_password": "fallback1"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["source"] == "local"
    assert calls == ["GET"]
    assert db.query(User).filter_by(email="fallback@example.com").count() == 1


def test_hosted_failure_surfaces_provider_message(client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"msg": "Password should be at least 6 characters"})

    _use_hosted(handler)

    resp = client.post(
        "/api/accounts/",
        json={"email": "weak@example.com", "password": "weakpass1", "confirm_password": "weakpass1"},
    )
    assert resp.status_code == 502
    assert resp.json()["detail"] == {
        "code": "AUTH_PROVIDER_ERROR",
        "message": "Password should be at least 6 characters",
    }


def test_create_account_rejects_blank_or_malformed_email(client, db):
    for email in ("   ", "", "clerk@"):
        resp = client.post(
            "/api/accounts/",
            json={"email": email, "password": "clerkpass1", "confirm_password": "clerkpass1"},
        )
        assert resp.status_code == 422, email
    db.expire_all()
    assert [u.email for u in db.query(User).all()] == ["admin@example.com"]
