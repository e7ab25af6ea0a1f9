from __future__ import annotations

import os

# Settings and the engine are built at import time; configure them first.
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = ""
os.environ["SEED_ADMIN_EMAIL"] = ""
os.environ["SEED_ADMIN_PASSWORD"] = ""

from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient

from api.routes.auth import _login_attempts
from core.database import ENGINE, SessionLocal
from core.security import create_access_token, hash_password
from main import app
from models import Base, College, Department, Fee, Room, Student, User
from services.accounts import reset_fallback_sessions
from services.fees import refresh_fee_status


@pytest.fixture(autouse=True)
def _fresh_database():
    Base.metadata.drop_all(bind=ENGINE)
    Base.metadata.create_all(bind=ENGINE)
    _login_attempts.clear()
    reset_fallback_sessions()
    app.dependency_overrides.clear()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


class Factory:
    """Inserts committed rows so API calls in the same test see them."""

    def __init__(self, db) -> None:
        self.db = db
        self._n = 0

    def _next(self) -> int:
        self._n += 1
        return self._n

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, *, email=None, password="password123", role="USER", approved=True, active=True) -> User:
        return self._save(
            User(
                email=email or f"user{self._next()}@example.com",
                password_hash=hash_password(password),
                role=role,
                is_active=active,
                email_confirmed_at=datetime.now(timezone.utc) if approved else None,
            )
        )

    def department(self, *, code=None, name=None) -> Department:
        n = self._next()
        return self._save(Department(code=code or f"D{n}", name=name or f"Department {n}"))

    def college(self, *, name=None, code=None) -> College:
        n = self._next()
        return self._save(College(name=name or f"College {n}", code=code or f"C{n}"))

    def room(self, room_number=None, *, capacity=2, status="available", room_type="standard") -> Room:
        return self._save(
            Room(
                room_number=room_number or f"R{self._next()}",
                capacity=capacity,
                status=status,
                room_type=room_type,
            )
        )

    def student(self, *, name=None, student_id=None, room_number=None, department=None, college=None, year=1, status="active", **extra) -> Student:
        n = self._next()
        department = department or self.department()
        college = college or self.college()
        return self._save(
            Student(
                student_id=student_id or f"STU{n:04d}",
                name=name or f"Student {n}",
                gender="male",
                phone="9876543210",
                parent_name=f"Parent {n}",
                year=year,
                department_id=department.id,
                college=college.name,
                room_number=room_number,
                status=status,
                **extra,
            )
        )

    def fee(self, student: Student, *, amount=1000.0, paid_amount=0.0, due_date=None, academic_year="2024-25", fee_year="Year 1") -> Fee:
        fee = Fee(
            student_id=student.id,
            academic_year=academic_year,
            fee_year=fee_year,
            amount=amount,
            paid_amount=paid_amount,
            due_date=due_date or date.today(),
            payment_method="cash" if paid_amount else None,
            payment_date=date.today() if paid_amount else None,
        )
        refresh_fee_status(fee)
        return self._save(fee)


@pytest.fixture
def factory(db) -> Factory:
    return Factory(db)


@pytest.fixture
def admin_user(factory) -> User:
    return factory.user(email="admin@example.com", role="ADMIN")


def _auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user_id=str(user.id), email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return _auth_headers


@pytest.fixture
def anon_client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def client(admin_user) -> TestClient:
    c = TestClient(app)
    c.headers.update(_auth_headers(admin_user))
    return c


@pytest.fixture
def user_client(factory) -> TestClient:
    user = factory.user(email="staff@example.com")
    c = TestClient(app)
    c.headers.update(_auth_headers(user))
    return c