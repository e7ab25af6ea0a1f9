from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic.aliases import AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=BACKEND_DIR / ".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str

    # Auth
    jwt_secret_key: str = Field(
        validation_alias=AliasChoices("jwt_secret_key", "jwt_secret", "JWT_SECRET_KEY", "JWT_SECRET")
    )
    jwt_algorithm: str = Field(default="HS256", validation_alias=AliasChoices("jwt_algorithm", "JWT_ALGORITHM"))
    access_token_expire_minutes: int = Field(
        default=480,
        validation_alias=AliasChoices("access_token_expire_minutes", "ACCESS_TOKEN_EXPIRE_MINUTES"),
    )
    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=31,
        validation_alias=AliasChoices("bcrypt_rounds", "BCRYPT_ROUNDS"),
    )

    cookie_samesite: str = Field(
        default="lax",
        validation_alias=AliasChoices("cookie_samesite", "COOKIE_SAMESITE"),
    )

    allow_signup: bool = Field(
        default=True,
        validation_alias=AliasChoices("allow_signup", "ALLOW_SIGNUP"),
    )

    # Optional production bootstrap: seed an initial admin account.
    # Only used if BOTH email + password are provided.
    seed_admin_email: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "seed_admin_email",
            "SEED_ADMIN_EMAIL",
            "ADMIN_SEED_EMAIL",
        ),
    )
    seed_admin_password: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "seed_admin_password",
            "SEED_ADMIN_PASSWORD",
            "ADMIN_SEED_PASSWORD",
        ),
    )

    # Hosted auth admin API (Supabase GoTrue). Both must be set to use it;
    # otherwise account management runs against the local users table.
    supabase_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("supabase_url", "SUPABASE_URL"),
    )
    supabase_service_role_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("supabase_service_role_key", "SUPABASE_SERVICE_ROLE_KEY"),
    )
    auth_admin_timeout_seconds: float = Field(
        default=10.0,
        validation_alias=AliasChoices("auth_admin_timeout_seconds", "AUTH_ADMIN_TIMEOUT_SECONDS"),
    )

    # Runtime
    environment: str = Field(default="development", validation_alias=AliasChoices("environment", "ENVIRONMENT"))
    frontend_origin: str = Field(
        default="http://localhost:5173",
        validation_alias=AliasChoices("frontend_origin", "FRONTEND_ORIGIN"),
    )
    institution_name: str = Field(
        default="Hostel Management System",
        validation_alias=AliasChoices("institution_name", "INSTITUTION_NAME"),
    )

    @field_validator("frontend_origin")
    @classmethod
    def _normalize_frontend_origin(cls, v: str) -> str:
        # Starlette CORS expects the Origin to match exactly (no trailing slash).
        return v.strip().rstrip("/")

    @field_validator("cookie_samesite")
    @classmethod
    def _normalize_cookie_samesite(cls, v: str) -> str:
        return (v or "lax").strip().lower()

    @field_validator("seed_admin_email")
    @classmethod
    def _normalize_seed_admin_email(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip().lower()
        return v or None

    @field_validator("seed_admin_password")
    @classmethod
    def _normalize_seed_admin_password(cls, v: str | None) -> str | None:
        if v is None:
            return None
        # Intentionally do not strip whitespace here: passwords can contain spaces.
        return v

    @field_validator("supabase_url")
    @classmethod
    def _normalize_supabase_url(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip().rstrip("/")
        return v or None

    @property
    def is_production(self) -> bool:
        return self.environment.lower().strip() == "production"

    @property
    def hosted_auth_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


settings = Settings()
