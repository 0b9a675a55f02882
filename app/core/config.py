# app/core/config.py
from __future__ import annotations

"""
# Yunoa — Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; explicit where prod needs secrets.
- Robust URL normalization and CSV → list helpers.
- Optional external systems (SMTP/Stripe/media origin) so imports never crash in dev.
- Every tunable of the auth, streaming and billing flows lives here, not in routes.

## Usage
    from app.core.config import settings
"""

import logging
from pathlib import Path
from typing import List, Optional, Literal

from dotenv import load_dotenv
from pydantic import Field, SecretStr, AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)
load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _split_csv(v: str | None) -> list[str]:
    """Split a comma-separated string into a trimmed list (empty-safe)."""
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s and s.strip()]


def _normalize_url_like(v: str | None, *, require_scheme: bool = True) -> str:
    """Normalize to a string URL without trailing slash."""
    s = (v or "").strip()
    if not s:
        return ""
    if require_scheme and not (s.startswith("http://") or s.startswith("https://")):
        s = "https://" + s
    return s.rstrip("/")


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Security:
        - Explicit secret for JWT signing; every token family has its own TTL.
        - Brute-force thresholds for login are configurable per environment.

    Notes:
        - `DATABASE_URI` (when set) wins over the Postgres parts. Tests point it
          at `sqlite+aiosqlite://`.
        - Prefer the string convenience properties when composing URLs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "Yunoa API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENV: Literal["development", "staging", "production"] = "development"
    ENABLE_DOCS: bool = True
    ERROR_LOCALE: Literal["fr", "en"] = "fr"

    # ── Security / JWT ────────────────────────────────────────
    JWT_SECRET_KEY: SecretStr = Field(...)
    JWT_ALGORITHM: Literal["HS256", "HS384", "HS512"] = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(7 * 24 * 60, ge=5, le=30 * 24 * 60)
    PASSWORD_RESET_TOKEN_EXPIRE_MINUTES: int = Field(15, ge=1, le=24 * 60)
    VIDEO_SESSION_EXPIRE_SECONDS: int = Field(4 * 60 * 60, ge=60, le=24 * 60 * 60)
    STREAM_URL_EXPIRE_SECONDS: int = Field(300, ge=30, le=60 * 60)
    AUTH_FAIL_OPEN: bool = False  # revocation check when Redis is down

    # ── Login brute-force protection ─────────────────────────
    LOGIN_MAX_USER_ATTEMPTS: int = Field(5, ge=1)
    LOGIN_USER_BLOCK_SECONDS: int = Field(5 * 60, ge=1)
    LOGIN_MAX_IP_ATTEMPTS: int = Field(10, ge=1)
    LOGIN_IP_BLOCK_SECONDS: int = Field(15 * 60, ge=1)

    # ── Email verification codes ─────────────────────────────
    EMAIL_CODE_TTL_MINUTES: int = Field(10, ge=1, le=24 * 60)

    # ── Redis / Rate limiting ─────────────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"
    DEFAULT_RATE_LIMIT: Optional[str] = None  # e.g., "200/minute"
    RATELIMIT_STORAGE_URI: Optional[str] = None  # read by app.core.limiter; memory:// when unset

    # ── Database ─────────────────────────────────────────────
    DATABASE_URI: Optional[str] = None  # full async DSN override
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = SecretStr("")
    POSTGRES_DB: str = "yunoa"
    DB_POOL_SIZE: int = Field(10, ge=1)
    DB_MAX_OVERFLOW: int = Field(20, ge=0)
    DB_POOL_RECYCLE: int = Field(1800, ge=30)
    DB_ECHO: bool = False

    # ── CORS & Hosts ─────────────────────────────────────────
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = Field(
        default_factory=lambda: ["http://localhost:8000", "http://localhost:5173"]
    )
    FRONTEND_ORIGINS: Optional[str] = None  # CSV
    ALLOW_ORIGINS_REGEX: Optional[str] = None
    ALLOWED_STREAM_ORIGINS: Optional[str] = None  # CSV; Referer/Origin allow-list for HLS

    # ── Streaming / HLS proxy ─────────────────────────────────
    HLS_SESSION_EXPIRE_SECONDS: int = Field(300, ge=30, le=60 * 60)
    HLS_SEGMENT_BYTES: int = Field(10 * 1024 * 1024, ge=64 * 1024)
    HLS_SEGMENT_DURATION: int = Field(10, ge=1, le=60)
    HLS_DEFAULT_SEGMENTS: int = Field(100, ge=1)
    HLS_MAX_SEGMENTS: int = Field(1000, ge=1)
    UPSTREAM_TIMEOUT_SECONDS: float = Field(30.0, gt=0)

    # ── Transcoding ───────────────────────────────────────────
    FFMPEG_BINARY: str = "ffmpeg"
    FFMPEG_TIMEOUT_SECONDS: int = Field(6 * 60 * 60, ge=10)

    # ── Subtitles ─────────────────────────────────────────────
    SUBTITLES_DIR: Path = Path("subtitles")
    SUBTITLE_MAX_BYTES: int = Field(2 * 1024 * 1024, ge=1024)

    # ── Billing (Stripe) ──────────────────────────────────────
    STRIPE_SECRET_KEY: Optional[SecretStr] = None
    STRIPE_WEBHOOK_SECRET: Optional[SecretStr] = None
    STRIPE_API_VERSION: str = "2023-10-16"
    RENEWAL_REMINDERS_ENABLED: bool = False
    RENEWAL_REMINDER_INTERVAL_MINUTES: int = Field(60, ge=1)
    RENEWAL_NOTIFY_BEFORE_DAYS: int = Field(2, ge=1, le=60)

    # ── Security headers (mirrors env used by security middleware) ───────────
    ENABLE_HTTPS_REDIRECT: bool = False
    HSTS_MAX_AGE: int = 0
    REFERRER_POLICY: Optional[str] = "strict-origin-when-cross-origin"

    # ── Email ─────────────────────────────────────────────────
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[SecretStr] = None
    EMAIL_FROM: Optional[str] = None
    EMAIL_FROM_NAME: str = "Yunoa"
    EMAIL_TEMPLATE_DIR: Path = Path("app/templates/emails")
    FRONTEND_URL: AnyHttpUrl = "http://localhost:5173"

    # ── Logging ───────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def _assemble_cors_origins(cls, v: str | List[str]):
        if isinstance(v, str):
            return _split_csv(v)
        return v

    @field_validator("FRONTEND_ORIGINS", "ALLOWED_STREAM_ORIGINS", mode="before")
    @classmethod
    def _normalize_csv(cls, v):
        return None if v is None else ",".join(_split_csv(str(v)))

    # ── Derived / convenience properties ─────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def DATABASE_URL(self) -> str:
        """Sync DSN (Alembic offline mode, scripts)."""
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        """Async SQLAlchemy DSN; `DATABASE_URI` wins when set."""
        if self.DATABASE_URI:
            return self.DATABASE_URI
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def frontend_origins_list(self) -> List[str]:
        """
        Preferred CORS allowlist:
        Priority → FRONTEND_ORIGINS (CSV) → BACKEND_CORS_ORIGINS (typed list).
        """
        if self.FRONTEND_ORIGINS:
            return _split_csv(self.FRONTEND_ORIGINS)
        return [str(u).rstrip("/") for u in (self.BACKEND_CORS_ORIGINS or [])]

    @property
    def stream_origins_list(self) -> List[str]:
        """Origins allowed to pull HLS playlists/segments (CORS list when unset)."""
        if self.ALLOWED_STREAM_ORIGINS:
            return [_normalize_url_like(o) for o in _split_csv(self.ALLOWED_STREAM_ORIGINS)]
        return self.frontend_origins_list

    @property
    def frontend_url_str(self) -> str:
        """`FRONTEND_URL` as a plain string without trailing slash."""
        return _normalize_url_like(str(self.FRONTEND_URL))

    @property
    def stripe_enabled(self) -> bool:
        return bool(self.STRIPE_SECRET_KEY and self.STRIPE_SECRET_KEY.get_secret_value())


# Singleton instance
settings = Settings()
