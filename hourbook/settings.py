# hourbook/settings.py
from __future__ import annotations

import os


def _normalize_db_url(url: str | None) -> str | None:
    if not url:
        return None
    u = url.strip()

    # Heroku/Render style URLs
    if u.startswith("postgres://"):
        u = u.replace("postgres://", "postgresql+psycopg2://", 1)

    if u.startswith("postgresql://"):
        u = u.replace("postgresql://", "postgresql+psycopg2://", 1)

    return u


class Config:
    # ======================
    # Core
    # ======================
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # ======================
    # Database
    # ======================
    # Priority:
    # 1) SQLALCHEMY_DATABASE_URI (manual override)
    # 2) DATABASE_URL (production)
    # 3) Local sqlite file
    _env_db = _normalize_db_url(os.environ.get("DATABASE_URL"))
    _override_db = _normalize_db_url(os.environ.get("SQLALCHEMY_DATABASE_URI"))

    SQLALCHEMY_DATABASE_URI = _override_db or _env_db or "sqlite:///hourbook.db"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # ======================
    # Tokens / credentials
    # ======================
    JWT_SECRET = os.environ.get("JWT_SECRET") or SECRET_KEY
    JWT_EXPIRES_HOURS = int(os.environ.get("JWT_EXPIRES_HOURS", "168"))
    PASSWORD_MIN_LENGTH = 6

    # 32-byte key as 64 hex chars or 44 base64 chars. Empty = store IBAN in plaintext.
    ENCRYPTION_KEY = os.environ.get("ENCRYPTION_KEY", "")

    # ======================
    # Invoicing
    # ======================
    INVOICE_NUMBER_MAX_RETRIES = 5

    # ======================
    # Flask-Limiter
    # ======================
    RATELIMIT_STORAGE_URI = (
        os.environ.get("LIMITER_STORAGE_URL")
        or os.environ.get("REDIS_URL")
        or "memory://"
    )
    RATELIMIT_HEADERS_ENABLED = True


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SECRET_KEY = "test-secret-key"
    JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"
    ENCRYPTION_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
    RATELIMIT_ENABLED = False
    LOG_LEVEL = "WARNING"
