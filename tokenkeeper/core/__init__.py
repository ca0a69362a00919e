"""Core configuration and infrastructure helpers."""

from .config import (
    ACCOUNT_STORE_LAYOUT,
    ALLOWED_CORS_ORIGINS,
    APP_SECRET,
    BATCH_REFRESH_DELAY,
    DATABASE_URL,
    EXPIRY_THRESHOLD_SECONDS,
    IDENTITY_BACKEND,
    LOG_LEVEL,
    PENDING_SESSION_TTL,
    UPSTREAM_TIMEOUT,
)
from .database import init_db, make_engine
from .time import utcnow

__all__ = [
    "ACCOUNT_STORE_LAYOUT",
    "ALLOWED_CORS_ORIGINS",
    "APP_SECRET",
    "BATCH_REFRESH_DELAY",
    "DATABASE_URL",
    "EXPIRY_THRESHOLD_SECONDS",
    "IDENTITY_BACKEND",
    "LOG_LEVEL",
    "PENDING_SESSION_TTL",
    "UPSTREAM_TIMEOUT",
    "init_db",
    "make_engine",
    "utcnow",
]
