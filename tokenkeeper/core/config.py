"""Application settings and environment helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List

from dotenv import load_dotenv

load_dotenv(override=False)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number") from exc


def _env_choice(name: str, default: str, choices: Iterable[str]) -> str:
    value = (os.getenv(name) or default).strip().lower()
    allowed = set(choices)
    if value not in allowed:
        raise RuntimeError(f"{name} must be one of: {', '.join(sorted(allowed))}")
    return value


def _split_csv(raw: str | None) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


# API security ---------------------------------------------------------------
# Checked on first guarded request rather than at import so the app can boot.
APP_SECRET = os.getenv("APP_SECRET") or None


# Deployment choices ---------------------------------------------------------
IDENTITY_BACKEND = _env_choice("IDENTITY_BACKEND", "portal", {"portal", "desktop"})
ACCOUNT_STORE_LAYOUT = _env_choice("ACCOUNT_STORE_LAYOUT", "indexed", {"indexed", "array"})

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{_PROJECT_ROOT / 'data' / 'app.db'}"


# Upstream endpoints ---------------------------------------------------------
PORTAL_BASE_URL = os.getenv("PORTAL_BASE_URL", "https://app.kiro.dev").rstrip("/")
PORTAL_REDIRECT_URI = os.getenv("PORTAL_REDIRECT_URI", "https://app.kiro.dev/signin/oauth")

DESKTOP_AUTH_URL = os.getenv(
    "DESKTOP_AUTH_URL", "https://prod.us-east-1.auth.desktop.kiro.dev"
).rstrip("/")
DESKTOP_USAGE_URL = os.getenv(
    "DESKTOP_USAGE_URL", "https://codewhisperer.us-east-1.amazonaws.com"
).rstrip("/")
DESKTOP_REDIRECT_URI = os.getenv("DESKTOP_REDIRECT_URI", "http://localhost:3128")
DESKTOP_PROFILE_ARN = os.getenv(
    "DESKTOP_PROFILE_ARN",
    "arn:aws:codewhisperer:us-east-1:699475941385:profile/EHGA3GRVQMUK",
)

UPSTREAM_TIMEOUT = _env_float("UPSTREAM_TIMEOUT", 20.0)


# Credential lifecycle policy ------------------------------------------------
PENDING_SESSION_TTL = int(_env_float("PENDING_SESSION_TTL", 600))
BATCH_REFRESH_DELAY = _env_float("BATCH_REFRESH_DELAY", 0.5)
EXPIRY_THRESHOLD_SECONDS = _env_float("EXPIRY_THRESHOLD_SECONDS", 300)


# HTTP surface ---------------------------------------------------------------
_local_dev_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

ALLOWED_CORS_ORIGINS = _unique(
    [
        *_split_csv(os.getenv("ALLOWED_CORS_ORIGINS")),
        *_local_dev_origins,
    ]
)

LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()
RELOAD = _env_bool("RELOAD", False)


__all__ = [
    "ACCOUNT_STORE_LAYOUT",
    "ALLOWED_CORS_ORIGINS",
    "APP_SECRET",
    "BATCH_REFRESH_DELAY",
    "DATABASE_URL",
    "DESKTOP_AUTH_URL",
    "DESKTOP_PROFILE_ARN",
    "DESKTOP_REDIRECT_URI",
    "DESKTOP_USAGE_URL",
    "EXPIRY_THRESHOLD_SECONDS",
    "IDENTITY_BACKEND",
    "LOG_LEVEL",
    "PENDING_SESSION_TTL",
    "PORTAL_BASE_URL",
    "PORTAL_REDIRECT_URI",
    "RELOAD",
    "UPSTREAM_TIMEOUT",
]
