"""Time helpers shared across the credential lifecycle."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

# Slash-separated timestamps written by earlier deployments, always UTC.
LEGACY_DATETIME_FORMAT = "%Y/%m/%d %H:%M:%S"


def utcnow() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def expires_in(seconds: float) -> datetime:
    return utcnow() + timedelta(seconds=seconds)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_legacy_datetime(value: Any) -> Any:
    """Convert a legacy ``YYYY/MM/DD HH:MM:SS`` string; pass anything else through."""
    if isinstance(value, str) and "/" in value:
        try:
            parsed = datetime.strptime(value.strip(), LEGACY_DATETIME_FORMAT)
        except ValueError:
            return value
        return parsed.replace(tzinfo=timezone.utc)
    return value


__all__ = [
    "LEGACY_DATETIME_FORMAT",
    "as_utc",
    "expires_in",
    "parse_legacy_datetime",
    "utcnow",
]
