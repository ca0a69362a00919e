"""Database model backing the keyed store."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field as ORMField, SQLModel


class KeyValueEntry(SQLModel, table=True):
    """One key of the keyed store, optionally expiring."""

    __tablename__ = "kv_entry"

    key: str = ORMField(primary_key=True)
    value: str
    expires_at: Optional[datetime] = ORMField(default=None, index=True)


__all__ = ["KeyValueEntry"]
