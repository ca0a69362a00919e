"""Keyed store used by the pending-session store and account repository."""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Callable, Dict, Optional, Protocol, Tuple

from sqlalchemy.engine import Engine
from sqlmodel import Session

from ..core.time import as_utc, utcnow
from ..models import KeyValueEntry


class KeyValueStore(Protocol):
    """Minimal string key/value interface with optional expiry."""

    def get(self, key: str) -> Optional[str]: ...

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None: ...

    def delete(self, key: str) -> None: ...


class SQLModelKeyValueStore:
    """Keyed store persisted in the ``kv_entry`` table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def get(self, key: str) -> Optional[str]:
        with Session(self.engine) as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                return None
            if entry.expires_at is not None and as_utc(entry.expires_at) <= utcnow():
                session.delete(entry)
                session.commit()
                return None
            return entry.value

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        expires_at = utcnow() + timedelta(seconds=ttl_seconds) if ttl_seconds else None
        with Session(self.engine) as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                entry = KeyValueEntry(key=key, value=value, expires_at=expires_at)
            else:
                entry.value = value
                entry.expires_at = expires_at
            session.add(entry)
            session.commit()

    def delete(self, key: str) -> None:
        with Session(self.engine) as session:
            entry = session.get(KeyValueEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()


class MemoryKeyValueStore:
    """Process-local keyed store; ``clock`` returns epoch seconds."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def get(self, key: str) -> Optional[str]:
        item = self._data.get(key)
        if item is None:
            return None
        value, deadline = item
        if deadline is not None and deadline <= self._clock():
            del self._data[key]
            return None
        return value

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        deadline = self._clock() + ttl_seconds if ttl_seconds else None
        self._data[key] = (value, deadline)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


__all__ = ["KeyValueStore", "MemoryKeyValueStore", "SQLModelKeyValueStore"]
