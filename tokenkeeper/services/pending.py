"""Short-lived storage for OAuth attempts awaiting their callback."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from ..core.config import PENDING_SESSION_TTL
from ..models import PendingOAuthSession
from .kv_store import KeyValueStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "oauth:"


def _key(state: str) -> str:
    return f"{KEY_PREFIX}{state}"


class PendingSessionStore:
    """Write-once, read-once records keyed by the opaque OAuth ``state``."""

    def __init__(self, store: KeyValueStore, ttl_seconds: int = PENDING_SESSION_TTL) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds

    def put(
        self, state: str, session: PendingOAuthSession, ttl_seconds: Optional[int] = None
    ) -> None:
        self.store.put(
            _key(state),
            session.model_dump_json(by_alias=True),
            ttl_seconds=ttl_seconds or self.ttl_seconds,
        )

    def get(self, state: str) -> Optional[PendingOAuthSession]:
        raw = self.store.get(_key(state))
        if raw is None:
            return None
        try:
            return PendingOAuthSession.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("Discarding unreadable pending OAuth session")
            self.store.delete(_key(state))
            return None

    def take(self, state: str) -> Optional[PendingOAuthSession]:
        """Read and remove the session so a ``state`` can only be redeemed once."""

        session = self.get(state)
        if session is not None:
            self.delete(state)
        return session

    def delete(self, state: str) -> None:
        self.store.delete(_key(state))


__all__ = ["KEY_PREFIX", "PendingSessionStore"]
