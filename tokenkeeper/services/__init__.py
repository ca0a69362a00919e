"""Service layer: credential lifecycle components."""

from .accounts import AccountRepository, create_repository
from .kv_store import KeyValueStore, MemoryKeyValueStore, SQLModelKeyValueStore
from .oauth_session import OAuthSessionManager
from .pending import PendingSessionStore
from .refresh import BatchRefreshCoordinator, RefreshEngine

__all__ = [
    "AccountRepository",
    "BatchRefreshCoordinator",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "OAuthSessionManager",
    "PendingSessionStore",
    "RefreshEngine",
    "SQLModelKeyValueStore",
    "create_repository",
]
