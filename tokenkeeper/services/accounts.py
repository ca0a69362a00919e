"""Account repository over the keyed store.

Two layouts are supported and behave identically through the repository
operations:

* ``indexed``: one ``account:<id>`` key per account plus an ordered id list
  under ``accounts:list``.
* ``array``: the whole collection as one JSON array under ``accounts``.

Both are newest-first. There is no transactional guard around
read-modify-write; concurrent writers are last-write-wins.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..core.time import utcnow
from ..models import Account, account_to_dict, identity_key
from .kv_store import KeyValueStore

logger = logging.getLogger(__name__)

ACCOUNT_KEY_PREFIX = "account:"
ACCOUNT_LIST_KEY = "accounts:list"
ACCOUNT_ARRAY_KEY = "accounts"

_IMMUTABLE_FIELDS = {"id", "created_at"}


def _encode(account: Account) -> str:
    return json.dumps(account_to_dict(account))


def _decode(item: object) -> Optional[Account]:
    try:
        if isinstance(item, str):
            return Account.model_validate_json(item)
        return Account.model_validate(item)
    except PydanticValidationError:
        logger.warning("Skipping unreadable account record")
        return None


def _item_id(item: Any) -> Optional[str]:
    return item.get("id") if isinstance(item, dict) else None


class AccountRepository(ABC):
    """Owner of persisted accounts; callers always receive fresh copies."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    @abstractmethod
    def list(self) -> List[Account]:
        """Return all accounts, newest first."""

    @abstractmethod
    def get(self, account_id: str) -> Optional[Account]:
        ...

    @abstractmethod
    def save(self, account: Account) -> Account:
        """Replace the stored record with the same id, or insert it first."""

    @abstractmethod
    def delete_many(self, ids: Iterable[str]) -> int:
        ...

    def find_by_email_provider(self, email: str, provider: Optional[str]) -> Optional[Account]:
        wanted = identity_key(email, provider)
        for account in self.list():
            if account.identity_key() == wanted:
                return account
        return None

    def upsert_by_email_provider(self, account: Account) -> Account:
        """Create ``account`` or merge it into the record for its (email, provider)."""

        existing = self.find_by_email_provider(account.email, account.provider)
        now = utcnow()
        if existing is None:
            created = account.model_copy(update={"updated_at": now})
            self.save(created)
            logger.info("Stored new account %s (%s)", created.id, created.provider)
            return created

        changes = {
            name: getattr(account, name)
            for name in account.model_fields_set
            if name not in _IMMUTABLE_FIELDS
        }
        changes["updated_at"] = now
        merged = existing.model_copy(update=changes)
        self.save(merged)
        logger.info("Updated account %s (%s)", merged.id, merged.provider)
        return merged


class IndexedAccountRepository(AccountRepository):
    """One key per account plus an ordered id list."""

    def _ids(self) -> List[str]:
        raw = self.store.get(ACCOUNT_LIST_KEY)
        return json.loads(raw) if raw else []

    def _write_ids(self, ids: List[str]) -> None:
        self.store.put(ACCOUNT_LIST_KEY, json.dumps(ids))

    def get(self, account_id: str) -> Optional[Account]:
        raw = self.store.get(f"{ACCOUNT_KEY_PREFIX}{account_id}")
        return _decode(raw) if raw else None

    def list(self) -> List[Account]:
        accounts = []
        for account_id in self._ids():
            account = self.get(account_id)
            if account is not None:
                accounts.append(account)
        return accounts

    def save(self, account: Account) -> Account:
        ids = self._ids()
        if account.id not in ids:
            ids.insert(0, account.id)
            self._write_ids(ids)
        self.store.put(f"{ACCOUNT_KEY_PREFIX}{account.id}", _encode(account))
        return account

    def delete_many(self, ids: Iterable[str]) -> int:
        targets = set(ids)
        current = self._ids()
        remaining = [account_id for account_id in current if account_id not in targets]
        deleted = len(current) - len(remaining)
        if deleted:
            self._write_ids(remaining)
        for account_id in targets:
            self.store.delete(f"{ACCOUNT_KEY_PREFIX}{account_id}")
        return deleted


class ArrayAccountRepository(AccountRepository):
    """The full collection stored as a single JSON array.

    Writes operate on the raw items so records that fail to decode are
    carried along untouched.
    """

    def _items(self) -> List[Any]:
        raw = self.store.get(ACCOUNT_ARRAY_KEY)
        items = json.loads(raw) if raw else []
        return items if isinstance(items, list) else []

    def _write(self, items: List[Any]) -> None:
        self.store.put(ACCOUNT_ARRAY_KEY, json.dumps(items))

    def list(self) -> List[Account]:
        accounts = (_decode(item) for item in self._items())
        return [account for account in accounts if account is not None]

    def get(self, account_id: str) -> Optional[Account]:
        return next((item for item in self.list() if item.id == account_id), None)

    def save(self, account: Account) -> Account:
        items = self._items()
        encoded = account_to_dict(account)
        for idx, item in enumerate(items):
            if _item_id(item) == account.id:
                items[idx] = encoded
                break
        else:
            items.insert(0, encoded)
        self._write(items)
        return account

    def delete_many(self, ids: Iterable[str]) -> int:
        targets = set(ids)
        items = self._items()
        remaining = [item for item in items if _item_id(item) not in targets]
        if len(remaining) != len(items):
            self._write(remaining)
        return len(items) - len(remaining)


def create_repository(layout: str, store: KeyValueStore) -> AccountRepository:
    if layout == "indexed":
        return IndexedAccountRepository(store)
    if layout == "array":
        return ArrayAccountRepository(store)
    raise ValueError(f"Unknown account store layout: {layout}")


__all__ = [
    "ACCOUNT_ARRAY_KEY",
    "ACCOUNT_KEY_PREFIX",
    "ACCOUNT_LIST_KEY",
    "AccountRepository",
    "ArrayAccountRepository",
    "IndexedAccountRepository",
    "create_repository",
]
