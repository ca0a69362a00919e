"""Tests for both account repository layouts."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from tokenkeeper.models import Account
from tokenkeeper.services import MemoryKeyValueStore, create_repository
from tokenkeeper.services.accounts import (
    ACCOUNT_ARRAY_KEY,
    ACCOUNT_KEY_PREFIX,
    ACCOUNT_LIST_KEY,
)


@pytest.fixture(params=["indexed", "array"])
def layout_repo(request):
    store = MemoryKeyValueStore()
    return create_repository(request.param, store), store


def _account(**fields) -> Account:
    fields.setdefault("email", "dev@example.com")
    fields.setdefault("provider", "Google")
    return Account(**fields)


def test_save_get_list_newest_first(layout_repo):
    repo, _ = layout_repo
    first = repo.save(_account(email="one@example.com"))
    second = repo.save(_account(email="two@example.com"))

    assert [a.id for a in repo.list()] == [second.id, first.id]
    assert repo.get(first.id).email == "one@example.com"
    assert repo.get("missing") is None


def test_save_replaces_in_place(layout_repo):
    repo, _ = layout_repo
    first = repo.save(_account(email="one@example.com"))
    repo.save(_account(email="two@example.com"))

    repo.save(first.model_copy(update={"label": "work"}))

    listed = repo.list()
    assert len(listed) == 2
    assert listed[1].id == first.id
    assert listed[1].label == "work"


def test_returned_accounts_are_copies(layout_repo):
    repo, _ = layout_repo
    saved = repo.save(_account())

    loaded = repo.get(saved.id)
    loaded.label = "mutated"

    assert repo.get(saved.id).label is None


def test_upsert_creates_then_merges(layout_repo):
    repo, _ = layout_repo
    created = repo.upsert_by_email_provider(
        _account(access_token="t1", refresh_token="r1", label="keep me")
    )

    merged = repo.upsert_by_email_provider(
        _account(email="DEV@example.com", access_token="t2", refresh_token="r2")
    )

    assert len(repo.list()) == 1
    assert merged.id == created.id
    assert merged.created_at == created.created_at
    assert merged.access_token == "t2"
    assert merged.refresh_token == "r2"
    assert merged.label == "keep me"
    assert merged.updated_at >= created.updated_at


def test_upsert_distinguishes_providers(layout_repo):
    repo, _ = layout_repo
    repo.upsert_by_email_provider(_account(provider="Google"))
    repo.upsert_by_email_provider(_account(provider="Github"))

    assert len(repo.list()) == 2


def test_delete_many_counts_only_existing(layout_repo):
    repo, _ = layout_repo
    a = repo.save(_account(email="a@example.com"))
    b = repo.save(_account(email="b@example.com"))
    c = repo.save(_account(email="c@example.com"))

    assert repo.delete_many([a.id, c.id, "nope"]) == 2
    assert [acc.id for acc in repo.list()] == [b.id]
    assert repo.delete_many(["nope"]) == 0


def test_indexed_layout_keys():
    store = MemoryKeyValueStore()
    repo = create_repository("indexed", store)
    saved = repo.save(_account())

    assert json.loads(store.get(ACCOUNT_LIST_KEY)) == [saved.id]
    stored = json.loads(store.get(f"{ACCOUNT_KEY_PREFIX}{saved.id}"))
    assert stored["email"] == "dev@example.com"
    assert "createdAt" in stored


def test_array_layout_reads_legacy_records():
    store = MemoryKeyValueStore()
    store.put(
        ACCOUNT_ARRAY_KEY,
        json.dumps(
            [
                {
                    "id": "legacy-1",
                    "email": "old@example.com",
                    "provider": "Github",
                    "refreshToken": "r",
                    "addedAt": "2024/01/02 03:04:05",
                    "expiresAt": "2024/01/02 04:04:05",
                }
            ]
        ),
    )
    repo = create_repository("array", store)

    account = repo.get("legacy-1")
    assert account.refresh_token == "r"
    assert account.created_at == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert account.expires_at == datetime(2024, 1, 2, 4, 4, 5, tzinfo=timezone.utc)

    repo.save(account.model_copy(update={"label": "migrated"}))
    stored = json.loads(store.get(ACCOUNT_ARRAY_KEY))[0]
    assert stored["createdAt"].startswith("2024-01-02T03:04:05")
    assert stored["label"] == "migrated"


def test_array_layout_keeps_unreadable_records():
    broken = {"id": "broken-1", "email": None, "expiresAt": "not a date"}
    store = MemoryKeyValueStore()
    store.put(ACCOUNT_ARRAY_KEY, json.dumps([broken]))
    repo = create_repository("array", store)

    assert repo.list() == []
    saved = repo.save(_account())

    assert [a.id for a in repo.list()] == [saved.id]
    assert json.loads(store.get(ACCOUNT_ARRAY_KEY))[1] == broken
    assert repo.delete_many(["broken-1"]) == 1


def test_indexed_layout_skips_unreadable_record():
    store = MemoryKeyValueStore()
    repo = create_repository("indexed", store)
    good = repo.save(_account())
    store.put(ACCOUNT_LIST_KEY, json.dumps(["broken-1", good.id]))
    store.put(f"{ACCOUNT_KEY_PREFIX}broken-1", json.dumps({"id": "broken-1"}))

    assert [a.id for a in repo.list()] == [good.id]
    assert repo.get("broken-1") is None


def test_unknown_layout_rejected():
    with pytest.raises(ValueError):
        create_repository("sharded", MemoryKeyValueStore())
