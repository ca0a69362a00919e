"""Shared fixtures: in-memory stores and a scriptable identity backend."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from tokenkeeper.app import create_app
from tokenkeeper.core.time import expires_in
from tokenkeeper.models import Account
from tokenkeeper.services import (
    MemoryKeyValueStore,
    OAuthSessionManager,
    PendingSessionStore,
    RefreshEngine,
    create_repository,
)
from tokenkeeper.upstream.base import IdentityBackend, TokenGrant, UserInfo, ensure_idp

APP_SECRET = "test-secret"


class StubBackend(IdentityBackend):
    """In-process backend whose responses tests can script."""

    name = "stub"
    required_tokens = ("access_token", "refresh_token", "csrf_token")

    def __init__(self) -> None:
        super().__init__("https://app.example/signin/oauth", timeout=1)
        self.redirect_url = "https://x/auth"
        self.email: Optional[str] = "a@b.com"
        self.user_status: Optional[str] = None
        self.exchange_overrides: Dict[str, Any] = {}
        self.usage: Dict[str, Any] = {
            "userInfo": {"email": "a@b.com", "userId": "user-1"},
            "usageBreakdownList": [{"usageLimit": 50, "currentUsage": 3}],
        }
        self.usage_error: Optional[Exception] = None
        self.refresh_errors: Dict[str, Exception] = {}
        self.rotate_refresh_token = False
        self.calls: List[tuple] = []
        self._counter = itertools.count(1)

    async def initiate_login(self, idp, redirect_uri, challenge, state):
        ensure_idp(idp)
        self.calls.append(("initiate_login", idp, redirect_uri, challenge, state))
        return self.redirect_url

    async def exchange_token(self, idp, code, verifier, state):
        self.calls.append(("exchange_token", idp, code, verifier, state))
        await asyncio.sleep(0)
        n = next(self._counter)
        fields = {
            "access_token": f"access-{n}",
            "refresh_token": f"refresh-{n}",
            "csrf_token": f"csrf-{n}",
            "idp": idp,
            "profile_arn": None,
        }
        fields.update(self.exchange_overrides)
        return TokenGrant(expires_at=expires_in(3600), **fields)

    async def refresh(self, account):
        self.calls.append(("refresh", account.id))
        if account.refresh_token in self.refresh_errors:
            raise self.refresh_errors[account.refresh_token]
        n = next(self._counter)
        return TokenGrant(
            access_token=f"rotated-{n}",
            refresh_token=f"refresh-rotated-{n}" if self.rotate_refresh_token else None,
            expires_at=expires_in(3600),
        )

    async def get_usage(self, access_token, idp, profile_arn=None):
        self.calls.append(("get_usage", access_token))
        if self.usage_error is not None:
            raise self.usage_error
        return dict(self.usage)

    async def get_user_info(self, access_token, idp):
        self.calls.append(("get_user_info", access_token))
        return UserInfo(email=self.email, user_id="user-1", status=self.user_status)


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def repo(kv):
    return create_repository("indexed", kv)


@pytest.fixture
def pending(kv) -> PendingSessionStore:
    return PendingSessionStore(kv)


@pytest.fixture
def backend() -> StubBackend:
    return StubBackend()


@pytest.fixture
def manager(backend, pending, repo) -> OAuthSessionManager:
    return OAuthSessionManager(backend, pending, repo)


@pytest.fixture
def refresher(backend, repo) -> RefreshEngine:
    return RefreshEngine(backend, repo)


@pytest.fixture
def make_account(repo):
    def _make(**fields: Any) -> Account:
        fields.setdefault("email", "user@example.com")
        fields.setdefault("provider", "Google")
        fields.setdefault("idp", "Google")
        fields.setdefault("access_token", "old-access")
        fields.setdefault("refresh_token", "old-refresh")
        fields.setdefault("csrf_token", "old-csrf")
        return repo.save(Account(**fields))

    return _make


@pytest.fixture
def client(kv, backend) -> TestClient:
    app = create_app(store=kv, backend=backend, app_secret=APP_SECRET, batch_delay=0)
    return TestClient(app)


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {APP_SECRET}"}
