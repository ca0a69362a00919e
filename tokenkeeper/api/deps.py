"""Shared FastAPI dependencies for the API layer."""

from __future__ import annotations

import json
import secrets
from dataclasses import dataclass
from typing import Any, Dict

from fastapi import Request

from ..core.errors import ServerMisconfigured, Unauthorized, ValidationError
from ..services import (
    AccountRepository,
    BatchRefreshCoordinator,
    OAuthSessionManager,
    PendingSessionStore,
    RefreshEngine,
)
from ..upstream import IdentityBackend


@dataclass
class Services:
    """Credential-lifecycle components wired for one application instance."""

    backend: IdentityBackend
    accounts: AccountRepository
    pending: PendingSessionStore
    oauth: OAuthSessionManager
    refresher: RefreshEngine
    batch: BatchRefreshCoordinator


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_app_secret(request: Request) -> None:
    """Compare the bearer credential against the configured application secret."""

    expected = request.app.state.app_secret
    if not expected:
        raise ServerMisconfigured("Server misconfigured: APP_SECRET is missing")

    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized("Unauthorized")
    if not secrets.compare_digest(token.strip().encode(), expected.encode()):
        raise Unauthorized("Unauthorized")


async def json_body(request: Request) -> Dict[str, Any]:
    """Parse an optional JSON object body; empty bodies read as ``{}``."""

    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise ValidationError("Invalid JSON payload") from exc
    if not isinstance(body, dict):
        raise ValidationError("JSON payload must be an object")
    return body


__all__ = ["Services", "get_services", "json_body", "require_app_secret"]
