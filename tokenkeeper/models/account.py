"""Credential bundle persisted per upstream identity."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..core.errors import UnsupportedProvider
from ..core.time import parse_legacy_datetime, utcnow


class Provider(str, Enum):
    """User-facing login provider."""

    GOOGLE = "Google"
    GITHUB = "Github"

    @classmethod
    def parse(cls, value: object) -> "Provider":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        raise UnsupportedProvider(value)

    @property
    def idp(self) -> str:
        """Identity provider selector sent upstream."""
        return "Github" if self is Provider.GITHUB else "Google"


SUPPORTED_IDPS = frozenset(provider.idp for provider in Provider)


class AccountStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


def _new_id() -> str:
    return str(uuid.uuid4())


class Account(BaseModel):
    """Durable credential bundle, serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=_new_id)
    email: str
    provider: Optional[str] = None
    idp: Optional[str] = None
    label: Optional[str] = None
    status: Optional[str] = None
    user_id: Optional[str] = None

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    csrf_token: Optional[str] = None
    session_token: Optional[str] = None
    id_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    profile_arn: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    client_id_hash: Optional[str] = None
    region: Optional[str] = None
    sso_session_id: Optional[str] = None

    usage_data: Optional[Dict[str, Any]] = None

    created_at: datetime = Field(
        default_factory=utcnow,
        validation_alias=AliasChoices("createdAt", "addedAt", "created_at"),
        serialization_alias="createdAt",
    )
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at", "updated_at", "expires_at", mode="before")
    @classmethod
    def _accept_legacy_datetime(cls, value: Any) -> Any:
        return parse_legacy_datetime(value)

    @property
    def is_suspended(self) -> bool:
        return self.status == AccountStatus.SUSPENDED.value

    def identity_key(self) -> tuple[str, str]:
        return identity_key(self.email, self.provider)


def identity_key(email: Optional[str], provider: Optional[str]) -> tuple[str, str]:
    """Deduplication key: one account per (email, provider)."""

    return ((email or "").strip().lower(), (provider or "").strip().lower())


def account_to_dict(account: Account) -> Dict[str, Any]:
    """Serialise an account to its API/storage JSON shape."""

    return account.model_dump(mode="json", by_alias=True)


__all__ = [
    "SUPPORTED_IDPS",
    "Account",
    "AccountStatus",
    "Provider",
    "account_to_dict",
    "identity_key",
]
