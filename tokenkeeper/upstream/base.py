"""Identity backend interface and wire helpers shared by both protocols."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx

from ..core.config import UPSTREAM_TIMEOUT
from ..core.errors import UnsupportedProvider, UpstreamProtocolError
from ..core.time import expires_in
from ..models import SUPPORTED_IDPS, Account

DEFAULT_TOKEN_LIFETIME = 3600

# Session cookie name -> grant field. Body values take precedence.
COOKIE_FIELDS: Dict[str, str] = {
    "AccessToken": "accessToken",
    "RefreshToken": "refreshToken",
    "CsrfToken": "csrfToken",
    "Idp": "idp",
}

TOKEN_FIELDS = ("accessToken", "refreshToken", "csrfToken", "idp", "profileArn", "expiresIn")


@dataclass
class TokenGrant:
    """Token material returned by an exchange or refresh."""

    access_token: Optional[str]
    expires_at: datetime
    refresh_token: Optional[str] = None
    csrf_token: Optional[str] = None
    idp: Optional[str] = None
    profile_arn: Optional[str] = None

    def missing(self, required: Iterable[str]) -> List[str]:
        return [name for name in required if not getattr(self, name)]


@dataclass
class UserInfo:
    email: Optional[str]
    user_id: Optional[str] = None
    status: Optional[str] = None


def user_info_from_usage(usage: Mapping[str, Any]) -> UserInfo:
    """Read the ``userInfo`` block some usage responses embed."""

    info = usage.get("userInfo") or {}
    return UserInfo(email=info.get("email"), user_id=info.get("userId"))


def ensure_idp(idp: Optional[str]) -> str:
    if idp not in SUPPORTED_IDPS:
        raise UnsupportedProvider(idp)
    return idp


def parse_set_cookies(set_cookies: Iterable[str]) -> Dict[str, str]:
    """Map cookie names to values from raw ``Set-Cookie`` header values."""

    values: Dict[str, str] = {}
    for cookie in set_cookies:
        pair = cookie.split(";", 1)[0]
        name, sep, value = pair.partition("=")
        if not sep:
            continue
        values[name.strip()] = value.strip()
    return values


def merge_token_fields(body: Mapping[str, Any], cookies: Mapping[str, str]) -> Dict[str, Any]:
    """Combine body and cookie token fields, preferring the body."""

    merged: Dict[str, Any] = {}
    for cookie_name, field_name in COOKIE_FIELDS.items():
        if cookies.get(cookie_name):
            merged[field_name] = cookies[cookie_name]
    for field_name in TOKEN_FIELDS:
        if body.get(field_name) not in (None, ""):
            merged[field_name] = body[field_name]
    return merged


def grant_from_payload(
    body: Mapping[str, Any], cookies: Optional[Mapping[str, str]] = None
) -> TokenGrant:
    fields = merge_token_fields(body, cookies or {})
    try:
        lifetime = float(fields.get("expiresIn") or DEFAULT_TOKEN_LIFETIME)
    except (TypeError, ValueError):
        lifetime = DEFAULT_TOKEN_LIFETIME
    return TokenGrant(
        access_token=fields.get("accessToken"),
        refresh_token=fields.get("refreshToken"),
        csrf_token=fields.get("csrfToken"),
        idp=fields.get("idp"),
        profile_arn=fields.get("profileArn"),
        expires_at=expires_in(lifetime),
    )


def cookies_from(response: httpx.Response) -> Dict[str, str]:
    return parse_set_cookies(response.headers.get_list("set-cookie"))


async def send(method: str, url: str, *, timeout: float, **kwargs: Any) -> httpx.Response:
    """Issue one upstream request, mapping transport failures to protocol errors."""

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        raise UpstreamProtocolError(f"Upstream request timed out ({url})") from exc
    except httpx.HTTPError as exc:
        raise UpstreamProtocolError(f"Upstream request failed: {exc}") from exc


class IdentityBackend(ABC):
    """Operations the credential lifecycle needs from the upstream service.

    ``required_tokens`` lists the grant fields an authorization-code exchange
    must yield for the account to be usable with this backend.

    ``user_info_in_usage`` marks backends whose user info is the ``userInfo``
    block of the usage response, so callers can skip the second request.
    """

    name: str = ""
    required_tokens: tuple[str, ...] = ("access_token", "refresh_token")
    user_info_in_usage: bool = False

    def __init__(self, redirect_uri: str, timeout: float = UPSTREAM_TIMEOUT) -> None:
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    @abstractmethod
    async def initiate_login(
        self, idp: str, redirect_uri: str, challenge: str, state: str
    ) -> str:
        """Return the URL the user must visit to authorize."""

    @abstractmethod
    async def exchange_token(self, idp: str, code: str, verifier: str, state: str) -> TokenGrant:
        ...

    @abstractmethod
    async def refresh(self, account: Account) -> TokenGrant:
        ...

    @abstractmethod
    async def get_usage(
        self, access_token: str, idp: Optional[str], profile_arn: Optional[str] = None
    ) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def get_user_info(self, access_token: str, idp: Optional[str]) -> UserInfo:
        ...


__all__ = [
    "COOKIE_FIELDS",
    "DEFAULT_TOKEN_LIFETIME",
    "IdentityBackend",
    "TokenGrant",
    "UserInfo",
    "cookies_from",
    "ensure_idp",
    "grant_from_payload",
    "merge_token_fields",
    "parse_set_cookies",
    "send",
    "user_info_from_usage",
]
