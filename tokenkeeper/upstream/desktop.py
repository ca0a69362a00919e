"""Desktop backend: JSON bodies with bearer authentication."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from ..core.config import (
    DESKTOP_AUTH_URL,
    DESKTOP_PROFILE_ARN,
    DESKTOP_REDIRECT_URI,
    DESKTOP_USAGE_URL,
    UPSTREAM_TIMEOUT,
)
from ..core.errors import (
    SuspendedAccount,
    TokenKeeperError,
    UpstreamProtocolError,
    ValidationError,
)
from ..models import Account
from ..services.pkce import CHALLENGE_METHOD
from .base import (
    IdentityBackend,
    TokenGrant,
    UserInfo,
    cookies_from,
    ensure_idp,
    grant_from_payload,
    send,
    user_info_from_usage,
)

logger = logging.getLogger(__name__)

USAGE_ORIGIN = "AI_EDITOR"
JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def classify_error(response: httpx.Response, unauthorized_message: str = "") -> TokenKeeperError:
    """A JSON error body carrying ``reason`` means the account is banned."""

    body = _decode_json(response)
    if isinstance(body, dict) and body.get("reason"):
        return SuspendedAccount(str(body.get("message") or body["reason"]))
    if response.status_code == 401 and unauthorized_message:
        return UpstreamProtocolError(unauthorized_message, status=401)
    message = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("Message") or body.get("error")
    return UpstreamProtocolError(
        str(message) if message else f"Request failed ({response.status_code})",
        status=response.status_code,
    )


class DesktopBackend(IdentityBackend):
    """Desktop auth service plus the usage API, both plain JSON."""

    name = "desktop"
    required_tokens = ("access_token", "refresh_token")
    user_info_in_usage = True

    def __init__(
        self,
        auth_url: str = DESKTOP_AUTH_URL,
        usage_url: str = DESKTOP_USAGE_URL,
        redirect_uri: str = DESKTOP_REDIRECT_URI,
        profile_arn: str = DESKTOP_PROFILE_ARN,
        timeout: float = UPSTREAM_TIMEOUT,
    ) -> None:
        super().__init__(redirect_uri, timeout)
        self.auth_url = auth_url.rstrip("/")
        self.usage_url = usage_url.rstrip("/")
        self.profile_arn = profile_arn

    async def _request(
        self, method: str, url: str, *, unauthorized_message: str = "", **kwargs: Any
    ) -> httpx.Response:
        response = await send(method, url, timeout=self.timeout, **kwargs)
        if not response.is_success:
            logger.warning("%s %s failed with HTTP %s", method, url, response.status_code)
            raise classify_error(response, unauthorized_message)
        return response

    @staticmethod
    def _body(response: httpx.Response) -> Dict[str, Any]:
        body = _decode_json(response)
        if not isinstance(body, dict):
            raise UpstreamProtocolError("Unexpected non-JSON response")
        return body

    async def initiate_login(
        self, idp: str, redirect_uri: str, challenge: str, state: str
    ) -> str:
        ensure_idp(idp)
        params = {
            "idp": idp,
            "redirect_uri": redirect_uri,
            "code_challenge": challenge,
            "code_challenge_method": CHALLENGE_METHOD,
            "state": state,
        }
        return f"{self.auth_url}/login?{urlencode(params)}"

    async def exchange_token(self, idp: str, code: str, verifier: str, state: str) -> TokenGrant:
        ensure_idp(idp)
        response = await self._request(
            "POST",
            f"{self.auth_url}/oauth/token",
            headers=JSON_HEADERS,
            json={"code": code, "code_verifier": verifier, "redirect_uri": self.redirect_uri},
        )
        grant = grant_from_payload(self._body(response), cookies_from(response))
        if not grant.idp:
            grant.idp = idp
        return grant

    async def refresh(self, account: Account) -> TokenGrant:
        if not account.refresh_token:
            raise ValidationError("Missing refresh token")
        response = await self._request(
            "POST",
            f"{self.auth_url}/refreshToken",
            unauthorized_message="Refresh token expired or invalid",
            headers=JSON_HEADERS,
            json={"refreshToken": account.refresh_token},
        )
        grant = grant_from_payload(self._body(response))
        if not grant.access_token:
            raise UpstreamProtocolError("Missing accessToken in refresh response")
        return grant

    async def get_usage(
        self, access_token: str, idp: Optional[str], profile_arn: Optional[str] = None
    ) -> Dict[str, Any]:
        response = await self._request(
            "GET",
            f"{self.usage_url}/getUsageLimits",
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            params={
                "isEmailRequired": "true",
                "origin": USAGE_ORIGIN,
                "profileArn": profile_arn or self.profile_arn,
            },
        )
        return self._body(response)

    async def get_user_info(self, access_token: str, idp: Optional[str]) -> UserInfo:
        return user_info_from_usage(await self.get_usage(access_token, idp))


__all__ = ["DesktopBackend", "classify_error"]
