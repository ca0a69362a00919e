"""Web portal backend: CBOR RPC with session cookies."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Tuple

import cbor2
import httpx

from ..core.config import PORTAL_BASE_URL, PORTAL_REDIRECT_URI, UPSTREAM_TIMEOUT
from ..core.errors import (
    SuspendedAccount,
    TokenKeeperError,
    UpstreamProtocolError,
    ValidationError,
)
from ..models import Account, Provider
from ..services.pkce import CHALLENGE_METHOD
from .base import (
    IdentityBackend,
    TokenGrant,
    UserInfo,
    cookies_from,
    ensure_idp,
    grant_from_payload,
    send,
)

logger = logging.getLogger(__name__)

SERVICE_PATH = "/service/KiroWebPortalService/operation"
CBOR_HEADERS = {
    "Content-Type": "application/cbor",
    "Accept": "application/cbor",
    "smithy-protocol": "rpc-v2-cbor",
}
CLIENT_ORIGIN = "KIRO_IDE"
SUSPENDED_MARKER = "AccountSuspendedException"


def describe_cbor_error(content: bytes, status: int) -> str:
    """Decode an error body, falling back to a status-only message."""

    try:
        decoded = cbor2.loads(content)
    except (cbor2.CBORDecodeError, ValueError):
        return f"Request failed ({status})"
    if isinstance(decoded, str):
        return decoded
    return json.dumps(decoded, default=str)


def classify_error(response: httpx.Response) -> TokenKeeperError:
    message = describe_cbor_error(response.content, response.status_code)
    if response.status_code == 423 or SUSPENDED_MARKER in message:
        return SuspendedAccount(message)
    return UpstreamProtocolError(message, status=response.status_code)


def _session_headers(access_token: str, idp: Optional[str]) -> Dict[str, str]:
    return {
        "authorization": f"Bearer {access_token}",
        "Cookie": f"Idp={idp or Provider.GOOGLE.idp}; AccessToken={access_token}",
    }


class PortalBackend(IdentityBackend):
    """Talks to the web portal's CBOR service; tokens also ride on cookies."""

    name = "portal"
    required_tokens = ("access_token", "refresh_token", "csrf_token")

    def __init__(
        self,
        base_url: str = PORTAL_BASE_URL,
        redirect_uri: str = PORTAL_REDIRECT_URI,
        timeout: float = UPSTREAM_TIMEOUT,
    ) -> None:
        super().__init__(redirect_uri, timeout)
        self.base_url = base_url.rstrip("/")

    def operation_url(self, operation: str) -> str:
        return f"{self.base_url}{SERVICE_PATH}/{operation}"

    async def _call(
        self,
        operation: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Tuple[Any, httpx.Response]:
        response = await send(
            "POST",
            self.operation_url(operation),
            timeout=self.timeout,
            content=cbor2.dumps(payload),
            headers={**CBOR_HEADERS, **(headers or {})},
        )
        if not response.is_success:
            error = classify_error(response)
            logger.warning("%s failed with HTTP %s", operation, response.status_code)
            raise error
        if not response.content:
            return {}, response
        try:
            return cbor2.loads(response.content), response
        except (cbor2.CBORDecodeError, ValueError) as exc:
            raise UpstreamProtocolError(f"Undecodable {operation} response") from exc

    async def _call_map(
        self,
        operation: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Tuple[Dict[str, Any], httpx.Response]:
        data, response = await self._call(operation, payload, headers)
        if not isinstance(data, dict):
            raise UpstreamProtocolError(f"Unexpected {operation} response")
        return data, response

    async def initiate_login(
        self, idp: str, redirect_uri: str, challenge: str, state: str
    ) -> str:
        ensure_idp(idp)
        data, _ = await self._call_map(
            "InitiateLogin",
            {
                "idp": idp,
                "redirectUri": redirect_uri,
                "codeChallenge": challenge,
                "codeChallengeMethod": CHALLENGE_METHOD,
                "state": state,
            },
        )
        redirect_url = data.get("redirectUrl")
        if not redirect_url:
            raise UpstreamProtocolError("Missing redirectUrl")
        return redirect_url

    async def exchange_token(self, idp: str, code: str, verifier: str, state: str) -> TokenGrant:
        ensure_idp(idp)
        data, response = await self._call_map(
            "ExchangeToken",
            {
                "idp": idp,
                "code": code,
                "codeVerifier": verifier,
                "redirectUri": self.redirect_uri,
                "state": state,
            },
        )
        grant = grant_from_payload(data, cookies_from(response))
        if not grant.idp:
            grant.idp = idp
        return grant

    async def refresh(self, account: Account) -> TokenGrant:
        if not account.refresh_token:
            raise ValidationError("Missing refresh token")
        if not account.csrf_token:
            raise ValidationError("Missing csrf token")

        idp = account.idp or Provider.GOOGLE.idp
        cookie = f"RefreshToken={account.refresh_token}; Idp={idp}"
        if account.access_token:
            cookie = f"AccessToken={account.access_token}; {cookie}"
        data, response = await self._call_map(
            "RefreshToken",
            {"csrfToken": account.csrf_token},
            {"x-csrf-token": account.csrf_token, "Cookie": cookie},
        )
        grant = grant_from_payload(data, cookies_from(response))
        if not grant.access_token:
            raise UpstreamProtocolError("Missing accessToken in refresh response")
        return grant

    async def get_user_info(self, access_token: str, idp: Optional[str]) -> UserInfo:
        data, _ = await self._call_map(
            "GetUserInfo", {"origin": CLIENT_ORIGIN}, _session_headers(access_token, idp)
        )
        return UserInfo(
            email=data.get("email"),
            user_id=data.get("userId"),
            status=data.get("status"),
        )

    async def get_usage(
        self, access_token: str, idp: Optional[str], profile_arn: Optional[str] = None
    ) -> Dict[str, Any]:
        data, _ = await self._call_map(
            "GetUserUsageAndLimits",
            {"origin": CLIENT_ORIGIN, "isEmailRequired": True},
            _session_headers(access_token, idp),
        )
        return data


__all__ = ["PortalBackend", "classify_error", "describe_cbor_error"]
