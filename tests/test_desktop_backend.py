"""Tests for the JSON desktop backend against a mocked upstream."""

from __future__ import annotations

import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
import respx

from tokenkeeper.core.errors import SuspendedAccount, UpstreamProtocolError
from tokenkeeper.models import Account
from tokenkeeper.upstream import DesktopBackend

AUTH = "https://auth.test"
USAGE = "https://usage.test"


@pytest.fixture
def desktop() -> DesktopBackend:
    return DesktopBackend(
        auth_url=AUTH,
        usage_url=USAGE,
        redirect_uri="http://localhost:3128",
        profile_arn="arn:default",
        timeout=5,
    )


@pytest.mark.asyncio
async def test_initiate_login_builds_authorize_url(desktop):
    url = await desktop.initiate_login("Github", desktop.redirect_uri, "chal", "state-1")

    parsed = urlparse(url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == f"{AUTH}/login"
    query = {key: values[0] for key, values in parse_qs(parsed.query).items()}
    assert query == {
        "idp": "Github",
        "redirect_uri": "http://localhost:3128",
        "code_challenge": "chal",
        "code_challenge_method": "S256",
        "state": "state-1",
    }


@pytest.mark.asyncio
@respx.mock
async def test_exchange_posts_verifier(desktop):
    route = respx.post(f"{AUTH}/oauth/token").mock(
        return_value=httpx.Response(
            200,
            json={
                "accessToken": "a",
                "refreshToken": "r",
                "profileArn": "arn:user",
                "expiresIn": 1800,
            },
        )
    )

    grant = await desktop.exchange_token("Google", "code-1", "verifier-1", "state-1")

    assert (grant.access_token, grant.refresh_token, grant.profile_arn) == ("a", "r", "arn:user")
    assert grant.idp == "Google"
    assert json.loads(route.calls.last.request.content) == {
        "code": "code-1",
        "code_verifier": "verifier-1",
        "redirect_uri": "http://localhost:3128",
    }


@pytest.mark.asyncio
@respx.mock
async def test_refresh_rotates_tokens(desktop):
    route = respx.post(f"{AUTH}/refreshToken").mock(
        return_value=httpx.Response(200, json={"accessToken": "a2", "refreshToken": "r2"})
    )

    grant = await desktop.refresh(Account(email="a@b.com", refresh_token="r1"))

    assert (grant.access_token, grant.refresh_token) == ("a2", "r2")
    assert json.loads(route.calls.last.request.content) == {"refreshToken": "r1"}


@pytest.mark.asyncio
@respx.mock
async def test_refresh_unauthorized_message(desktop):
    respx.post(f"{AUTH}/refreshToken").mock(return_value=httpx.Response(401, json={}))

    with pytest.raises(UpstreamProtocolError) as info:
        await desktop.refresh(Account(email="a@b.com", refresh_token="r1"))
    assert info.value.message == "Refresh token expired or invalid"
    assert info.value.status == 401


@pytest.mark.asyncio
@respx.mock
async def test_usage_reason_means_suspended(desktop):
    respx.get(f"{USAGE}/getUsageLimits").mock(
        return_value=httpx.Response(
            403, json={"reason": "TEMPORARILY_SUSPENDED", "message": "Account suspended"}
        )
    )

    with pytest.raises(SuspendedAccount, match="Account suspended"):
        await desktop.get_usage("access", "Google")


@pytest.mark.asyncio
@respx.mock
async def test_plain_error_uses_body_message(desktop):
    respx.get(f"{USAGE}/getUsageLimits").mock(
        return_value=httpx.Response(500, json={"Message": "boom"})
    )

    with pytest.raises(UpstreamProtocolError, match="boom"):
        await desktop.get_usage("access", "Google")


@pytest.mark.asyncio
@respx.mock
async def test_usage_query_and_user_info(desktop):
    route = respx.get(f"{USAGE}/getUsageLimits").mock(
        return_value=httpx.Response(
            200, json={"userInfo": {"email": "a@b.com", "userId": "u-1"}, "limits": []}
        )
    )

    usage = await desktop.get_usage("access", "Google", "arn:user")
    info = await desktop.get_user_info("access", "Google")

    assert usage["limits"] == []
    assert (info.email, info.user_id) == ("a@b.com", "u-1")
    first, second = route.calls
    assert first.request.headers["authorization"] == "Bearer access"
    assert first.request.url.params["profileArn"] == "arn:user"
    assert first.request.url.params["origin"] == "AI_EDITOR"
    assert first.request.url.params["isEmailRequired"] == "true"
    assert second.request.url.params["profileArn"] == "arn:default"
