"""OAuth login orchestration: initiate, complete and direct refresh-token import."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, Optional, Tuple
from urllib.parse import parse_qs, urlparse

from ..core.errors import (
    SessionExpired,
    UpstreamProtocolError,
    ValidationError,
)
from ..models import Account, AccountStatus, PendingOAuthSession, Provider
from ..upstream.base import IdentityBackend, UserInfo, user_info_from_usage
from . import pkce
from .accounts import AccountRepository
from .pending import PendingSessionStore

logger = logging.getLogger(__name__)


def infer_provider(email: str) -> Provider:
    """Best guess at the login provider when the caller did not say."""

    lowered = (email or "").lower()
    if "github" in lowered:
        return Provider.GITHUB
    return Provider.GOOGLE


def _query_param(query: Dict[str, list], name: str) -> Optional[str]:
    values = query.get(name) or []
    return values[0] if values and values[0] else None


class OAuthSessionManager:
    """Drives a PKCE login from authorize URL to persisted account."""

    def __init__(
        self,
        backend: IdentityBackend,
        pending: PendingSessionStore,
        accounts: AccountRepository,
    ) -> None:
        self.backend = backend
        self.pending = pending
        self.accounts = accounts

    async def initiate(self, provider: Any) -> Dict[str, str]:
        provider = Provider.parse(provider)
        idp = provider.idp
        verifier = pkce.new_verifier()
        state = str(uuid.uuid4())

        authorize_url = await self.backend.initiate_login(
            idp, self.backend.redirect_uri, pkce.challenge(verifier), state
        )
        self.pending.put(
            state,
            PendingOAuthSession(
                state=state,
                provider=provider.value,
                idp=idp,
                code_verifier=verifier,
            ),
        )
        logger.info("Initiated %s login via %s backend", provider.value, self.backend.name)
        return {"authorizeUrl": authorize_url, "state": state}

    async def _fetch_profile(
        self, access_token: str, idp: Optional[str], profile_arn: Optional[str]
    ) -> Tuple[UserInfo, Dict[str, Any]]:
        if self.backend.user_info_in_usage:
            usage = await self.backend.get_usage(access_token, idp, profile_arn)
            return user_info_from_usage(usage), usage

        user_info, usage = await asyncio.gather(
            self.backend.get_user_info(access_token, idp),
            self.backend.get_usage(access_token, idp, profile_arn),
            return_exceptions=True,
        )
        for outcome in (user_info, usage):
            if isinstance(outcome, BaseException):
                raise outcome
        return user_info, usage

    async def complete(self, callback_url: str) -> Account:
        query = parse_qs(urlparse(callback_url or "").query)
        code = _query_param(query, "code")
        state = _query_param(query, "state")
        if not code or not state:
            raise SessionExpired("Missing code or state")

        pending = self.pending.take(state)
        if pending is None:
            raise SessionExpired("Login state expired")

        grant = await self.backend.exchange_token(
            pending.idp, code, pending.code_verifier, state
        )
        missing = grant.missing(self.backend.required_tokens)
        if missing:
            raise UpstreamProtocolError(
                f"Missing tokens from OAuth response: {', '.join(missing)}"
            )
        idp = grant.idp or pending.idp

        user_info, usage = await self._fetch_profile(grant.access_token, idp, grant.profile_arn)
        if not user_info.email:
            raise ValidationError("Missing email in user info")

        account = self.accounts.upsert_by_email_provider(
            Account(
                email=user_info.email,
                provider=pending.provider,
                idp=idp,
                user_id=user_info.user_id,
                access_token=grant.access_token,
                refresh_token=grant.refresh_token,
                csrf_token=grant.csrf_token,
                expires_at=grant.expires_at,
                profile_arn=grant.profile_arn,
                usage_data=usage or None,
                status=user_info.status or AccountStatus.ACTIVE.value,
            )
        )
        logger.info("Completed %s login for account %s", pending.provider, account.id)
        return account

    async def add_by_refresh_token(
        self, refresh_token: str, provider: Optional[Any] = None
    ) -> Account:
        """Create or update an account from a bare refresh token."""

        if not refresh_token:
            raise ValidationError("Missing refreshToken")

        chosen = Provider.parse(provider) if provider else None
        # Backends only read the refresh token and idp from the seed.
        seed = Account(
            email="",
            refresh_token=refresh_token,
            idp=chosen.idp if chosen else None,
        )
        grant = await self.backend.refresh(seed)
        usage = await self.backend.get_usage(
            grant.access_token, seed.idp, grant.profile_arn
        )
        user_info = user_info_from_usage(usage)
        email = user_info.email
        if not email:
            raise ValidationError("Missing email in usage response")
        chosen = chosen or infer_provider(email)

        account = self.accounts.upsert_by_email_provider(
            Account(
                email=email,
                provider=chosen.value,
                idp=grant.idp or chosen.idp,
                user_id=user_info.user_id,
                access_token=grant.access_token,
                refresh_token=grant.refresh_token or refresh_token,
                csrf_token=grant.csrf_token,
                expires_at=grant.expires_at,
                profile_arn=grant.profile_arn,
                usage_data=usage,
                status=AccountStatus.ACTIVE.value,
            )
        )
        logger.info("Imported account %s from refresh token", account.id)
        return account


__all__ = ["OAuthSessionManager", "infer_provider"]
