"""Token rotation for single accounts and paced batches."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..core.config import BATCH_REFRESH_DELAY, EXPIRY_THRESHOLD_SECONDS
from ..core.errors import AccountNotFound, MissingCredentials, SuspendedAccount
from ..core.time import as_utc, utcnow
from ..models import Account, AccountStatus
from ..upstream.base import IdentityBackend
from .accounts import AccountRepository

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 200


class RefreshEngine:
    """Rotates one account's credentials and optionally re-syncs usage."""

    def __init__(self, backend: IdentityBackend, accounts: AccountRepository) -> None:
        self.backend = backend
        self.accounts = accounts

    async def refresh_by_id(self, account_id: str, sync_usage: bool = False) -> Account:
        account = self.accounts.get(account_id)
        if account is None:
            raise AccountNotFound("Account not found")
        return await self.refresh_one(account, sync_usage)

    async def refresh_one(self, account: Account, sync_usage: bool = False) -> Account:
        if not account.refresh_token:
            raise MissingCredentials("Account not found")

        grant = await self.backend.refresh(account)
        changes: Dict[str, Any] = {
            "access_token": grant.access_token,
            "refresh_token": grant.refresh_token or account.refresh_token,
            "csrf_token": grant.csrf_token or account.csrf_token,
            "profile_arn": grant.profile_arn or account.profile_arn,
            "expires_at": grant.expires_at,
        }

        if sync_usage:
            try:
                usage = await self.backend.get_usage(
                    grant.access_token, account.idp, changes["profile_arn"]
                )
            except SuspendedAccount as exc:
                logger.warning("Account %s reported suspended: %s", account.id, exc.message)
                changes["status"] = AccountStatus.SUSPENDED.value
            else:
                changes["usage_data"] = usage
                changes["status"] = AccountStatus.ACTIVE.value
                user_info = usage.get("userInfo") or {}
                if user_info.get("userId"):
                    changes["user_id"] = user_info["userId"]
        elif not account.status:
            changes["status"] = AccountStatus.ACTIVE.value

        changes["updated_at"] = utcnow()
        updated = account.model_copy(update=changes)
        self.accounts.save(updated)
        logger.info("Refreshed account %s (usage sync: %s)", account.id, sync_usage)
        return updated


@dataclass
class RefreshResult:
    email: str
    success: bool
    message: str


@dataclass
class RefreshProgress:
    current: int
    total: int
    current_email: str
    results: List[RefreshResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "total": self.total,
            "currentEmail": self.current_email,
            "results": [asdict(result) for result in self.results],
        }


@dataclass
class BatchRefreshReport:
    results: List[RefreshResult]
    updated: List[Account]


ProgressCallback = Callable[[RefreshProgress], None]


def is_expiring_soon(account: Account, threshold_seconds: float = EXPIRY_THRESHOLD_SECONDS) -> bool:
    """True when the access token is gone, expired, or inside the threshold."""

    if account.expires_at is None:
        return True
    return as_utc(account.expires_at) - utcnow() < timedelta(seconds=threshold_seconds)


def select_targets(
    accounts: Iterable[Account],
    force_all: bool,
    threshold_seconds: float = EXPIRY_THRESHOLD_SECONDS,
) -> List[Account]:
    accounts = list(accounts)
    if force_all:
        return accounts
    return [
        account
        for account in accounts
        if not account.is_suspended and is_expiring_soon(account, threshold_seconds)
    ]


class BatchRefreshCoordinator:
    """Refreshes accounts one at a time, pausing between upstream calls.

    A failure on one account is recorded in its result and never stops the
    rest of the batch.
    """

    def __init__(
        self,
        engine: RefreshEngine,
        delay_seconds: float = BATCH_REFRESH_DELAY,
        threshold_seconds: float = EXPIRY_THRESHOLD_SECONDS,
    ) -> None:
        self.engine = engine
        self.delay_seconds = delay_seconds
        self.threshold_seconds = threshold_seconds

    async def refresh_many(
        self,
        accounts: Iterable[Account],
        force_all: bool = False,
        on_progress: Optional[ProgressCallback] = None,
        stop_event: Optional[asyncio.Event] = None,
    ) -> BatchRefreshReport:
        targets = select_targets(accounts, force_all, self.threshold_seconds)
        results: List[RefreshResult] = []
        updated: List[Account] = []
        total = len(targets)

        for index, account in enumerate(targets):
            if stop_event is not None and stop_event.is_set():
                logger.info("Batch refresh stopped after %s of %s accounts", index, total)
                break
            if index and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)
            if on_progress:
                on_progress(RefreshProgress(index, total, account.email, list(results)))

            try:
                refreshed = await self.engine.refresh_one(account, sync_usage=False)
            except Exception as exc:
                logger.warning("Batch refresh failed for account %s: %s", account.id, exc)
                results.append(
                    RefreshResult(account.email, False, str(exc)[:MAX_MESSAGE_LENGTH])
                )
            else:
                updated.append(refreshed)
                results.append(RefreshResult(account.email, True, "Token refreshed"))

            if on_progress:
                on_progress(RefreshProgress(index + 1, total, "", list(results)))

        succeeded = sum(1 for result in results if result.success)
        logger.info("Batch refresh finished: %s/%s succeeded", succeeded, total)
        return BatchRefreshReport(results=results, updated=updated)


__all__ = [
    "BatchRefreshCoordinator",
    "BatchRefreshReport",
    "RefreshEngine",
    "RefreshProgress",
    "RefreshResult",
    "is_expiring_soon",
    "select_targets",
]
