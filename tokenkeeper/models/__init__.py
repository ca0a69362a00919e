"""Model exports."""

from .account import (
    SUPPORTED_IDPS,
    Account,
    AccountStatus,
    Provider,
    account_to_dict,
    identity_key,
)
from .kv import KeyValueEntry
from .oauth import PendingOAuthSession

__all__ = [
    "SUPPORTED_IDPS",
    "Account",
    "AccountStatus",
    "KeyValueEntry",
    "PendingOAuthSession",
    "Provider",
    "account_to_dict",
    "identity_key",
]
