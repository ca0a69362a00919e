"""Error taxonomy for the credential lifecycle.

Every error carries the HTTP status the request surface renders it with, so
services can raise domain errors without knowing about FastAPI.
"""

from __future__ import annotations


class TokenKeeperError(Exception):
    """Base class for errors rendered as ``{"error": message}``."""

    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ValidationError(TokenKeeperError):
    """Bad input from the caller."""

    status_code = 400


class UnsupportedProvider(ValidationError):
    def __init__(self, provider: object) -> None:
        super().__init__(f"Unsupported provider: {provider}")
        self.provider = provider


class SessionExpired(TokenKeeperError):
    """Pending OAuth state missing, expired or already consumed."""

    status_code = 400


class Unauthorized(TokenKeeperError):
    status_code = 401


class AccountNotFound(TokenKeeperError):
    status_code = 404


class MissingCredentials(AccountNotFound):
    """Account exists but has no refresh token to rotate."""


class SuspendedAccount(TokenKeeperError):
    """Upstream reports the account as banned or locked."""

    status_code = 423


class UpstreamProtocolError(TokenKeeperError):
    """Non-2xx, transport failure or timeout talking to the upstream service."""

    status_code = 500

    def __init__(self, message: str = "", status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ServerMisconfigured(TokenKeeperError):
    status_code = 500


__all__ = [
    "AccountNotFound",
    "MissingCredentials",
    "ServerMisconfigured",
    "SessionExpired",
    "SuspendedAccount",
    "TokenKeeperError",
    "Unauthorized",
    "UnsupportedProvider",
    "UpstreamProtocolError",
    "ValidationError",
]
