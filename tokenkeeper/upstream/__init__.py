"""Upstream identity/usage service backends."""

from __future__ import annotations

from .base import IdentityBackend, TokenGrant, UserInfo
from .desktop import DesktopBackend
from .portal import PortalBackend

BACKENDS = {
    PortalBackend.name: PortalBackend,
    DesktopBackend.name: DesktopBackend,
}


def create_backend(name: str) -> IdentityBackend:
    """Instantiate the configured backend with its environment defaults."""

    try:
        return BACKENDS[name]()
    except KeyError:
        raise ValueError(f"Unknown identity backend: {name}") from None


__all__ = [
    "BACKENDS",
    "DesktopBackend",
    "IdentityBackend",
    "PortalBackend",
    "TokenGrant",
    "UserInfo",
    "create_backend",
]
