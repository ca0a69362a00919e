"""PKCE verifier and S256 challenge helpers."""

from __future__ import annotations

import secrets

from authlib.common.encoding import to_unicode, urlsafe_b64encode
from authlib.oauth2.rfc7636 import create_s256_code_challenge

CHALLENGE_METHOD = "S256"
VERIFIER_BYTES = 32


def new_verifier() -> str:
    """Return a URL-safe, unpadded verifier built from 32 random bytes."""

    return to_unicode(urlsafe_b64encode(secrets.token_bytes(VERIFIER_BYTES)))


def challenge(verifier: str) -> str:
    """Return the unpadded base64url SHA-256 digest of ``verifier``."""

    return create_s256_code_challenge(verifier)


__all__ = ["CHALLENGE_METHOD", "challenge", "new_verifier"]
