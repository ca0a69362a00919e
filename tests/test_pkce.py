"""Tests for PKCE verifier/challenge generation."""

from __future__ import annotations

import base64
import hashlib
import re

from tokenkeeper.services.pkce import CHALLENGE_METHOD, challenge, new_verifier

URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


def test_verifier_is_url_safe_and_unpadded():
    verifier = new_verifier()
    # 32 bytes -> 43 base64url characters without padding
    assert len(verifier) == 43
    assert URL_SAFE.match(verifier)


def test_verifiers_are_random():
    assert len({new_verifier() for _ in range(20)}) == 20


def test_challenge_matches_sha256_base64url():
    verifier = new_verifier()
    expected = (
        base64.urlsafe_b64encode(hashlib.sha256(verifier.encode("ascii")).digest())
        .rstrip(b"=")
        .decode("ascii")
    )
    assert challenge(verifier) == expected
    assert challenge(verifier) == challenge(verifier)


def test_rfc7636_reference_vector():
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_method_is_s256():
    assert CHALLENGE_METHOD == "S256"
