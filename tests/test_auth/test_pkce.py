"""Tests for PKCE pair and state generation."""

from __future__ import annotations

import base64
import hashlib
import re

from xapi.auth.pkce import generate_pkce_pair, generate_state


def test_verifier_length_and_charset() -> None:
    verifier, _ = generate_pkce_pair()
    assert 43 <= len(verifier) <= 128
    assert re.fullmatch(r"[A-Za-z0-9\-._~]+", verifier)


def test_challenge_is_s256_of_verifier() -> None:
    verifier, challenge = generate_pkce_pair()
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    assert challenge == expected
    assert "=" not in challenge


def test_pairs_and_states_are_unique() -> None:
    assert generate_pkce_pair() != generate_pkce_pair()
    assert generate_state() != generate_state()
