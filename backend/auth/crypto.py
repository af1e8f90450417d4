"""Cryptographic helpers for the authentication subsystem."""

from __future__ import annotations

import base64
import hashlib
import hmac
import os
import secrets
from typing import Optional

# 32 random bytes = 256 bits of entropy per session token.
SESSION_TOKEN_BYTES = 32


def generate_token(length: int = SESSION_TOKEN_BYTES) -> str:
    """Generate a URL-safe random token from ``length`` random bytes."""

    return secrets.token_urlsafe(length)


def tokens_match(expected: Optional[str], presented: Optional[str]) -> bool:
    """Compare two tokens in constant time; a missing token never matches."""

    if not expected or not presented:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), presented.encode("utf-8"))


def generate_pkce_verifier() -> str:
    raw = os.urandom(32)
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def generate_pkce_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
