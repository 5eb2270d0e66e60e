"""
Bearer token generation and hashing.

Only the SHA-256 hash of a bearer token is ever stored, so a leaked database
does not yield usable tokens.
"""

from __future__ import annotations

import hashlib
import secrets

from vaultkey.core.errors import ValidationError
from vaultkey.security.constants import TOKEN_LENGTH_BYTES


def generate_token() -> str:
    """Generate a bearer token: 256 random bits as 64 lowercase hex characters."""
    return secrets.token_hex(TOKEN_LENGTH_BYTES)


def hash_token(token: str) -> str:
    """Return the SHA-256 hex digest used as the token's storage key."""
    if not isinstance(token, str):
        raise ValidationError("Token must be a string")
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
