"""
Validation Utilities
====================

Checks for user-supplied identifiers and key material. Every failure raises
``ValidationError``.
"""

from __future__ import annotations

import re
from typing import Final, Pattern

from vaultkey.core.errors import ValidationError
from vaultkey.security.constants import (
    MASTER_KEY_HEX_LENGTH,
    MAX_KEY_LENGTH,
    MAX_USER_ID_LENGTH,
    TOKEN_HEX_LENGTH,
)

_KEY_PATTERN: Final[Pattern[str]] = re.compile(r"[a-zA-Z0-9_\-./]+")
_USER_ID_PATTERN: Final[Pattern[str]] = re.compile(r"[a-zA-Z0-9_\-.@]+")
_HEX_PATTERN: Final[Pattern[str]] = re.compile(r"[a-f0-9]+")


def validate_string_safe(
    value: str,
    min_length: int = 0,
    max_length: int = 1000,
    allow_empty: bool = False,
    field_name: str = "value",
) -> str:
    """
    Check type, length bounds and absence of NUL bytes.

    ``field_name`` is used as the subject of error messages, e.g.
    "Key name cannot be empty". Returns ``value`` unchanged.
    """
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")

    if not allow_empty and not value:
        raise ValidationError(f"{field_name} cannot be empty")

    if len(value) < min_length:
        raise ValidationError(
            f"{field_name} must be at least {min_length} characters"
        )

    if len(value) > max_length:
        raise ValidationError(
            f"{field_name} must be at most {max_length} characters"
        )

    # Null bytes never belong in identifiers
    if "\x00" in value:
        raise ValidationError(f"{field_name} contains invalid characters")

    return value


def validate_key(key: str) -> str:
    """
    Validate a secret key name.

    Key names are 1-256 characters of letters, digits, ``_``, ``-``, ``.``
    and ``/``.
    """
    validate_string_safe(key, min_length=1, max_length=MAX_KEY_LENGTH, field_name="Key name")
    if not _KEY_PATTERN.fullmatch(key):
        raise ValidationError(
            "Key name can only contain alphanumeric characters, "
            "underscores, hyphens, dots, and slashes"
        )
    return key


def validate_user_id(user_id: str) -> str:
    """Validate a user ID (letters, digits, ``_``, ``-``, ``.`` and ``@``)."""
    validate_string_safe(
        user_id, min_length=1, max_length=MAX_USER_ID_LENGTH, field_name="User ID"
    )
    if not _USER_ID_PATTERN.fullmatch(user_id):
        raise ValidationError(
            "User ID can only contain alphanumeric characters, "
            "underscores, hyphens, dots, and @"
        )
    return user_id


def _validate_hex(value: str, length: int, field_name: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    if len(value) != length:
        raise ValidationError(f"{field_name} must be {length} characters")
    if not _HEX_PATTERN.fullmatch(value):
        raise ValidationError(f"{field_name} must be a hexadecimal string")
    return value


def validate_token(token: str) -> str:
    """Validate the shape of a bearer token (64 lowercase hex characters)."""
    return _validate_hex(token, TOKEN_HEX_LENGTH, "Token")


def validate_master_key(master_key: str) -> str:
    """Validate a master key (64 lowercase hex characters, 256 bits)."""
    return _validate_hex(master_key, MASTER_KEY_HEX_LENGTH, "Master key")
