"""
Security Constants
==================

Defines security-related constants used throughout VaultKey.
These values are part of the on-disk and wire contracts and should not be
modified without a migration plan.
"""

from typing import Final

# Encryption Settings
KEY_LENGTH_BYTES: Final[int] = 32  # 256 bits
IV_LENGTH_BYTES: Final[int] = 12  # 96 bits for GCM
TAG_LENGTH_BYTES: Final[int] = 16  # 128 bits
MASTER_KEY_HEX_LENGTH: Final[int] = KEY_LENGTH_BYTES * 2
ENVELOPE_SEPARATOR: Final[str] = ":"

# Bearer Tokens
TOKEN_LENGTH_BYTES: Final[int] = 32  # 256 bits
TOKEN_HEX_LENGTH: Final[int] = TOKEN_LENGTH_BYTES * 2
DEFAULT_TOKEN_TTL_SECONDS: Final[int] = 30 * 24 * 60 * 60  # 30 days
DEFAULT_MAX_TOKENS_PER_USER: Final[int] = 5

# Identifiers
MAX_KEY_LENGTH: Final[int] = 256
MAX_USER_ID_LENGTH: Final[int] = 256

# Passkey ceremony
CHALLENGE_TTL_SECONDS: Final[int] = 300  # 5 minutes
DEFAULT_RP_ID: Final[str] = "localhost"
DEFAULT_RP_NAME: Final[str] = "VaultKey"
DEFAULT_AUTH_PORT: Final[int] = 5432
