"""
Security module - Cryptographic and protocol constants.

Security Considerations:
- Use only approved cryptographic algorithms (AES-256-GCM, SHA-256)
- No custom cryptography implementations
"""

from vaultkey.security.constants import (
    KEY_LENGTH_BYTES,
    TOKEN_LENGTH_BYTES,
)

__all__ = [
    "KEY_LENGTH_BYTES",
    "TOKEN_LENGTH_BYTES",
]
