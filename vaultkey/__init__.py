"""
VaultKey - Token-gated Secret Store
===================================

Encrypted per-user secret storage with passkey login and bearer tokens.

Security Notice:
- Secret values are encrypted with AES-256-GCM under a single master key
- Bearer tokens are never stored, only their SHA-256 hashes
- No secrets, tokens or keys are logged
"""

from vaultkey.core.errors import (
    AuthenticationError,
    CryptoError,
    DatabaseError,
    DuplicateError,
    ErrorKind,
    ExpiredError,
    NotFoundError,
    ValidationError,
    VaultKeyError,
)
from vaultkey.core.config import VaultKeyConfig
from vaultkey.client import VaultKeyClient

__version__ = "0.1.0"

__all__ = [
    "VaultKeyClient",
    "VaultKeyConfig",
    "VaultKeyError",
    "ErrorKind",
    "AuthenticationError",
    "ValidationError",
    "NotFoundError",
    "CryptoError",
    "DatabaseError",
    "ExpiredError",
    "DuplicateError",
    "__version__",
]
