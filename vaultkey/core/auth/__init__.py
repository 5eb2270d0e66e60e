"""
VaultKey Authentication Module
==============================

Provides:
- Passkey (WebAuthn) registration and authentication ceremonies
- One-time challenge storage with expiration
- Bearer token issuance, verification and revocation

Security Properties:
- Only token hashes are persisted
- Per-user token cap with oldest-first eviction
- Challenges are single use
"""

from vaultkey.core.auth.challenge_store import ChallengeStore
from vaultkey.core.auth.passkey_service import PasskeyService
from vaultkey.core.auth.token_manager import TokenManager

__all__ = [
    "ChallengeStore",
    "PasskeyService",
    "TokenManager",
]
