"""
Token Manager
=============

Bearer token lifecycle with a hard per-user cap.

Security Features:
- Cryptographically random tokens (256 bits)
- Only token hashes are stored (tokens never hit disk)
- Absolute expiration
- One-way, idempotent revocation
- Oldest-first eviction when a user reaches the token cap

Token states:
    Active  -> Revoked  (explicit, terminal)
    Active  -> Expired  (time based, terminal)
    Active  -> Evicted  (row deleted by the cap, terminal)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone, timedelta
from typing import List

from vaultkey.core.crypto.token_hash import generate_token, hash_token
from vaultkey.core.errors import AuthenticationError, ValidationError
from vaultkey.core.models import IssuedToken, Token
from vaultkey.db.connection import Database
from vaultkey.db.repositories.token_repository import TokenRepository
from vaultkey.utils.validators import validate_token


class TokenManager:
    """
    Issues, verifies and revokes bearer tokens.

    Usage:
        manager = TokenManager(db)

        # After a successful passkey ceremony
        issued = manager.issue_token("alice", ttl_seconds=3600, max_tokens_per_user=5)

        # On every request
        user_id = manager.verify_token(issued.token)

        # Logout
        manager.invalidate_token(issued.token)

    Notes:
        The count, evict and insert steps of issuance are separate
        statements. Concurrent issuance for one user can transiently exceed
        the cap by one.
    """

    __slots__ = ("_tokens", "_log")

    def __init__(self, db: Database) -> None:
        self._tokens = TokenRepository(db)
        self._log = logging.getLogger("vaultkey.tokens")

    def issue_token(
        self,
        user_id: str,
        ttl_seconds: int,
        max_tokens_per_user: int,
    ) -> IssuedToken:
        """
        Issue a new token for a user.

        A zero or negative TTL produces a token that is already expired.

        Args:
            user_id: Owner of the token
            ttl_seconds: Lifetime in seconds
            max_tokens_per_user: Maximum number of valid tokens per user

        Returns:
            IssuedToken; ``token`` is the only copy of the bearer value

        Raises:
            ValidationError: If max_tokens_per_user is less than 1
            DatabaseError: If the user does not exist or storage fails
        """
        if max_tokens_per_user < 1:
            raise ValidationError("max_tokens_per_user must be at least 1")

        token = generate_token()
        token_hash = hash_token(token)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)

        # Evict oldest-first until there is room for the new token
        valid_count = self._tokens.count_valid_for_user(user_id)
        evicted = 0
        while valid_count - evicted >= max_tokens_per_user:
            if not self._tokens.delete_oldest_for_user(user_id):
                break
            evicted += 1
        if evicted:
            self._log.info("Evicted %d token(s) for user %s", evicted, user_id)

        self._tokens.create(token_hash, user_id, expires_at)
        self._log.info("Issued token for user %s", user_id)

        return IssuedToken(
            token=token,
            token_hash=token_hash,
            expires_at=expires_at.replace(microsecond=0),
        )

    def verify_token(self, token: str) -> str:
        """
        Resolve a bearer token to its owner.

        Absent, revoked and expired tokens are indistinguishable.

        Returns:
            The owning user ID

        Raises:
            AuthenticationError: If the token is not valid
        """
        try:
            validate_token(token)
        except ValidationError:
            self._log.warning("Rejected malformed token")
            raise AuthenticationError("Invalid token") from None

        token_hash = hash_token(token)
        stored = self._tokens.get_by_hash(token_hash)

        if stored is None:
            self._log.warning("Rejected invalid token")
            raise AuthenticationError("Invalid token")

        self._tokens.update_last_used(token_hash)
        return stored.user_id

    def invalidate_token(self, token: str) -> None:
        """Revoke a token. Unknown tokens are ignored."""
        self._tokens.revoke_by_hash(hash_token(token))
        self._log.info("Token revoked")

    def list_tokens(self, user_id: str) -> List[Token]:
        """List a user's valid tokens, newest first."""
        return self._tokens.list_valid_for_user(user_id)

    def revoke_all(self, user_id: str) -> int:
        """Revoke every token of a user (logout everywhere)."""
        count = self._tokens.revoke_all_for_user(user_id)
        self._log.info("Revoked %d token(s) for user %s", count, user_id)
        return count

    def purge_expired(self) -> int:
        """Delete expired tokens of all users."""
        count = self._tokens.delete_all_expired()
        if count:
            self._log.info("Purged %d expired token(s)", count)
        return count
