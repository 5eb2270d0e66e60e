"""
Secrets Service
===============

Validates, encrypts and stores per-user secrets, and decrypts them on
retrieval. Every operation is scoped to a user ID that the caller has
already authenticated.

Expired secrets are invisible to normal reads: retrieving one raises
``NotFoundError`` with an "expired" message, and listings skip them unless
``include_expired`` is requested.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Union

from vaultkey.core.crypto.aes_gcm import decrypt, encrypt
from vaultkey.core.errors import NotFoundError, ValidationError
from vaultkey.core.models import DecryptedSecret, SecretSummary
from vaultkey.db.connection import Database
from vaultkey.db.repositories.secret_repository import SecretRepository
from vaultkey.utils.validators import validate_key

ExpiresAt = Union[datetime, str, None]


def normalize_expires_at(expires_at: ExpiresAt) -> Optional[datetime]:
    """
    Accept a datetime or an ISO-8601 string and return an aware UTC datetime.

    Naive values are treated as UTC.

    Raises:
        ValidationError: If a string is not a valid ISO-8601 timestamp
    """
    if expires_at is None:
        return None
    if isinstance(expires_at, str):
        raw = expires_at.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            expires_at = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationError(f"Invalid expiration timestamp: {expires_at!r}") from None
    if not isinstance(expires_at, datetime):
        raise ValidationError("Expiration must be a datetime or ISO-8601 string")
    if expires_at.tzinfo is None:
        return expires_at.replace(tzinfo=timezone.utc)
    return expires_at.astimezone(timezone.utc)


class SecretsService:
    """
    Encrypted secret storage for authenticated users.

    Usage:
        service = SecretsService(db)
        service.save_secret(user_id, "github/token", "ghp_...", master_key)
        secret = service.retrieve_secret(user_id, "github/token", master_key)
    """

    __slots__ = ("_secrets", "_log")

    def __init__(self, db: Database) -> None:
        self._secrets = SecretRepository(db)
        self._log = logging.getLogger("vaultkey.secrets")

    def save_secret(
        self,
        user_id: str,
        key: str,
        value: str,
        master_key: str,
        expires_at: ExpiresAt = None,
    ) -> None:
        """
        Store a secret, replacing value and expiry if the key already exists.

        Raises:
            ValidationError: If key or value is empty or not a string, or the
                key is malformed
            CryptoError: If the master key is malformed
        """
        if key is not None and not isinstance(key, str):
            raise ValidationError("Key must be a string")
        if value is not None and not isinstance(value, str):
            raise ValidationError("Value must be a string")
        if not key or not key.strip():
            raise ValidationError("Key is required")
        if not value or not value.strip():
            raise ValidationError("Value is required")
        validate_key(key)
        expiry = normalize_expires_at(expires_at)

        envelope = encrypt(value, master_key)

        self._secrets.upsert(user_id, key, envelope, expiry, author=user_id)
        self._log.info("Stored secret %s for user %s", key, user_id)

    def retrieve_secret(self, user_id: str, key: str, master_key: str) -> DecryptedSecret:
        """
        Decrypt and return a secret.

        Raises:
            NotFoundError: If the secret does not exist or has expired
            CryptoError: If decryption fails (e.g. wrong master key)
        """
        secret = self._secrets.get(user_id, key)

        if secret is None:
            raise NotFoundError(f"Secret not found: {key}")

        if secret.is_expired():
            raise NotFoundError(f"Secret expired: {key}")

        self._secrets.update_last_accessed(user_id, key)
        value = decrypt(secret.encrypted_value, master_key)

        return DecryptedSecret(
            key=secret.key,
            value=value,
            expires_at=secret.expires_at,
            created_at=secret.created_at,
            updated_at=secret.updated_at,
        )

    def remove_secret(self, user_id: str, key: str) -> None:
        """
        Delete a secret.

        Raises:
            NotFoundError: If the secret does not exist
        """
        if self._secrets.get(user_id, key) is None:
            raise NotFoundError(f"Secret not found: {key}")

        self._secrets.delete(user_id, key)
        self._log.info("Deleted secret %s for user %s", key, user_id)

    def list_all_secrets(
        self,
        user_id: str,
        include_expired: bool = False,
        pattern: Optional[str] = None,
    ) -> List[SecretSummary]:
        """List secret metadata. Values are never included."""
        return [
            SecretSummary(
                key=secret.key,
                expires_at=secret.expires_at,
                created_at=secret.created_at,
                updated_at=secret.updated_at,
            )
            for secret in self._secrets.list(
                user_id, include_expired=include_expired, pattern=pattern
            )
        ]

    def purge_expired_secrets(self, user_id: str) -> int:
        """Delete the user's expired secrets. Returns the number deleted."""
        count = self._secrets.delete_expired_for_user(user_id)
        if count:
            self._log.info("Purged %d expired secret(s) for user %s", count, user_id)
        return count
