"""
VaultKey Client
===============

The single entry point applications use. Every secret and token operation
takes the caller's bearer token, verifies it first and only then acts on
behalf of the token's owner. Invalid tokens raise ``AuthenticationError``
before anything is read or written.

Token issuance and the passkey ceremonies are the only operations that do
not require a valid token; they are how one is obtained.

Usage:
    with VaultKeyClient(master_key=key, db_path="/tmp/vault.db") as client:
        client.create_user("alice")
        issued = client.issue_token("alice")
        client.store_secret("github/token", "ghp_...", issued.token)
        print(client.get_secret("github/token", issued.token).value)
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from vaultkey.core.auth.challenge_store import ChallengeStore
from vaultkey.core.auth.passkey_service import PasskeyService
from vaultkey.core.auth.token_manager import TokenManager
from vaultkey.core.config import VaultKeyConfig
from vaultkey.core.errors import DatabaseError
from vaultkey.core.logging import get_secure_logger
from vaultkey.core.models import (
    DecryptedSecret,
    IssuedToken,
    Passkey,
    SecretSummary,
    Token,
    User,
)
from vaultkey.core.secrets.secrets_service import ExpiresAt, SecretsService
from vaultkey.db.connection import Database
from vaultkey.db.repositories.user_repository import UserRepository
from vaultkey.utils.master_key import resolve_master_key
from vaultkey.utils.validators import validate_user_id

PathLike = Union[str, Path]


class VaultKeyClient:
    """
    Token-gated facade over the VaultKey store.

    Keyword arguments override the corresponding values of ``config``
    (which itself defaults to ``VaultKeyConfig.load()``).
    """

    def __init__(
        self,
        config: Optional[VaultKeyConfig] = None,
        *,
        master_key: Optional[str] = None,
        master_key_file: Optional[PathLike] = None,
        db_path: Optional[PathLike] = None,
        token_ttl: Optional[int] = None,
        max_tokens_per_user: Optional[int] = None,
        log_level: Optional[str] = None,
    ) -> None:
        config = config or VaultKeyConfig.load()

        security = config.security
        if token_ttl is not None or max_tokens_per_user is not None:
            security = replace(
                security,
                token_ttl_seconds=token_ttl if token_ttl is not None else security.token_ttl_seconds,
                max_tokens_per_user=(
                    max_tokens_per_user
                    if max_tokens_per_user is not None
                    else security.max_tokens_per_user
                ),
            )

        logging_config = config.logging
        if log_level is not None:
            logging_config = replace(logging_config, level=log_level.upper())

        self._config = VaultKeyConfig(
            paths=config.paths,
            security=security,
            logging=logging_config,
            server=config.server,
        )

        self._log = get_secure_logger(
            "vaultkey", logging_config, self._config.paths.log_dir
        ).getChild("client")

        self._master_key = resolve_master_key(
            master_key=master_key,
            master_key_file=master_key_file,
            default_file=self._config.paths.master_key_file,
        ).master_key

        self._db = Database(db_path if db_path is not None else self._config.paths.db_path)
        self._users = UserRepository(self._db)
        self._tokens = TokenManager(self._db)
        self._secrets = SecretsService(self._db)
        self._passkeys = PasskeyService(
            self._db,
            ChallengeStore(ttl_seconds=self._config.security.challenge_ttl_seconds),
            rp_id=self._config.server.rp_id,
            rp_name=self._config.server.rp_name,
            origin=self._config.server.origin,
        )

        self._log.debug("Client ready (db=%s)", self._db.path)

    @property
    def config(self) -> VaultKeyConfig:
        return self._config

    @property
    def database(self) -> Database:
        return self._db

    # ------------------------------------------------------------------
    # Users and passkey ceremonies (no token required)
    # ------------------------------------------------------------------

    def create_user(self, user_id: str) -> User:
        """
        Provision a user locally, without a passkey.

        Raises:
            ValidationError: If the user ID is malformed
            DatabaseError: If the user already exists
        """
        validate_user_id(user_id)
        self._users.create(user_id)
        self._log.info("Created user %s", user_id)
        user = self._users.get_by_id(user_id)
        if user is None:
            raise DatabaseError("Failed to create user")
        return user

    def get_registration_options(self, user_id: str) -> Dict[str, Any]:
        validate_user_id(user_id)
        return self._passkeys.generate_registration_options(user_id)

    def verify_registration(self, user_id: str, response: Mapping[str, Any]) -> Passkey:
        return self._passkeys.verify_registration(user_id, response)

    def get_authentication_options(self, user_id: str) -> Dict[str, Any]:
        return self._passkeys.generate_authentication_options(user_id)

    def verify_authentication(self, user_id: str, response: Mapping[str, Any]) -> IssuedToken:
        """
        Verify a passkey assertion and issue a bearer token for the user.

        Raises:
            AuthenticationError: If the ceremony fails
        """
        self._passkeys.verify_authentication(user_id, response)
        return self.issue_token(user_id)

    def issue_token(self, user_id: str, expires_in: Optional[int] = None) -> IssuedToken:
        """
        Issue a bearer token for an existing user.

        Args:
            user_id: Token owner
            expires_in: Lifetime in seconds (configured TTL by default)
        """
        ttl = expires_in if expires_in is not None else self._config.security.token_ttl_seconds
        return self._tokens.issue_token(
            user_id,
            ttl_seconds=ttl,
            max_tokens_per_user=self._config.security.max_tokens_per_user,
        )

    # ------------------------------------------------------------------
    # Token-gated operations
    # ------------------------------------------------------------------

    def get_secret(self, key: str, token: str) -> DecryptedSecret:
        user_id = self._tokens.verify_token(token)
        return self._secrets.retrieve_secret(user_id, key, self._master_key)

    def store_secret(self, key: str, value: str, token: str, expires_at: ExpiresAt = None) -> None:
        user_id = self._tokens.verify_token(token)
        self._secrets.save_secret(user_id, key, value, self._master_key, expires_at)

    def update_secret(self, key: str, value: str, token: str, expires_at: ExpiresAt = None) -> None:
        """Same as ``store_secret``: the secret is created if it does not exist."""
        user_id = self._tokens.verify_token(token)
        self._secrets.save_secret(user_id, key, value, self._master_key, expires_at)

    def delete_secret(self, key: str, token: str) -> None:
        user_id = self._tokens.verify_token(token)
        self._secrets.remove_secret(user_id, key)

    def list_secrets(
        self,
        token: str,
        pattern: Optional[str] = None,
        include_expired: bool = False,
    ) -> List[SecretSummary]:
        user_id = self._tokens.verify_token(token)
        return self._secrets.list_all_secrets(
            user_id, include_expired=include_expired, pattern=pattern
        )

    def purge_expired_secrets(self, token: str) -> int:
        user_id = self._tokens.verify_token(token)
        return self._secrets.purge_expired_secrets(user_id)

    def revoke_token(self, token: str) -> None:
        """Revoke the presented token (logout)."""
        self._tokens.verify_token(token)
        self._tokens.invalidate_token(token)

    def list_tokens(self, token: str) -> List[Token]:
        """List the valid tokens of the presented token's owner."""
        user_id = self._tokens.verify_token(token)
        return self._tokens.list_tokens(user_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._db.close()

    def __enter__(self) -> VaultKeyClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"VaultKeyClient(db={self._db.path!r})"
