"""
Repositories - user-scoped data access for users, passkeys, tokens and secrets.
"""

from vaultkey.db.repositories.passkey_repository import PasskeyRepository
from vaultkey.db.repositories.secret_repository import SecretRepository
from vaultkey.db.repositories.token_repository import TokenRepository
from vaultkey.db.repositories.user_repository import UserRepository

__all__ = [
    "PasskeyRepository",
    "SecretRepository",
    "TokenRepository",
    "UserRepository",
]
