"""
Secret storage and retrieval for authenticated users.
"""

from vaultkey.core.secrets.secrets_service import SecretsService

__all__ = ["SecretsService"]
