"""
Core module - Contains configuration, logging, errors and the services.
"""

from vaultkey.core.config import VaultKeyConfig
from vaultkey.core.logging import get_secure_logger, SecureLogFilter

__all__ = ["VaultKeyConfig", "get_secure_logger", "SecureLogFilter"]
