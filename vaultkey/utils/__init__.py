"""
Utils module - Validation and path helpers.

Master key resolution lives in ``vaultkey.utils.master_key``; it depends on
the crypto package and is not re-exported here.
"""

from vaultkey.utils.paths import get_app_data_dir
from vaultkey.utils.validators import (
    validate_key,
    validate_master_key,
    validate_string_safe,
    validate_token,
    validate_user_id,
)

__all__ = [
    "get_app_data_dir",
    "validate_key",
    "validate_master_key",
    "validate_string_safe",
    "validate_token",
    "validate_user_id",
]
