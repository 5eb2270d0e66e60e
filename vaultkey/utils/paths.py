"""
Path Utilities
==============

Location of the per-user VaultKey data directory.
"""

from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = ".vaultkey"


def get_app_data_dir(app_dir_name: str = APP_DIR_NAME) -> Path:
    """
    Get the application data directory (``~/.vaultkey`` by default).

    ``VAULTKEY_HOME`` replaces the home directory, which keeps tests and
    sandboxed runs away from the real user profile.
    """
    home = os.environ.get("VAULTKEY_HOME")
    base = Path(home).expanduser() if home else Path.home()
    return base.resolve() / app_dir_name


def create_private_dir(directory: Path) -> Path:
    """Create a directory (and parents) readable only by the owner."""
    directory.mkdir(mode=0o700, parents=True, exist_ok=True)
    if platform.system().lower() != "windows":
        directory.chmod(0o700)
    return directory
