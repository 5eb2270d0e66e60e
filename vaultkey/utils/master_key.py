"""
Master Key Resolution
=====================

Finds the 64-hex-character master key used to encrypt secrets.

Resolution order (first match wins):
    1. explicit value            (``master_key=``)
    2. explicit file             (``master_key_file=``)
    3. VAULTKEY_MASTER_KEY       environment variable
    4. VAULTKEY_MASTER_KEY_FILE  environment variable
    5. default file              ``~/.vaultkey/master.key``
    6. generated and saved to the default file with mode 0600
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from vaultkey.core.crypto.aes_gcm import generate_master_key
from vaultkey.core.errors import ValidationError
from vaultkey.utils.paths import create_private_dir, get_app_data_dir
from vaultkey.utils.validators import validate_master_key

_log = logging.getLogger("vaultkey.master_key")

PathLike = Union[str, Path]

ENV_MASTER_KEY = "VAULTKEY_MASTER_KEY"
ENV_MASTER_KEY_FILE = "VAULTKEY_MASTER_KEY_FILE"


class MasterKeySource(Enum):
    OPTION = "option"
    OPTION_FILE = "option-file"
    ENV_DIRECT = "env-direct"
    ENV_FILE = "env-file"
    DEFAULT_FILE = "default-file"
    GENERATED = "generated"


@dataclass(frozen=True, slots=True)
class ResolvedMasterKey:
    master_key: str
    source: MasterKeySource
    file_path: Optional[Path] = None

    def __repr__(self) -> str:
        return f"ResolvedMasterKey(source={self.source.value}, file_path={self.file_path})"


def default_master_key_file() -> Path:
    return get_app_data_dir() / "master.key"


def read_master_key_file(file_path: PathLike) -> str:
    """
    Read and validate a master key file. Surrounding whitespace is ignored.

    Raises:
        ValidationError: If the file is missing, unreadable or malformed
    """
    path = Path(file_path).expanduser()
    if not path.is_file():
        raise ValidationError(f"Master key file not found: {path}")

    try:
        master_key = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise ValidationError(f"Failed to load master key from file {path}: {e}") from e

    try:
        validate_master_key(master_key)
    except ValidationError as e:
        raise ValidationError(f"Invalid master key format in file {path}: {e.message}") from None

    return master_key


def save_master_key_file(master_key: str, file_path: PathLike) -> Path:
    """
    Write a master key to a file readable only by the owner (mode 0600).

    Raises:
        ValidationError: If the key is malformed or the file cannot be written
    """
    validate_master_key(master_key)
    path = Path(file_path).expanduser()

    try:
        create_private_dir(path.parent)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(master_key)
        os.chmod(path, 0o600)
    except OSError as e:
        raise ValidationError(f"Failed to save master key to file {path}: {e}") from e

    return path


def _validated(master_key: str, origin: str) -> str:
    try:
        return validate_master_key(master_key)
    except ValidationError as e:
        raise ValidationError(f"Invalid master key from {origin}: {e.message}") from None


def resolve_master_key(
    master_key: Optional[str] = None,
    master_key_file: Optional[PathLike] = None,
    default_file: Optional[PathLike] = None,
) -> ResolvedMasterKey:
    """
    Resolve the master key from the first available source.

    ``default_file`` replaces ``~/.vaultkey/master.key`` for steps 5 and 6.

    Raises:
        ValidationError: If the chosen source holds a malformed key or a
            named file does not exist
    """
    if master_key:
        return ResolvedMasterKey(_validated(master_key, "master_key option"), MasterKeySource.OPTION)

    if master_key_file:
        path = Path(master_key_file).expanduser()
        return ResolvedMasterKey(read_master_key_file(path), MasterKeySource.OPTION_FILE, path)

    env_key = os.environ.get(ENV_MASTER_KEY)
    if env_key:
        return ResolvedMasterKey(
            _validated(env_key, f"environment variable {ENV_MASTER_KEY}"),
            MasterKeySource.ENV_DIRECT,
        )

    env_file = os.environ.get(ENV_MASTER_KEY_FILE)
    if env_file:
        path = Path(env_file).expanduser()
        return ResolvedMasterKey(read_master_key_file(path), MasterKeySource.ENV_FILE, path)

    default_path = Path(default_file).expanduser() if default_file else default_master_key_file()
    if default_path.exists():
        return ResolvedMasterKey(
            read_master_key_file(default_path), MasterKeySource.DEFAULT_FILE, default_path
        )

    generated = generate_master_key()
    save_master_key_file(generated, default_path)
    _log.info("Master key generated and saved to %s", default_path)
    return ResolvedMasterKey(generated, MasterKeySource.GENERATED, default_path)
