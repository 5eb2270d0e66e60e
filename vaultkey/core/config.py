"""
Configuration Module
====================

Immutable, environment-aware configuration for the VaultKey client and its
local auth server.

Environment overrides (prefix ``VAULTKEY_``):
    VAULTKEY_DB_PATH              database file
    VAULTKEY_LOG_DIR              directory for rotating log files
    VAULTKEY_LOG_LEVEL            DEBUG/INFO/WARNING/ERROR (LOG_LEVEL also read)
    VAULTKEY_AUTH_PORT            port of the local passkey auth server
    VAULTKEY_TOKEN_TTL            bearer token lifetime in seconds
    VAULTKEY_MAX_TOKENS_PER_USER  active token cap per user

The master key is never read here; see ``vaultkey.utils.master_key``.
"""

from __future__ import annotations

import os
import platform
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Optional

from vaultkey.core.errors import ValidationError
from vaultkey.security.constants import (
    CHALLENGE_TTL_SECONDS,
    DEFAULT_AUTH_PORT,
    DEFAULT_MAX_TOKENS_PER_USER,
    DEFAULT_RP_ID,
    DEFAULT_RP_NAME,
    DEFAULT_TOKEN_TTL_SECONDS,
)
from vaultkey.utils.paths import get_app_data_dir


_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "master_key", "secret", "password", "private", "credential",
})

_VALID_LOG_LEVELS: Final[frozenset[str]] = frozenset({
    "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL",
})

DEFAULT_LOG_LEVEL: Final[str] = "INFO"


def _is_sensitive_key(key: str) -> bool:
    """True for names that could carry key material."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _parse_positive_int(env_name: str, raw: str) -> int:
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValidationError(f"{env_name} must be a number") from None
    if value <= 0:
        raise ValidationError(f"{env_name} must be a positive number")
    return value


def _default_db_path() -> Path:
    return get_app_data_dir() / "vaultkey.db"


def _default_master_key_file() -> Path:
    return get_app_data_dir() / "master.key"


@dataclass(frozen=True, slots=True)
class PathConfig:
    """Immutable path configuration."""

    data_dir: Path = field(default_factory=get_app_data_dir)
    db_path: Path = field(default_factory=_default_db_path)
    master_key_file: Path = field(default_factory=_default_master_key_file)
    log_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        for field_name in ("data_dir", "master_key_file", "log_dir"):
            path = getattr(self, field_name)
            if path is not None and not path.is_absolute():
                raise ValidationError(f"{field_name} must be an absolute path: {path}")
        if str(self.db_path) != ":memory:" and not self.db_path.is_absolute():
            raise ValidationError(f"db_path must be an absolute path: {self.db_path}")


@dataclass(frozen=True, slots=True)
class SecurityConfig:
    """Immutable token and challenge settings."""

    token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS  # 30 days
    max_tokens_per_user: int = DEFAULT_MAX_TOKENS_PER_USER
    challenge_ttl_seconds: int = CHALLENGE_TTL_SECONDS

    def __post_init__(self) -> None:
        if self.token_ttl_seconds <= 0:
            raise ValidationError("Token TTL must be positive")
        if self.max_tokens_per_user < 1:
            raise ValidationError("Max tokens per user must be at least 1")
        if self.challenge_ttl_seconds <= 0:
            raise ValidationError("Challenge TTL must be positive")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Log level and handler settings for the ``vaultkey`` logger."""

    level: str = DEFAULT_LOG_LEVEL
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = True
    enable_json: bool = False

    def __post_init__(self) -> None:
        if self.level.upper() not in _VALID_LOG_LEVELS:
            raise ValidationError(f"Invalid log level: {self.level}")


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Immutable settings of the local passkey auth server."""

    auth_port: int = DEFAULT_AUTH_PORT
    rp_id: str = DEFAULT_RP_ID
    rp_name: str = DEFAULT_RP_NAME

    def __post_init__(self) -> None:
        if not 0 < self.auth_port < 65536:
            raise ValidationError(f"Invalid auth port: {self.auth_port}")

    @property
    def origin(self) -> str:
        return f"http://{self.rp_id}:{self.auth_port}"


class VaultKeyConfig:
    """
    Immutable configuration loader with environment override support.

    Usage:
        config = VaultKeyConfig.load()
        db_path = config.paths.db_path
        ttl = config.security.token_ttl_seconds
    """

    __slots__ = ("_paths", "_security", "_logging", "_server", "_frozen")

    def __init__(
        self,
        paths: Optional[PathConfig] = None,
        security: Optional[SecurityConfig] = None,
        logging: Optional[LoggingConfig] = None,
        server: Optional[ServerConfig] = None,
    ) -> None:
        """Initialize configuration. Use VaultKeyConfig.load() to read the environment."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_paths", paths or PathConfig())
        object.__setattr__(self, "_security", security or SecurityConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_server", server or ServerConfig())
        object.__setattr__(self, "_frozen", True)

    @property
    def paths(self) -> PathConfig:
        return self._paths

    @property
    def security(self) -> SecurityConfig:
        return self._security

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def server(self) -> ServerConfig:
        return self._server

    @classmethod
    def load(cls, env_prefix: str = "VAULTKEY") -> VaultKeyConfig:
        """
        Build a configuration from defaults and ``<PREFIX>_*`` variables.

        Args:
            env_prefix: Prefix for environment variables (default: VAULTKEY)

        Returns:
            Configured VaultKeyConfig instance

        Raises:
            ValidationError: If a numeric override is not a positive number
        """
        prefix = env_prefix.upper()
        env_overrides = cls._parse_env_overrides(prefix)

        paths_kwargs: dict[str, Any] = {}
        if "db_path" in env_overrides:
            db_path = env_overrides["db_path"]
            paths_kwargs["db_path"] = (
                Path(db_path) if db_path == ":memory:" else Path(db_path).expanduser().resolve()
            )
        if "log_dir" in env_overrides:
            paths_kwargs["log_dir"] = Path(env_overrides["log_dir"]).expanduser().resolve()

        security_kwargs: dict[str, Any] = {}
        if "token_ttl" in env_overrides:
            security_kwargs["token_ttl_seconds"] = _parse_positive_int(
                f"{prefix}_TOKEN_TTL", env_overrides["token_ttl"]
            )
        if "max_tokens_per_user" in env_overrides:
            security_kwargs["max_tokens_per_user"] = _parse_positive_int(
                f"{prefix}_MAX_TOKENS_PER_USER", env_overrides["max_tokens_per_user"]
            )

        server_kwargs: dict[str, Any] = {}
        if "auth_port" in env_overrides:
            server_kwargs["auth_port"] = _parse_positive_int(
                f"{prefix}_AUTH_PORT", env_overrides["auth_port"]
            )

        # Unknown levels fall back to the default rather than failing startup
        logging_kwargs: dict[str, Any] = {}
        level = env_overrides.get("log_level") or os.environ.get("LOG_LEVEL")
        if level:
            level = level.strip().upper()
            logging_kwargs["level"] = level if level in _VALID_LOG_LEVELS else DEFAULT_LOG_LEVEL

        return cls(
            paths=PathConfig(**paths_kwargs) if paths_kwargs else None,
            security=SecurityConfig(**security_kwargs) if security_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
            server=ServerConfig(**server_kwargs) if server_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Collect ``<PREFIX>_*`` variables as lowercase keys, minus key material."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                config_key = key[len(prefix_upper):].lower()

                # The master key has its own resolution path
                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    def ensure_directories(self) -> None:
        """Create the data and log directories, owner-only on Unix-like systems."""
        directories = [self._paths.data_dir]
        if self._paths.log_dir is not None:
            directories.append(self._paths.log_dir)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

            if platform.system().lower() != "windows":
                directory.chmod(stat.S_IRWXU)

    def __repr__(self) -> str:
        return (
            f"VaultKeyConfig(db_path={self._paths.db_path}, "
            f"auth_port={self._server.auth_port}, log_level={self._logging.level})"
        )

    def __setattr__(self, name: str, value: Any) -> None:
        """Reject assignment once constructed."""
        if getattr(self, "_frozen", False):
            raise AttributeError("VaultKeyConfig is immutable after initialization")
        object.__setattr__(self, name, value)
