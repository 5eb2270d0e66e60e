"""
Secure Logging
==============

Logging setup for VaultKey. Every handler installed here passes records
through ``SecureLogFilter``, so bearer tokens, token hashes, master keys and
encryption envelopes never reach the console or a log file.

Modules only call ``logging.getLogger("vaultkey.<area>")``. The client
attaches handlers to the ``vaultkey`` logger once, from ``LoggingConfig``.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Iterable, Optional, Pattern, Union

from vaultkey.core.config import LoggingConfig

REDACTED: Final[str] = "[REDACTED]"

# A match is replaced by "<label>=[REDACTED]"; order matters
_REDACTIONS: Final[tuple[tuple[str, Pattern[str]], ...]] = (
    # nonce:tag:ciphertext, 12-byte nonce and 16-byte tag in base64
    ("envelope", re.compile(r"[A-Za-z0-9+/]{16}:[A-Za-z0-9+/]{22}==:[A-Za-z0-9+/]*={0,2}")),
    ("token", re.compile(r"(?i)\b(?:bearer|token)\s*[=:]\s*\S+")),
    ("master_key", re.compile(r"(?i)\bmaster[_-]?key\s*[=:]\s*\S+")),
    ("value", re.compile(r"(?i)\b(?:secret[_-]?)?value\s*[=:]\s*\S+")),
    # Bearer tokens, token hashes and master keys are 64 hex chars
    ("hex", re.compile(r"(?i)\b[a-f0-9]{32,}\b")),
    ("base64", re.compile(r"[A-Za-z0-9+/]{40,}={0,2}")),
)

_CONSOLE_FORMAT: Final[str] = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_FILE_FORMAT: Final[str] = "%(asctime)s %(levelname)-8s %(name)s [%(module)s:%(lineno)d] %(message)s"

PathLike = Union[str, Path]


def redact(text: str, extra: Iterable[Pattern[str]] = ()) -> str:
    """Replace credential-looking substrings of ``text`` with ``[REDACTED]``."""
    for label, pattern in _REDACTIONS:
        text = pattern.sub(f"{label}={REDACTED}", text)
    for pattern in extra:
        text = pattern.sub(REDACTED, text)
    return text


class SecureLogFilter(logging.Filter):
    """
    Redacts the rendered message of every record it sees.

    The record is never dropped. After filtering, ``record.msg`` holds the
    final text and ``record.args`` is empty, so later handlers see the same
    sanitized message.
    """

    def __init__(self, name: str = "", additional_patterns: Iterable[Pattern[str]] = ()) -> None:
        super().__init__(name)
        self._extra = tuple(additional_patterns)

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.getMessage(), self._extra)
            record.args = ()
        return True


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = redact(self.formatException(record.exc_info))
        return json.dumps(entry, default=str)


class PrivateRotatingFileHandler(RotatingFileHandler):
    """
    Size-rotated log file readable only by the owner.

    Paths containing ``..`` are refused. The parent directory is created on
    demand.
    """

    def __init__(self, filename: PathLike, max_bytes: int, backup_count: int) -> None:
        path = Path(filename)
        if ".." in path.parts:
            raise ValueError(f"Refusing log path with '..': {path}")
        path = path.expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")

    def _open(self):
        stream = super()._open()
        if os.name != "nt":
            os.chmod(self.baseFilename, 0o600)
        return stream


def get_secure_logger(
    name: str = "vaultkey",
    config: Optional[LoggingConfig] = None,
    log_dir: Optional[PathLike] = None,
) -> logging.Logger:
    """
    Return ``name``'s logger with redacting handlers attached.

    Handlers are attached on the first call only; later calls just apply the
    level from ``config``. File output needs both ``config.enable_file`` and
    a ``log_dir``; the file is ``<log_dir>/<name>.log``.
    """
    config = config or LoggingConfig()
    logger = logging.getLogger(name)
    logger.setLevel(config.level.upper())

    if logger.handlers:
        return logger

    log_filter = SecureLogFilter()

    if config.enable_console:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        console.addFilter(log_filter)
        logger.addHandler(console)

    if config.enable_file and log_dir is not None:
        file_handler = PrivateRotatingFileHandler(
            Path(log_dir) / f"{name.replace('.', '_')}.log",
            max_bytes=config.max_file_size_bytes,
            backup_count=config.backup_count,
        )
        if config.enable_json:
            file_handler.setFormatter(JsonLogFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler.addFilter(log_filter)
        logger.addHandler(file_handler)

    # Records stop at the package logger
    logger.propagate = False

    return logger
