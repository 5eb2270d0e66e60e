"""
SQLite Connection
=================

Owns the single SQLite connection used by a VaultKey client, runs the schema
migration, and normalizes every engine failure into ``DatabaseError``.

Security Notes:
    - Foreign keys are enforced so user deletion cascades
    - All queries are parameterized (SQL injection safe)
    - Engine exceptions are never re-raised; their messages may contain SQL
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from vaultkey.core.errors import DatabaseError
from vaultkey.db.schema import SCHEMA, SCHEMA_VERSION

MEMORY_DB: str = ":memory:"

# SQLite's own datetime('now') format; stored timestamps must sort and compare
# the same way.
_DB_TIMESTAMP_FORMAT: str = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("vaultkey.db")


def format_timestamp(value: datetime) -> str:
    """Convert a datetime to the store-native UTC format. Naive means UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_DB_TIMESTAMP_FORMAT)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a stored timestamp into an aware UTC datetime.

    Accepts the store-native format as well as ISO-8601 with a trailing
    ``Z``, which other writers of the same file use.

    Raises:
        DatabaseError: If the stored value is not a timestamp
    """
    if value is None:
        return None
    raw = str(value).strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise DatabaseError(f"Invalid stored timestamp: {value!r}") from None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class Database:
    """
    A migrated SQLite database.

    Usage:
        db = Database(db_path)
        with db.operation("Failed to create token") as conn:
            conn.execute("INSERT INTO tokens ...", params)
        db.close()
    """

    __slots__ = ("_db_path", "_conn")

    def __init__(self, db_path: Path | str) -> None:
        """
        Open the database and apply the schema.

        Args:
            db_path: Path to the SQLite file, or ":memory:"

        Raises:
            DatabaseError: If the connection or migration fails
        """
        self._db_path = str(db_path)
        self._conn: Optional[sqlite3.Connection] = None

        try:
            if self._db_path != MEMORY_DB:
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
        except (sqlite3.Error, OSError):
            raise DatabaseError("Failed to create database connection") from None

        self._conn = conn
        try:
            self._run_migrations()
        except DatabaseError:
            self.close()
            raise
        logger.debug("Opened database %s", self._db_path)

    def _run_migrations(self) -> None:
        try:
            version = self.connection.execute("PRAGMA user_version").fetchone()[0]
        except sqlite3.Error:
            raise DatabaseError("Failed to run database migrations") from None
        if version > SCHEMA_VERSION:
            raise DatabaseError(
                f"Database schema version {version} is newer than supported ({SCHEMA_VERSION})"
            )

        try:
            self.connection.executescript(SCHEMA)
            # PRAGMA takes no bound parameters
            self.connection.execute(f"PRAGMA user_version = {SCHEMA_VERSION:d}")
            self.connection.commit()
        except sqlite3.Error:
            raise DatabaseError("Failed to run database migrations") from None

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseError("Database connection is closed")
        return self._conn

    @contextmanager
    def operation(self, error_message: str) -> Iterator[sqlite3.Connection]:
        """
        Run statements as one unit of work.

        Commits on success. On failure rolls back; ``sqlite3`` errors are
        re-raised as ``DatabaseError(error_message)`` without their cause.
        """
        conn = self.connection
        try:
            yield conn
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise DatabaseError(error_message) from None
        except BaseException:
            conn.rollback()
            raise

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._conn is None:
            return
        try:
            self._conn.close()
        except sqlite3.Error:
            raise DatabaseError("Failed to close database connection") from None
        finally:
            self._conn = None
        logger.debug("Closed database %s", self._db_path)

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Database(path={self._db_path!r}, open={self.is_open})"
