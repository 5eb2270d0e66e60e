"""
Secret repository.

Rows are addressed by ``(userId, key)`` and every query is scoped by
``userId``. The ``encryptedValue`` BLOB holds the UTF-8 bytes of the
encryption envelope; this layer never sees plaintext.

Single-row ``get`` does not filter expired rows. Deciding that an expired
secret is "not found" belongs to the secrets service.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Final, List, Optional

from vaultkey.core.models import Secret
from vaultkey.db.connection import Database, format_timestamp, parse_timestamp

_NOT_EXPIRED: Final[str] = "(expiresAt IS NULL OR datetime(expiresAt) > datetime('now'))"
_EXPIRED: Final[str] = "(expiresAt IS NOT NULL AND datetime(expiresAt) <= datetime('now'))"


def glob_from_pattern(pattern: str) -> str:
    """
    Translate a key pattern into an SQLite GLOB expression.

    ``*`` matches any run of characters; every other character is literal.
    """
    escaped = []
    for char in pattern:
        if char in "[?":
            escaped.append(f"[{char}]")
        else:
            escaped.append(char)
    return "".join(escaped)


def _encode_envelope(envelope: str) -> bytes:
    return envelope.encode("utf-8")


def _decode_envelope(value: bytes | str) -> str:
    if isinstance(value, str):
        return value
    # Undecodable bytes are left for the envelope parser to reject
    return bytes(value).decode("utf-8", errors="replace")


def _optional_timestamp(value: Optional[datetime]) -> Optional[str]:
    return format_timestamp(value) if value is not None else None


class SecretRepository:
    """Secret persistence against the ``secrets`` table."""

    __slots__ = ("_db",)

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        user_id: str,
        key: str,
        encrypted_value: str,
        expires_at: Optional[datetime],
        created_by: str,
    ) -> None:
        """Insert a secret. Fails if ``(user_id, key)`` already exists."""
        with self._db.operation("Failed to create secret") as conn:
            conn.execute(
                """
                INSERT INTO secrets (userId, key, encryptedValue, expiresAt, createdBy)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    key,
                    _encode_envelope(encrypted_value),
                    _optional_timestamp(expires_at),
                    created_by,
                ),
            )

    def get(self, user_id: str, key: str) -> Optional[Secret]:
        """Get a secret by ``(user_id, key)``, expired or not."""
        with self._db.operation("Failed to get secret") as conn:
            row = conn.execute(
                "SELECT * FROM secrets WHERE userId = ? AND key = ?",
                (user_id, key),
            ).fetchone()
        return self._row_to_secret(row) if row else None

    def update(
        self,
        user_id: str,
        key: str,
        encrypted_value: str,
        expires_at: Optional[datetime],
        updated_by: str,
    ) -> None:
        """Replace value and expiry of an existing secret in place."""
        with self._db.operation("Failed to update secret") as conn:
            conn.execute(
                """
                UPDATE secrets
                SET encryptedValue = ?,
                    expiresAt = ?,
                    updatedAt = datetime('now'),
                    updatedBy = ?
                WHERE userId = ? AND key = ?
                """,
                (
                    _encode_envelope(encrypted_value),
                    _optional_timestamp(expires_at),
                    updated_by,
                    user_id,
                    key,
                ),
            )

    def upsert(
        self,
        user_id: str,
        key: str,
        encrypted_value: str,
        expires_at: Optional[datetime],
        author: str,
    ) -> None:
        """
        Insert a secret, or replace value and expiry if it already exists.

        A single statement, so concurrent writers of one key cannot both
        take the insert branch.
        """
        with self._db.operation("Failed to save secret") as conn:
            conn.execute(
                """
                INSERT INTO secrets (userId, key, encryptedValue, expiresAt, createdBy)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (userId, key) DO UPDATE SET
                    encryptedValue = excluded.encryptedValue,
                    expiresAt = excluded.expiresAt,
                    updatedAt = datetime('now'),
                    updatedBy = excluded.createdBy
                """,
                (
                    user_id,
                    key,
                    _encode_envelope(encrypted_value),
                    _optional_timestamp(expires_at),
                    author,
                ),
            )

    def delete(self, user_id: str, key: str) -> None:
        with self._db.operation("Failed to delete secret") as conn:
            conn.execute(
                "DELETE FROM secrets WHERE userId = ? AND key = ?",
                (user_id, key),
            )

    def list(
        self,
        user_id: str,
        include_expired: bool = False,
        pattern: Optional[str] = None,
    ) -> List[Secret]:
        """
        List a user's secrets, newest first.

        Args:
            user_id: Owner
            include_expired: Also return rows whose expiry has passed
            pattern: Optional key filter where ``*`` is a wildcard
        """
        sql = "SELECT * FROM secrets WHERE userId = ?"
        params: list[str] = [user_id]
        if not include_expired:
            sql += f" AND {_NOT_EXPIRED}"
        if pattern:
            sql += " AND key GLOB ?"
            params.append(glob_from_pattern(pattern))
        sql += " ORDER BY createdAt DESC, rowid DESC"

        with self._db.operation("Failed to list secrets") as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_secret(row) for row in rows]

    def list_expired(self, user_id: str) -> List[Secret]:
        """List only the user's expired secrets, earliest expiry first."""
        with self._db.operation("Failed to list expired secrets") as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM secrets
                WHERE userId = ? AND {_EXPIRED}
                ORDER BY datetime(expiresAt) ASC
                """,
                (user_id,),
            ).fetchall()
        return [self._row_to_secret(row) for row in rows]

    def delete_expired_for_user(self, user_id: str) -> int:
        """Delete the user's expired secrets. Returns the number deleted."""
        with self._db.operation("Failed to delete expired secrets") as conn:
            result = conn.execute(
                f"DELETE FROM secrets WHERE userId = ? AND {_EXPIRED}",
                (user_id,),
            )
            return result.rowcount

    def update_last_accessed(self, user_id: str, key: str) -> None:
        with self._db.operation("Failed to update secret last accessed") as conn:
            conn.execute(
                """
                UPDATE secrets SET lastAccessedAt = datetime('now')
                WHERE userId = ? AND key = ?
                """,
                (user_id, key),
            )

    def delete_all_for_user(self, user_id: str) -> int:
        """Delete every secret of a user. Returns the number deleted."""
        with self._db.operation("Failed to delete user secrets") as conn:
            result = conn.execute("DELETE FROM secrets WHERE userId = ?", (user_id,))
            return result.rowcount

    @staticmethod
    def _row_to_secret(row: sqlite3.Row) -> Secret:
        return Secret(
            user_id=row["userId"],
            key=row["key"],
            encrypted_value=_decode_envelope(row["encryptedValue"]),
            created_at=parse_timestamp(row["createdAt"]),
            updated_at=parse_timestamp(row["updatedAt"]),
            created_by=row["createdBy"],
            updated_by=row["updatedBy"],
            last_accessed_at=parse_timestamp(row["lastAccessedAt"]),
            expires_at=parse_timestamp(row["expiresAt"]),
            metadata=row["metadata"],
        )
