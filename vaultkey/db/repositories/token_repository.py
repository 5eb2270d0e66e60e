"""
Token repository.

A token is *valid* iff ``isRevoked = 0`` and ``expiresAt`` is strictly after
the store's ``datetime('now')``. Lookups by hash deliberately return None for
absent, revoked and expired tokens alike.

Ordering by ``createdAt`` uses ``rowid`` (insertion order) as the tie-break,
since ``datetime('now')`` only has one-second resolution.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Final, List, Optional

from vaultkey.core.models import Token
from vaultkey.db.connection import Database, format_timestamp, parse_timestamp

_VALID: Final[str] = "isRevoked = 0 AND datetime(expiresAt) > datetime('now')"


class TokenRepository:
    """Token persistence against the ``tokens`` table."""

    __slots__ = ("_db",)

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, token_hash: str, user_id: str, expires_at: datetime) -> None:
        """Insert a token hash for a user."""
        with self._db.operation("Failed to create token") as conn:
            conn.execute(
                "INSERT INTO tokens (tokenHash, userId, expiresAt) VALUES (?, ?, ?)",
                (token_hash, user_id, format_timestamp(expires_at)),
            )

    def get_by_hash(self, token_hash: str) -> Optional[Token]:
        """Get a valid token by hash; None if absent, revoked or expired."""
        with self._db.operation("Failed to get token") as conn:
            row = conn.execute(
                f"SELECT * FROM tokens WHERE tokenHash = ? AND {_VALID}",
                (token_hash,),
            ).fetchone()
        return self._row_to_token(row) if row else None

    def list_valid_for_user(self, user_id: str) -> List[Token]:
        """List a user's valid tokens, newest first."""
        with self._db.operation("Failed to list user tokens") as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM tokens
                WHERE userId = ? AND {_VALID}
                ORDER BY createdAt DESC, rowid DESC
                """,
                (user_id,),
            ).fetchall()
        return [self._row_to_token(row) for row in rows]

    def count_valid_for_user(self, user_id: str) -> int:
        """Count a user's valid tokens."""
        with self._db.operation("Failed to count user tokens") as conn:
            return conn.execute(
                f"SELECT COUNT(*) FROM tokens WHERE userId = ? AND {_VALID}",
                (user_id,),
            ).fetchone()[0]

    def is_valid(self, token_hash: str) -> bool:
        """Check whether a hash belongs to a valid token."""
        with self._db.operation("Failed to validate token") as conn:
            count = conn.execute(
                f"SELECT COUNT(*) FROM tokens WHERE tokenHash = ? AND {_VALID}",
                (token_hash,),
            ).fetchone()[0]
        return count > 0

    def revoke_by_hash(self, token_hash: str) -> None:
        """Mark a token revoked. Idempotent; the first revocation time is kept."""
        with self._db.operation("Failed to revoke token") as conn:
            conn.execute(
                """
                UPDATE tokens
                SET isRevoked = 1, revokedAt = COALESCE(revokedAt, datetime('now'))
                WHERE tokenHash = ?
                """,
                (token_hash,),
            )

    def revoke_all_for_user(self, user_id: str) -> int:
        """Revoke every non-revoked token of a user. Returns the number affected."""
        with self._db.operation("Failed to revoke user tokens") as conn:
            result = conn.execute(
                """
                UPDATE tokens
                SET isRevoked = 1, revokedAt = datetime('now')
                WHERE userId = ? AND isRevoked = 0
                """,
                (user_id,),
            )
            return result.rowcount

    def update_last_used(self, token_hash: str) -> None:
        with self._db.operation("Failed to update token last used") as conn:
            conn.execute(
                "UPDATE tokens SET lastUsedAt = datetime('now') WHERE tokenHash = ?",
                (token_hash,),
            )

    def delete_oldest_for_user(self, user_id: str) -> bool:
        """
        Delete the user's oldest valid token (eviction, not revocation).

        Returns:
            True if a row was deleted
        """
        with self._db.operation("Failed to delete oldest token") as conn:
            result = conn.execute(
                f"""
                DELETE FROM tokens
                WHERE rowid = (
                    SELECT rowid FROM tokens
                    WHERE userId = ? AND {_VALID}
                    ORDER BY createdAt ASC, rowid ASC
                    LIMIT 1
                )
                """,
                (user_id,),
            )
            return result.rowcount > 0

    def delete_all_expired(self) -> int:
        """Delete expired tokens of every user. Returns the number deleted."""
        with self._db.operation("Failed to delete expired tokens") as conn:
            result = conn.execute(
                "DELETE FROM tokens WHERE datetime(expiresAt) <= datetime('now')"
            )
            return result.rowcount

    @staticmethod
    def _row_to_token(row: sqlite3.Row) -> Token:
        return Token(
            token_hash=row["tokenHash"],
            user_id=row["userId"],
            expires_at=parse_timestamp(row["expiresAt"]),
            created_at=parse_timestamp(row["createdAt"]),
            is_revoked=bool(row["isRevoked"]),
            revoked_at=parse_timestamp(row["revokedAt"]),
            last_used_at=parse_timestamp(row["lastUsedAt"]),
        )
