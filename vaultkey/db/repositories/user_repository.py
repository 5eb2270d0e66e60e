"""
User repository.

Users are created on first passkey registration (or explicitly by a local
administrator). Deleting a user cascades to passkeys, tokens and secrets.
"""

from __future__ import annotations

import sqlite3
from typing import List, Optional

from vaultkey.core.models import User
from vaultkey.db.connection import Database, parse_timestamp


class UserRepository:
    """User CRUD against the ``users`` table."""

    __slots__ = ("_db",)

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, user_id: str) -> None:
        """
        Insert a user.

        Raises:
            DatabaseError: If the user already exists or the insert fails
        """
        with self._db.operation("Failed to create user") as conn:
            conn.execute("INSERT INTO users (userId) VALUES (?)", (user_id,))

    def get_by_id(self, user_id: str) -> Optional[User]:
        """Get a user by ID, or None."""
        with self._db.operation("Failed to get user by ID") as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE userId = ?", (user_id,)
            ).fetchone()
        return self._row_to_user(row) if row else None

    def list_all(self) -> List[User]:
        """List all users, newest first."""
        with self._db.operation("Failed to get all users") as conn:
            rows = conn.execute(
                "SELECT * FROM users ORDER BY createdAt DESC, rowid DESC"
            ).fetchall()
        return [self._row_to_user(row) for row in rows]

    def update_last_login(self, user_id: str) -> None:
        """Record a successful login. No-op for unknown users."""
        with self._db.operation("Failed to update user last login") as conn:
            conn.execute(
                "UPDATE users SET lastLoginAt = datetime('now') WHERE userId = ?",
                (user_id,),
            )

    def delete(self, user_id: str) -> None:
        """
        Permanently delete a user and, through the cascade, everything they own.

        WARNING: This is irreversible.
        """
        with self._db.operation("Failed to delete user") as conn:
            conn.execute("DELETE FROM users WHERE userId = ?", (user_id,))

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            user_id=row["userId"],
            created_at=parse_timestamp(row["createdAt"]),
            last_login_at=parse_timestamp(row["lastLoginAt"]),
        )
