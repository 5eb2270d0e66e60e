"""
Passkey repository.

Stores WebAuthn credentials: credential ID (base64url), COSE public key
(base64), signature counter and authenticator metadata.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from typing import Final, List, Optional

from vaultkey.core.errors import DatabaseError
from vaultkey.core.models import Passkey
from vaultkey.db.connection import Database, parse_timestamp

KNOWN_TRANSPORTS: Final[frozenset[str]] = frozenset({
    "usb", "nfc", "ble", "smart-card", "hybrid", "internal", "cable",
})


def parse_transports(raw: Optional[str]) -> Optional[List[str]]:
    """Parse the stored transports JSON; anything unexpected yields None."""
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(parsed, list) or not all(t in KNOWN_TRANSPORTS for t in parsed):
        return None
    return parsed


class PasskeyRepository:
    """Passkey persistence against the ``passkeys`` table."""

    __slots__ = ("_db",)

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        user_id: str,
        credential_id: str,
        public_key: str,
        counter: int,
        device_type: str,
        backed_up: bool,
        transports: Optional[List[str]] = None,
    ) -> Passkey:
        """Insert a passkey and return the stored record."""
        passkey_id = str(uuid.uuid4())
        transports_json = json.dumps(transports) if transports else None

        with self._db.operation("Failed to create passkey") as conn:
            conn.execute(
                """
                INSERT INTO passkeys (
                    id, userId, credentialId, publicKey, counter,
                    deviceType, backedUp, transports
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    passkey_id,
                    user_id,
                    credential_id,
                    public_key,
                    counter,
                    device_type,
                    1 if backed_up else 0,
                    transports_json,
                ),
            )

        passkey = self.get_by_id(passkey_id)
        if passkey is None:
            raise DatabaseError("Failed to retrieve created passkey")
        return passkey

    def get_by_id(self, passkey_id: str) -> Optional[Passkey]:
        with self._db.operation("Failed to get passkey by ID") as conn:
            row = conn.execute(
                "SELECT * FROM passkeys WHERE id = ?", (passkey_id,)
            ).fetchone()
        return self._row_to_passkey(row) if row else None

    def get_by_credential_id(self, credential_id: str) -> Optional[Passkey]:
        with self._db.operation("Failed to get passkey by credential ID") as conn:
            row = conn.execute(
                "SELECT * FROM passkeys WHERE credentialId = ?", (credential_id,)
            ).fetchone()
        return self._row_to_passkey(row) if row else None

    def list_for_user(self, user_id: str) -> List[Passkey]:
        """List a user's passkeys, newest first."""
        with self._db.operation("Failed to get passkeys by user ID") as conn:
            rows = conn.execute(
                "SELECT * FROM passkeys WHERE userId = ? ORDER BY createdAt DESC, rowid DESC",
                (user_id,),
            ).fetchall()
        return [self._row_to_passkey(row) for row in rows]

    def update_counter(self, passkey_id: str, counter: int) -> None:
        with self._db.operation("Failed to update passkey counter") as conn:
            conn.execute(
                "UPDATE passkeys SET counter = ? WHERE id = ?", (counter, passkey_id)
            )

    def update_last_used(self, passkey_id: str) -> None:
        with self._db.operation("Failed to update passkey last used") as conn:
            conn.execute(
                "UPDATE passkeys SET lastUsedAt = datetime('now') WHERE id = ?",
                (passkey_id,),
            )

    def delete(self, passkey_id: str) -> None:
        with self._db.operation("Failed to delete passkey") as conn:
            conn.execute("DELETE FROM passkeys WHERE id = ?", (passkey_id,))

    def delete_all_for_user(self, user_id: str) -> int:
        with self._db.operation("Failed to delete passkeys by user ID") as conn:
            result = conn.execute("DELETE FROM passkeys WHERE userId = ?", (user_id,))
            return result.rowcount

    @staticmethod
    def _row_to_passkey(row: sqlite3.Row) -> Passkey:
        return Passkey(
            id=row["id"],
            user_id=row["userId"],
            credential_id=row["credentialId"],
            public_key=row["publicKey"],
            counter=row["counter"],
            device_type=row["deviceType"],
            backed_up=bool(row["backedUp"]),
            transports=parse_transports(row["transports"]),
            created_at=parse_timestamp(row["createdAt"]),
            last_used_at=parse_timestamp(row["lastUsedAt"]),
        )
