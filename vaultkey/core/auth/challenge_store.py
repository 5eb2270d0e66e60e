"""
Challenge Store
===============

Process-scoped, one-time-use store for WebAuthn challenges.

Each user has at most one outstanding challenge. Entries expire after a
fixed TTL and are swept lazily on every store/consume; no background timer
is needed.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from vaultkey.security.constants import CHALLENGE_TTL_SECONDS


@dataclass(frozen=True)
class StoredChallenge:
    challenge: bytes
    user_id: str
    created_at: float

    def __repr__(self) -> str:
        return f"StoredChallenge(user_id={self.user_id!r}, created_at={self.created_at})"


class ChallengeStore:
    """
    Thread-safe map of user ID to pending challenge.

    Usage:
        store = ChallengeStore()
        store.store("alice", options.challenge)
        expected = store.consume("alice")  # None if absent or expired
    """

    __slots__ = ("_ttl", "_clock", "_lock", "_entries")

    def __init__(
        self,
        ttl_seconds: float = CHALLENGE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, StoredChallenge] = {}

    def _is_expired(self, entry: StoredChallenge, now: float) -> bool:
        return now - entry.created_at > self._ttl

    def _sweep(self, now: float) -> None:
        expired = [uid for uid, entry in self._entries.items() if self._is_expired(entry, now)]
        for uid in expired:
            del self._entries[uid]

    def store(self, user_id: str, challenge: bytes) -> None:
        """Store a challenge, replacing any outstanding one for the user."""
        with self._lock:
            now = self._clock()
            self._sweep(now)
            self._entries[user_id] = StoredChallenge(challenge, user_id, now)

    def consume(self, user_id: str) -> Optional[bytes]:
        """Remove and return the user's challenge, or None if absent or expired."""
        with self._lock:
            now = self._clock()
            self._sweep(now)
            entry = self._entries.pop(user_id, None)
            if entry is None or self._is_expired(entry, now):
                return None
            return entry.challenge

    def cleanup_expired(self) -> None:
        with self._lock:
            self._sweep(self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
