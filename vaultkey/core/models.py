"""
Domain records returned by the data access layer and services.

Timestamps are timezone-aware UTC datetimes. Reprs never include secret
values, encrypted blobs or bearer tokens.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List


@dataclass
class User:
    """Identity anchor; owns passkeys, tokens and secrets."""
    user_id: str
    created_at: datetime
    last_login_at: Optional[datetime] = None


@dataclass
class Passkey:
    """A registered WebAuthn credential."""
    id: str
    user_id: str
    credential_id: str  # base64url
    public_key: str  # base64 of the COSE public key
    counter: int
    device_type: str  # "singleDevice" | "multiDevice"
    backed_up: bool
    created_at: datetime
    transports: Optional[List[str]] = None
    last_used_at: Optional[datetime] = None

    def __repr__(self) -> str:
        return (
            f"Passkey(id={self.id!r}, user_id={self.user_id!r}, "
            f"device_type={self.device_type!r}, counter={self.counter})"
        )


@dataclass
class Token:
    """
    Stored token record.

    Only the hash is stored; the bearer value is returned once at issuance
    and never again.
    """
    token_hash: str
    user_id: str
    expires_at: datetime
    created_at: datetime
    is_revoked: bool = False
    revoked_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None

    def __repr__(self) -> str:
        return (
            f"Token(token_hash={self.token_hash[:12]!r}..., user_id={self.user_id!r}, "
            f"expires_at={self.expires_at.isoformat()}, is_revoked={self.is_revoked})"
        )

    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) >= self.expires_at

    def is_valid(self) -> bool:
        return not self.is_revoked and not self.is_expired()


@dataclass
class Secret:
    """Stored secret row. ``encrypted_value`` is the envelope string."""
    user_id: str
    key: str
    encrypted_value: str = field(repr=False)
    created_at: datetime
    updated_at: datetime
    created_by: str
    updated_by: Optional[str] = None
    last_accessed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    metadata: Optional[str] = None

    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at < datetime.now(timezone.utc)


@dataclass(frozen=True)
class SecretSummary:
    """Listing entry: metadata only, never the value."""
    key: str
    expires_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class DecryptedSecret:
    """A retrieved secret with its plaintext value."""
    key: str
    value: str = field(repr=False)
    expires_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class IssuedToken:
    """Result of token issuance. ``token`` is the only copy of the bearer value."""
    token: str = field(repr=False)
    token_hash: str
    expires_at: datetime
