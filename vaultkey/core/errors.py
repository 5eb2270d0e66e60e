"""
VaultKey Errors
===============

Every error raised by VaultKey derives from ``VaultKeyError`` so callers can
catch broadly or narrowly. Each class also carries an ``ErrorKind`` tag for
callers that prefer to dispatch on a value instead of a type.

Messages never contain secret values, bearer tokens or key material.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Taxonomy tag attached to every VaultKey error."""
    GENERIC = "GENERIC"
    AUTHENTICATION = "AUTHENTICATION"
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CRYPTO = "CRYPTO"
    DATABASE = "DATABASE"
    EXPIRED = "EXPIRED"
    DUPLICATE = "DUPLICATE"


class VaultKeyError(Exception):
    """Base exception for all VaultKey errors."""

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.name}, message={self.message!r})"


class AuthenticationError(VaultKeyError):
    """Invalid, expired or revoked token, or a failed passkey ceremony."""
    kind = ErrorKind.AUTHENTICATION


class ValidationError(VaultKeyError, ValueError):
    """Malformed key, value, user ID, master key or configuration knob."""
    kind = ErrorKind.VALIDATION


class NotFoundError(VaultKeyError):
    """Missing or expired secret or user."""
    kind = ErrorKind.NOT_FOUND


class CryptoError(VaultKeyError):
    """Envelope parse failure, tag mismatch or bad key."""
    kind = ErrorKind.CRYPTO


class DatabaseError(VaultKeyError):
    """Any storage failure, normalized so engine internals do not leak."""
    kind = ErrorKind.DATABASE


class ExpiredError(VaultKeyError):
    """Reserved."""
    kind = ErrorKind.EXPIRED


class DuplicateError(VaultKeyError):
    """Reserved."""
    kind = ErrorKind.DUPLICATE
