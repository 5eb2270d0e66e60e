"""
AES-256-GCM Envelope
====================

Encrypts secret values under the installation master key.

Every call draws a fresh 96-bit nonce. The 128-bit tag is carried as its own
field, and the three parts are joined into the string stored in the
``secrets.encryptedValue`` column:

    base64(nonce) ":" base64(tag) ":" base64(ciphertext)

Nothing besides the master key is needed to open an envelope. Any failure,
whether a malformed envelope, a bad key or a tag mismatch, surfaces as
``CryptoError``.
"""

from __future__ import annotations

import base64
import binascii
import secrets
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from vaultkey.core.errors import CryptoError, ValidationError
from vaultkey.security.constants import (
    ENVELOPE_SEPARATOR,
    IV_LENGTH_BYTES,
    KEY_LENGTH_BYTES,
    TAG_LENGTH_BYTES,
)
from vaultkey.utils.validators import validate_master_key

_BAD_FORMAT = "Invalid encrypted value format"


@dataclass(frozen=True, slots=True)
class SealedValue:
    """Nonce, tag and ciphertext of one encryption."""

    nonce: bytes
    tag: bytes
    ciphertext: bytes

    def __repr__(self) -> str:
        return f"SealedValue(ciphertext_len={len(self.ciphertext)})"

    def to_envelope(self) -> str:
        return ENVELOPE_SEPARATOR.join(
            base64.b64encode(part).decode("ascii")
            for part in (self.nonce, self.tag, self.ciphertext)
        )

    @classmethod
    def from_envelope(cls, envelope: str) -> SealedValue:
        """
        Split and decode an envelope string.

        The ciphertext field is empty when the plaintext was empty; the
        nonce and tag fields never are.

        Raises:
            CryptoError: If the envelope is not three base64 fields
        """
        if not isinstance(envelope, str):
            raise CryptoError(_BAD_FORMAT)

        parts = envelope.split(ENVELOPE_SEPARATOR)
        if len(parts) != 3 or not parts[0] or not parts[1]:
            raise CryptoError(_BAD_FORMAT)

        try:
            nonce, tag, ciphertext = (base64.b64decode(p, validate=True) for p in parts)
        except (binascii.Error, ValueError):
            raise CryptoError(_BAD_FORMAT) from None

        return cls(nonce=nonce, tag=tag, ciphertext=ciphertext)


class AesGcmCipher:
    """
    AES-256-GCM bound to one key.

    Usage:
        cipher = AesGcmCipher(key)
        sealed = cipher.seal(b"value")
        value = cipher.open(sealed)
    """

    __slots__ = ("_aead",)

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_LENGTH_BYTES:
            raise ValueError(f"Key must be exactly {KEY_LENGTH_BYTES} bytes")
        self._aead = AESGCM(key)

    @staticmethod
    def generate_key() -> bytes:
        return secrets.token_bytes(KEY_LENGTH_BYTES)

    def seal(self, plaintext: bytes, aad: Optional[bytes] = None) -> SealedValue:
        nonce = secrets.token_bytes(IV_LENGTH_BYTES)
        # AESGCM appends the tag to the ciphertext
        sealed = self._aead.encrypt(nonce, plaintext, aad)
        return SealedValue(
            nonce=nonce,
            tag=sealed[-TAG_LENGTH_BYTES:],
            ciphertext=sealed[:-TAG_LENGTH_BYTES],
        )

    def open(self, sealed: SealedValue, aad: Optional[bytes] = None) -> bytes:
        """
        Verify the tag and return the plaintext.

        Raises:
            ValueError: If the nonce or tag has the wrong length
            cryptography.exceptions.InvalidTag: Tampered data, wrong key or AAD
        """
        if len(sealed.nonce) != IV_LENGTH_BYTES:
            raise ValueError(f"Nonce must be exactly {IV_LENGTH_BYTES} bytes")
        if len(sealed.tag) != TAG_LENGTH_BYTES:
            raise ValueError(f"Tag must be exactly {TAG_LENGTH_BYTES} bytes")
        return self._aead.decrypt(sealed.nonce, sealed.ciphertext + sealed.tag, aad)


def _cipher_for(master_key: str) -> AesGcmCipher:
    try:
        validate_master_key(master_key)
    except ValidationError as e:
        raise CryptoError(f"Invalid master key: {e.message}") from None
    return AesGcmCipher(bytes.fromhex(master_key))


def generate_master_key() -> str:
    """Generate a new 256-bit master key as 64 lowercase hex characters."""
    return AesGcmCipher.generate_key().hex()


def encrypt(plaintext: str, master_key: str) -> str:
    """
    Encrypt a secret value into an envelope string.

    Raises:
        CryptoError: If the master key is malformed or the value is not a string
    """
    cipher = _cipher_for(master_key)
    if not isinstance(plaintext, str):
        raise CryptoError("Encryption failed: value must be a string")
    return cipher.seal(plaintext.encode("utf-8")).to_envelope()


def decrypt(envelope: str, master_key: str) -> str:
    """
    Decrypt an envelope produced by :func:`encrypt`.

    Raises:
        CryptoError: If the envelope is malformed, the tag does not verify
            (tampered data or wrong key) or the master key is malformed
    """
    sealed = SealedValue.from_envelope(envelope)
    cipher = _cipher_for(master_key)

    try:
        plaintext = cipher.open(sealed)
    except InvalidTag:
        raise CryptoError("Decryption failed: authentication tag mismatch") from None
    except ValueError as e:
        raise CryptoError(f"Decryption failed: {e}") from None

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError:
        raise CryptoError("Decryption failed: plaintext is not valid UTF-8") from None
