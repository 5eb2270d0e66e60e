"""
VaultKey Cryptographic Core
===========================

Authenticated encryption for secret values and one-way hashing for bearer
tokens.

Security Properties:
    - All encryption is authenticated (AES-256-GCM)
    - A fresh random nonce for every encryption
    - Bearer tokens carry 256 bits of entropy and are stored only as SHA-256
      digests
"""

from vaultkey.core.crypto.aes_gcm import (
    AesGcmCipher,
    SealedValue,
    decrypt,
    encrypt,
    generate_master_key,
)
from vaultkey.core.crypto.token_hash import generate_token, hash_token

__all__ = [
    "AesGcmCipher",
    "SealedValue",
    "encrypt",
    "decrypt",
    "generate_master_key",
    "generate_token",
    "hash_token",
]
