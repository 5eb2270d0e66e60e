"""
SQLite schema for the VaultKey store.

Column names and types are shared with other implementations reading the
same database file; do not rename them.
"""

from typing import Final

SCHEMA_VERSION: Final[int] = 1

SCHEMA: Final[str] = """
CREATE TABLE IF NOT EXISTS users (
    userId TEXT PRIMARY KEY,
    createdAt TEXT NOT NULL DEFAULT (datetime('now')),
    lastLoginAt TEXT
);

CREATE TABLE IF NOT EXISTS passkeys (
    id TEXT PRIMARY KEY,
    userId TEXT NOT NULL,
    credentialId TEXT UNIQUE NOT NULL,
    publicKey TEXT NOT NULL,
    counter INTEGER NOT NULL DEFAULT 0,
    deviceType TEXT NOT NULL,
    backedUp INTEGER NOT NULL DEFAULT 0,
    transports TEXT,
    createdAt TEXT NOT NULL DEFAULT (datetime('now')),
    lastUsedAt TEXT,
    FOREIGN KEY (userId) REFERENCES users(userId) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_passkeys_user ON passkeys(userId);

CREATE TABLE IF NOT EXISTS tokens (
    tokenHash TEXT PRIMARY KEY,
    userId TEXT NOT NULL,
    expiresAt TEXT NOT NULL,
    createdAt TEXT NOT NULL DEFAULT (datetime('now')),
    isRevoked INTEGER NOT NULL DEFAULT 0,
    revokedAt TEXT,
    lastUsedAt TEXT,
    FOREIGN KEY (userId) REFERENCES users(userId) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_tokens_user ON tokens(userId);
CREATE INDEX IF NOT EXISTS idx_tokens_expires ON tokens(expiresAt);

CREATE TABLE IF NOT EXISTS secrets (
    userId TEXT NOT NULL,
    key TEXT NOT NULL,
    encryptedValue BLOB NOT NULL,
    createdAt TEXT NOT NULL DEFAULT (datetime('now')),
    updatedAt TEXT NOT NULL DEFAULT (datetime('now')),
    createdBy TEXT NOT NULL,
    updatedBy TEXT,
    lastAccessedAt TEXT,
    expiresAt TEXT,
    metadata TEXT,
    PRIMARY KEY (userId, key),
    FOREIGN KEY (userId) REFERENCES users(userId) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_secrets_expires ON secrets(expiresAt);
"""
