"""
Shared fixtures for the VaultKey test suite.
"""
import os

import pytest

from vaultkey.client import VaultKeyClient
from vaultkey.core.auth.token_manager import TokenManager
from vaultkey.core.config import LoggingConfig, PathConfig, VaultKeyConfig
from vaultkey.core.crypto import generate_master_key
from vaultkey.db.connection import Database
from vaultkey.db.repositories import UserRepository


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep every test away from the real ~/.vaultkey and VAULTKEY_* settings."""
    for name in list(os.environ):
        if name.startswith("VAULTKEY_") or name == "LOG_LEVEL":
            monkeypatch.delenv(name, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("VAULTKEY_HOME", str(home))
    return home


@pytest.fixture
def master_key():
    """A fresh, valid master key."""
    return generate_master_key()


@pytest.fixture
def db():
    """A migrated in-memory database."""
    database = Database(":memory:")
    yield database
    database.close()


@pytest.fixture
def users(db):
    return UserRepository(db)


@pytest.fixture
def alice(users):
    """A user named alice."""
    users.create("alice")
    return "alice"


@pytest.fixture
def bob(users):
    """A user named bob."""
    users.create("bob")
    return "bob"


@pytest.fixture
def token_manager(db):
    return TokenManager(db)


@pytest.fixture
def config(tmp_path):
    """Configuration rooted in a temporary directory, with logging silenced."""
    data_dir = tmp_path / "data"
    return VaultKeyConfig(
        paths=PathConfig(
            data_dir=data_dir,
            db_path=data_dir / "vaultkey.db",
            master_key_file=data_dir / "master.key",
        ),
        logging=LoggingConfig(enable_console=False, enable_file=False),
    )


@pytest.fixture
def client(config, master_key):
    """A client with a one-hour token TTL and a cap of five tokens."""
    vault = VaultKeyClient(
        config,
        master_key=master_key,
        token_ttl=3600,
        max_tokens_per_user=5,
    )
    yield vault
    vault.close()
