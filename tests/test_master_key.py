"""
Tests for master key resolution order, file handling and generation.
"""
import os
import stat
import sys

import pytest

from vaultkey.core.crypto import generate_master_key
from vaultkey.core.errors import ValidationError
from vaultkey.utils.master_key import (
    MasterKeySource,
    default_master_key_file,
    read_master_key_file,
    resolve_master_key,
    save_master_key_file,
)


@pytest.fixture
def key_file(tmp_path):
    """A valid key saved to a file; returns (key, path)."""
    key = generate_master_key()
    path = tmp_path / "keys" / "master.key"
    save_master_key_file(key, path)
    return key, path


class TestResolutionOrder:
    def test_explicit_value_wins(self, monkeypatch, key_file):
        explicit = generate_master_key()
        monkeypatch.setenv("VAULTKEY_MASTER_KEY", generate_master_key())
        resolved = resolve_master_key(master_key=explicit, master_key_file=key_file[1])
        assert resolved.master_key == explicit
        assert resolved.source is MasterKeySource.OPTION

    def test_explicit_file(self, monkeypatch, key_file):
        monkeypatch.setenv("VAULTKEY_MASTER_KEY", generate_master_key())
        resolved = resolve_master_key(master_key_file=key_file[1])
        assert resolved.master_key == key_file[0]
        assert resolved.source is MasterKeySource.OPTION_FILE
        assert resolved.file_path == key_file[1]

    def test_environment_value(self, monkeypatch, key_file):
        env_key = generate_master_key()
        monkeypatch.setenv("VAULTKEY_MASTER_KEY", env_key)
        monkeypatch.setenv("VAULTKEY_MASTER_KEY_FILE", str(key_file[1]))
        resolved = resolve_master_key()
        assert resolved.master_key == env_key
        assert resolved.source is MasterKeySource.ENV_DIRECT

    def test_environment_file(self, monkeypatch, key_file):
        monkeypatch.setenv("VAULTKEY_MASTER_KEY_FILE", str(key_file[1]))
        resolved = resolve_master_key()
        assert resolved.master_key == key_file[0]
        assert resolved.source is MasterKeySource.ENV_FILE

    def test_default_file(self, key_file):
        resolved = resolve_master_key(default_file=key_file[1])
        assert resolved.master_key == key_file[0]
        assert resolved.source is MasterKeySource.DEFAULT_FILE

    def test_generated_when_nothing_exists(self, tmp_path):
        path = tmp_path / "fresh" / "master.key"
        resolved = resolve_master_key(default_file=path)

        assert resolved.source is MasterKeySource.GENERATED
        assert path.read_text() == resolved.master_key
        assert resolve_master_key(default_file=path).master_key == resolved.master_key

    def test_default_location(self, isolated_environment):
        assert default_master_key_file() == isolated_environment.resolve() / ".vaultkey" / "master.key"
        resolved = resolve_master_key()
        assert resolved.file_path == default_master_key_file()
        assert resolved.source is MasterKeySource.GENERATED

    def test_repr_hides_key(self):
        key = generate_master_key()
        assert key not in repr(resolve_master_key(master_key=key))


class TestInvalidSources:
    def test_invalid_explicit_value(self):
        with pytest.raises(ValidationError, match="Invalid master key from master_key option"):
            resolve_master_key(master_key="short")

    def test_invalid_environment_value(self, monkeypatch):
        monkeypatch.setenv("VAULTKEY_MASTER_KEY", "z" * 64)
        with pytest.raises(ValidationError, match="VAULTKEY_MASTER_KEY"):
            resolve_master_key()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValidationError, match="Master key file not found"):
            resolve_master_key(master_key_file=tmp_path / "absent.key")

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "bad.key"
        path.write_text("not a key\n")
        with pytest.raises(ValidationError, match="Invalid master key format in file"):
            read_master_key_file(path)

    def test_surrounding_whitespace_is_ignored(self, tmp_path):
        key = generate_master_key()
        path = tmp_path / "padded.key"
        path.write_text(f"  {key}\n")
        assert read_master_key_file(path) == key


class TestSaveMasterKeyFile:
    def test_rejects_malformed_key(self, tmp_path):
        with pytest.raises(ValidationError):
            save_master_key_file("abc", tmp_path / "master.key")

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_owner_only_permissions(self, tmp_path):
        path = save_master_key_file(generate_master_key(), tmp_path / "dir" / "master.key")
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
        assert stat.S_IMODE(os.stat(path.parent).st_mode) == 0o700

    def test_overwrites(self, tmp_path):
        path = tmp_path / "master.key"
        save_master_key_file(generate_master_key(), path)
        second = generate_master_key()
        save_master_key_file(second, path)
        assert read_master_key_file(path) == second
