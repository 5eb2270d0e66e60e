"""
Tests for VaultKeyClient: the token-gated operations end to end.
"""
from datetime import datetime, timedelta, timezone

import pytest

from vaultkey import VaultKeyClient
from vaultkey.core.auth import PasskeyService
from vaultkey.core.errors import (
    AuthenticationError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from vaultkey.utils.master_key import read_master_key_file


@pytest.fixture
def token(client):
    """A valid bearer token for user u1."""
    client.create_user("u1")
    return client.issue_token("u1").token


def secret_count(client):
    return client.database.connection.execute("SELECT COUNT(*) FROM secrets").fetchone()[0]


class TestSecretLifecycle:
    def test_store_get_delete(self, client, token):
        client.store_secret("github/token", "ghp_abc", token)
        assert client.get_secret("github/token", token).value == "ghp_abc"

        client.delete_secret("github/token", token)
        with pytest.raises(NotFoundError):
            client.get_secret("github/token", token)

    def test_update_replaces_value(self, client, token):
        client.store_secret("k", "v1", token)
        client.update_secret("k", "v2", token)
        assert client.get_secret("k", token).value == "v2"

    def test_update_creates_missing_secret(self, client, token):
        client.update_secret("new", "v", token)
        assert client.get_secret("new", token).value == "v"

    def test_list_with_pattern(self, client, token):
        for key in ("github/token", "github/ssh", "aws/key"):
            client.store_secret(key, "v", token)
        assert {s.key for s in client.list_secrets(token, pattern="github/*")} == {
            "github/token",
            "github/ssh",
        }

    def test_expired_secrets(self, client, token):
        past = datetime.now(timezone.utc) - timedelta(minutes=5)
        client.store_secret("old", "v", token, expires_at=past)

        assert client.list_secrets(token) == []
        assert [s.key for s in client.list_secrets(token, include_expired=True)] == ["old"]
        assert client.purge_expired_secrets(token) == 1
        assert client.list_secrets(token, include_expired=True) == []

    def test_secrets_are_scoped_to_token_owner(self, client, token):
        client.create_user("u2")
        other = client.issue_token("u2").token
        client.store_secret("k", "mine", token)

        with pytest.raises(NotFoundError):
            client.get_secret("k", other)
        assert client.list_secrets(other) == []


class TestTokenGate:
    @pytest.mark.parametrize("operation", [
        lambda c, t: c.get_secret("k", t),
        lambda c, t: c.store_secret("k", "v", t),
        lambda c, t: c.update_secret("k", "v", t),
        lambda c, t: c.delete_secret("k", t),
        lambda c, t: c.list_secrets(t),
        lambda c, t: c.purge_expired_secrets(t),
        lambda c, t: c.revoke_token(t),
        lambda c, t: c.list_tokens(t),
    ])
    def test_invalid_token_is_rejected_first(self, client, token, operation):
        with pytest.raises(AuthenticationError):
            operation(client, "f" * 64)
        assert secret_count(client) == 0

    def test_revoked_token(self, client, token):
        client.revoke_token(token)
        with pytest.raises(AuthenticationError):
            client.store_secret("k", "v", token)

    def test_expired_token(self, client, token):
        expired = client.issue_token("u1", expires_in=-1).token
        with pytest.raises(AuthenticationError):
            client.list_secrets(expired)

    def test_list_tokens(self, client, token):
        second = client.issue_token("u1")
        hashes = {t.token_hash for t in client.list_tokens(token)}
        assert second.token_hash in hashes
        assert len(hashes) == 2

    def test_token_cap_from_configuration(self, client, token):
        for _ in range(5):
            client.issue_token("u1")
        with pytest.raises(AuthenticationError):
            client.list_secrets(token)

    def test_issue_for_unknown_user(self, client):
        with pytest.raises(DatabaseError):
            client.issue_token("ghost")


class TestUsersAndPasskeys:
    def test_create_user(self, client):
        user = client.create_user("alice")
        assert user.user_id == "alice"
        assert user.last_login_at is None

    @pytest.mark.parametrize("user_id", ["", "has space", "x" * 300])
    def test_create_user_validation(self, client, user_id):
        with pytest.raises(ValidationError):
            client.create_user(user_id)

    def test_duplicate_user(self, client):
        client.create_user("alice")
        with pytest.raises(DatabaseError):
            client.create_user("alice")

    def test_registration_options(self, client):
        options = client.get_registration_options("alice")
        assert options["rp"]["id"] == client.config.server.rp_id
        assert options["challenge"]

    def test_verify_authentication_issues_token(self, monkeypatch, client):
        client.create_user("alice")
        monkeypatch.setattr(
            PasskeyService, "verify_authentication", lambda self, user_id, response: None
        )
        issued = client.verify_authentication("alice", {"id": "cred"})
        client.store_secret("k", "v", issued.token)
        assert client.get_secret("k", issued.token).value == "v"


class TestConstruction:
    def test_master_key_generated_into_configured_file(self, config):
        with VaultKeyClient(config) as client:
            assert client.config.paths.master_key_file.is_file()
        assert read_master_key_file(config.paths.master_key_file)

    def test_overrides_are_applied(self, config, master_key):
        with VaultKeyClient(config, master_key=master_key, token_ttl=60, max_tokens_per_user=2) as client:
            assert client.config.security.token_ttl_seconds == 60
            assert client.config.security.max_tokens_per_user == 2
            assert client.config.paths == config.paths

    def test_db_path_override(self, config, master_key, tmp_path):
        db_path = tmp_path / "elsewhere" / "vault.db"
        with VaultKeyClient(config, master_key=master_key, db_path=db_path):
            pass
        assert db_path.is_file()

    def test_invalid_master_key(self, config):
        with pytest.raises(ValidationError):
            VaultKeyClient(config, master_key="nope")

    def test_data_survives_reopen(self, config, master_key):
        with VaultKeyClient(config, master_key=master_key) as client:
            client.create_user("u1")
            token = client.issue_token("u1").token
            client.store_secret("k", "persisted", token)

        with VaultKeyClient(config, master_key=master_key) as client:
            assert client.get_secret("k", token).value == "persisted"

    def test_repr_hides_master_key(self, client, master_key):
        assert master_key not in repr(client)
