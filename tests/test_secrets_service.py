"""
Tests for SecretsService: validation, encryption at rest, expiry and isolation.
"""
from datetime import datetime, timedelta, timezone

import pytest

from vaultkey.core.crypto import generate_master_key
from vaultkey.core.errors import CryptoError, NotFoundError, ValidationError
from vaultkey.core.secrets import SecretsService
from vaultkey.core.secrets.secrets_service import normalize_expires_at


@pytest.fixture
def service(db):
    return SecretsService(db)


class TestSaveAndRetrieve:
    def test_round_trip(self, service, alice, master_key):
        service.save_secret(alice, "github/token", "ghp_abc", master_key)
        secret = service.retrieve_secret(alice, "github/token", master_key)
        assert secret.key == "github/token"
        assert secret.value == "ghp_abc"
        assert secret.expires_at is None

    def test_value_is_encrypted_at_rest(self, db, service, alice, master_key):
        service.save_secret(alice, "k", "plaintext-value", master_key)
        raw = db.connection.execute("SELECT encryptedValue FROM secrets").fetchone()[0]
        assert b"plaintext-value" not in bytes(raw)

    def test_save_twice_overwrites(self, service, alice, master_key):
        future = datetime.now(timezone.utc) + timedelta(days=1)
        service.save_secret(alice, "k", "v1", master_key, expires_at=future)
        service.save_secret(alice, "k", "v2", master_key)
        secret = service.retrieve_secret(alice, "k", master_key)
        assert secret.value == "v2"
        assert secret.expires_at is None
        assert len(service.list_all_secrets(alice)) == 1

    def test_retrieve_records_access(self, service, alice, master_key):
        service.save_secret(alice, "k", "v", master_key)
        service.retrieve_secret(alice, "k", master_key)
        secret = service._secrets.get(alice, "k")
        assert secret.last_accessed_at is not None

    @pytest.mark.parametrize("key, value, message", [
        ("", "v", "Key is required"),
        ("   ", "v", "Key is required"),
        ("k", "", "Value is required"),
        ("k", "  ", "Value is required"),
        ("bad key", "v", "alphanumeric"),
    ])
    def test_validation(self, service, alice, master_key, key, value, message):
        with pytest.raises(ValidationError, match=message):
            service.save_secret(alice, key, value, master_key)

    @pytest.mark.parametrize("key, value, message", [
        ("k", 42, "Value must be a string"),
        ("k", b"bytes", "Value must be a string"),
        (7, "v", "Key must be a string"),
        ("k", None, "Value is required"),
    ])
    def test_wrong_types(self, service, alice, master_key, key, value, message):
        with pytest.raises(ValidationError, match=message):
            service.save_secret(alice, key, value, master_key)

    def test_invalid_master_key(self, service, alice):
        with pytest.raises(CryptoError):
            service.save_secret(alice, "k", "v", "not-a-key")

    def test_wrong_master_key_on_read(self, service, alice, master_key):
        service.save_secret(alice, "k", "v", master_key)
        with pytest.raises(CryptoError):
            service.retrieve_secret(alice, "k", generate_master_key())

    def test_missing_secret(self, service, alice, master_key):
        with pytest.raises(NotFoundError, match="Secret not found: nope"):
            service.retrieve_secret(alice, "nope", master_key)


class TestExpiry:
    def test_expired_secret_is_not_found(self, service, alice, master_key):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        service.save_secret(alice, "old", "v", master_key, expires_at=past)

        with pytest.raises(NotFoundError, match="Secret expired: old"):
            service.retrieve_secret(alice, "old", master_key)

        assert service.list_all_secrets(alice) == []
        listed = service.list_all_secrets(alice, include_expired=True)
        assert [s.key for s in listed] == ["old"]

    def test_iso_string_expiry(self, service, alice, master_key):
        service.save_secret(alice, "k", "v", master_key, expires_at="2999-01-01T00:00:00Z")
        secret = service.retrieve_secret(alice, "k", master_key)
        assert secret.expires_at == datetime(2999, 1, 1, tzinfo=timezone.utc)

    def test_purge_expired(self, service, alice, master_key):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        service.save_secret(alice, "old", "v", master_key, expires_at=past)
        service.save_secret(alice, "live", "v", master_key)
        assert service.purge_expired_secrets(alice) == 1
        assert [s.key for s in service.list_all_secrets(alice, include_expired=True)] == ["live"]


class TestNormalizeExpiresAt:
    def test_none(self):
        assert normalize_expires_at(None) is None

    def test_naive_is_utc(self):
        assert normalize_expires_at(datetime(2030, 1, 1)) == datetime(2030, 1, 1, tzinfo=timezone.utc)

    def test_offset_is_converted(self):
        value = normalize_expires_at("2030-01-01T09:00:00+09:00")
        assert value == datetime(2030, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["tomorrow", 12345])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            normalize_expires_at(value)


class TestIsolationAndListing:
    def test_same_key_two_users(self, service, alice, bob, master_key):
        service.save_secret(alice, "k", "alice-value", master_key)
        service.save_secret(bob, "k", "bob-value", master_key)

        assert service.retrieve_secret(alice, "k", master_key).value == "alice-value"
        assert service.retrieve_secret(bob, "k", master_key).value == "bob-value"

        service.remove_secret(alice, "k")
        assert service.retrieve_secret(bob, "k", master_key).value == "bob-value"

    def test_remove_missing(self, service, alice):
        with pytest.raises(NotFoundError):
            service.remove_secret(alice, "nope")

    def test_listing_never_contains_values(self, service, alice, master_key):
        service.save_secret(alice, "k", "super-secret", master_key)
        summary = service.list_all_secrets(alice)[0]
        assert not hasattr(summary, "value")
        assert "super-secret" not in repr(summary)

    def test_pattern(self, service, alice, master_key):
        for key in ("github/token", "github/ssh", "aws/key"):
            service.save_secret(alice, key, "v", master_key)
        keys = {s.key for s in service.list_all_secrets(alice, pattern="github/*")}
        assert keys == {"github/token", "github/ssh"}
