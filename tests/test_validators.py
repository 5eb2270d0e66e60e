"""
Tests for input validation and the error taxonomy.
"""
import pytest

from vaultkey.core.errors import (
    AuthenticationError,
    CryptoError,
    DatabaseError,
    DuplicateError,
    ErrorKind,
    ExpiredError,
    NotFoundError,
    ValidationError,
    VaultKeyError,
)
from vaultkey.utils.validators import (
    validate_key,
    validate_master_key,
    validate_string_safe,
    validate_token,
    validate_user_id,
)


class TestValidateKey:
    """Tests for secret key names."""

    @pytest.mark.parametrize("key", [
        "k",
        "github/token",
        "aws.prod.secret_key",
        "db-password",
        "a" * 256,
    ])
    def test_valid_keys(self, key):
        assert validate_key(key) == key

    @pytest.mark.parametrize("key", [
        "has space",
        "semi;colon",
        "star*",
        "quote'",
        "ümlaut",
        "trailing-newline\n",
    ])
    def test_invalid_characters(self, key):
        with pytest.raises(ValidationError, match="alphanumeric"):
            validate_key(key)

    def test_empty_key(self):
        with pytest.raises(ValidationError):
            validate_key("")

    def test_too_long(self):
        with pytest.raises(ValidationError, match="at most 256"):
            validate_key("a" * 257)


class TestValidateUserId:
    """Tests for user IDs."""

    @pytest.mark.parametrize("user_id", ["u1", "alice@example.com", "first.last", "svc_bot-2"])
    def test_valid(self, user_id):
        assert validate_user_id(user_id) == user_id

    @pytest.mark.parametrize("user_id", ["", "with space", "slash/ed", "alice\n", "a" * 257])
    def test_invalid(self, user_id):
        with pytest.raises(ValidationError):
            validate_user_id(user_id)


class TestHexValidators:
    """Tests for master key and token shape validation."""

    def test_valid_master_key(self, master_key):
        assert validate_master_key(master_key) == master_key

    def test_master_key_length(self):
        with pytest.raises(ValidationError, match="Master key must be 64 characters"):
            validate_master_key("ab" * 31)

    def test_master_key_must_be_lowercase_hex(self):
        with pytest.raises(ValidationError, match="hexadecimal"):
            validate_master_key("AB" * 32)

    def test_master_key_must_be_string(self):
        with pytest.raises(ValidationError):
            validate_master_key(b"00" * 32)

    def test_token_shape(self):
        assert validate_token("0" * 64) == "0" * 64
        with pytest.raises(ValidationError):
            validate_token("z" * 64)


class TestValidateStringSafe:
    def test_null_bytes_rejected(self):
        with pytest.raises(ValidationError, match="invalid characters"):
            validate_string_safe("abc\x00def")

    def test_non_string_rejected(self):
        with pytest.raises(ValidationError, match="must be a string"):
            validate_string_safe(42)

    def test_min_length(self):
        with pytest.raises(ValidationError, match="at least 3"):
            validate_string_safe("ab", min_length=3)


class TestErrorTaxonomy:
    """Tests for the error hierarchy and kind tags."""

    @pytest.mark.parametrize("error_cls, kind", [
        (AuthenticationError, ErrorKind.AUTHENTICATION),
        (ValidationError, ErrorKind.VALIDATION),
        (NotFoundError, ErrorKind.NOT_FOUND),
        (CryptoError, ErrorKind.CRYPTO),
        (DatabaseError, ErrorKind.DATABASE),
        (ExpiredError, ErrorKind.EXPIRED),
        (DuplicateError, ErrorKind.DUPLICATE),
    ])
    def test_kind_and_base_class(self, error_cls, kind):
        error = error_cls("boom")
        assert isinstance(error, VaultKeyError)
        assert error.kind is kind
        assert error.message == "boom"
        assert str(error) == "boom"

    def test_base_kind(self):
        assert VaultKeyError("x").kind is ErrorKind.GENERIC

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            raise ValidationError("bad input")

    def test_repr(self):
        assert repr(NotFoundError("Secret not found: k")) == (
            "NotFoundError(kind=NOT_FOUND, message='Secret not found: k')"
        )
