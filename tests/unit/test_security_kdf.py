"""Unit tests for the Key Derivation Function (KDF) module."""

import base64
from unittest.mock import patch

import pytest
from argon2.exceptions import HashingError
from argon2.low_level import Type

from envseal.core.exceptions import KeyDerivationError, ValidationError
from envseal.security.entropy import generate_salt
from envseal.security.kdf import (
    DEFAULT_ARGON2,
    EncryptionKey,
    MacKey,
    derive_keys,
    validate_master_secret,
)

SECRET = "0123456789abcdef"


def _salt_b64():
    return base64.b64encode(generate_salt()).decode("ascii")


def test_default_parameters_match_production_profile():
    assert DEFAULT_ARGON2.memory_cost == 262144
    assert DEFAULT_ARGON2.time_cost == 4
    assert DEFAULT_ARGON2.parallelism == 3
    assert DEFAULT_ARGON2.hash_len == 64


def test_derive_keys_passes_default_parameters_to_argon2():
    """The production profile reaches argon2 unchanged, with the raw salt bytes."""
    salt = generate_salt()
    salt_b64 = base64.b64encode(salt).decode("ascii")

    with patch("envseal.security.kdf.hash_secret_raw", return_value=bytes(range(64))) as raw:
        keys = derive_keys(SECRET, salt_b64)

    kwargs = raw.call_args.kwargs
    assert kwargs["secret"] == SECRET.encode("utf-8")
    assert kwargs["salt"] == salt
    assert kwargs["time_cost"] == 4
    assert kwargs["memory_cost"] == 262144
    assert kwargs["parallelism"] == 3
    assert kwargs["hash_len"] == 64
    assert kwargs["type"] == Type.ID

    # first half encrypts, second half signs
    assert keys.encryption_key.material_for("encrypt") == bytes(range(32))
    assert keys.mac_key.material_for("sign") == bytes(range(32, 64))


def test_derive_keys_is_deterministic(fast_params):
    salt_b64 = _salt_b64()
    first = derive_keys(SECRET, salt_b64, fast_params)
    second = derive_keys(SECRET, salt_b64, fast_params)

    assert first.encryption_key == second.encryption_key
    assert first.mac_key == second.mac_key


def test_different_salt_gives_different_keys(fast_params):
    a = derive_keys(SECRET, _salt_b64(), fast_params)
    b = derive_keys(SECRET, _salt_b64(), fast_params)
    assert a.encryption_key != b.encryption_key


def test_different_secret_gives_different_keys(fast_params):
    salt_b64 = _salt_b64()
    a = derive_keys(SECRET, salt_b64, fast_params)
    b = derive_keys("another-secret-value", salt_b64, fast_params)
    assert a.mac_key != b.mac_key


def test_encryption_and_mac_keys_differ(fast_params):
    keys = derive_keys(SECRET, _salt_b64(), fast_params)
    assert keys.encryption_key.material_for("encrypt") != keys.mac_key.material_for("sign")


def test_key_purpose_is_enforced(fast_params):
    keys = derive_keys(SECRET, _salt_b64(), fast_params)
    with pytest.raises(TypeError):
        keys.encryption_key.material_for("sign")
    with pytest.raises(TypeError):
        keys.mac_key.material_for("encrypt")


def test_key_repr_hides_material():
    key = EncryptionKey(b"\x01" * 32)
    assert "redacted" in repr(key)
    assert "\\x01" not in repr(key)


def test_key_rejects_wrong_length():
    with pytest.raises(ValueError):
        MacKey(b"short")


@pytest.mark.parametrize("salt", ["", "not base64!", "abc", "YWJj"])
def test_invalid_salt_raises_validation_error(salt, fast_params):
    with pytest.raises(ValidationError):
        derive_keys(SECRET, salt, fast_params)


def test_salt_of_wrong_length_raises_validation_error(fast_params):
    short = base64.b64encode(b"\x00" * 16).decode("ascii")
    with pytest.raises(ValidationError, match="32 bytes"):
        derive_keys(SECRET, short, fast_params)


@pytest.mark.parametrize("secret", [None, "", "too-short", 1234567890123456789])
def test_invalid_master_secret_rejected(secret):
    with pytest.raises(ValidationError):
        validate_master_secret(secret)


def test_master_secret_of_sixteen_chars_is_accepted():
    validate_master_secret("x" * 16)


def test_argon2_failure_raises_key_derivation_error():
    with patch("envseal.security.kdf.hash_secret_raw", side_effect=HashingError("out of memory")):
        with pytest.raises(KeyDerivationError):
            derive_keys(SECRET, _salt_b64())


def test_memory_error_raises_key_derivation_error():
    with patch("envseal.security.kdf.hash_secret_raw", side_effect=MemoryError()):
        with pytest.raises(KeyDerivationError):
            derive_keys(SECRET, _salt_b64())
