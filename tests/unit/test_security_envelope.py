"""Unit tests for the ENC2 envelope codec."""

import base64

import pytest

from envseal.core.exceptions import ValidationError
from envseal.security import envelope
from envseal.security.encoding import decode_base64, is_valid_base64

SALT = base64.b64encode(b"s" * 32).decode("ascii")
NONCE = base64.b64encode(b"n" * 12).decode("ascii")
CT = base64.b64encode(b"c" * 24).decode("ascii")
TAG = base64.b64encode(b"h" * 32).decode("ascii")


def test_encode_layout():
    raw = envelope.encode(SALT, NONCE, CT, TAG)
    assert raw == f"ENC2:{SALT}:{NONCE}:{CT}:{TAG}"


def test_decode_returns_fields():
    env = envelope.decode(envelope.encode(SALT, NONCE, CT, TAG))
    assert env == envelope.Envelope(salt=SALT, nonce=NONCE, cipher_text=CT, hmac=TAG)
    assert env.encode() == envelope.encode(SALT, NONCE, CT, TAG)


def test_envelope_is_immutable():
    env = envelope.Envelope(SALT, NONCE, CT, TAG)
    with pytest.raises(AttributeError):
        env.salt = "x"


@pytest.mark.parametrize(
    "raw, message",
    [
        (f"{SALT}:{NONCE}:{CT}:{TAG}", "missing prefix"),
        (f"ENC1:{SALT}:{NONCE}:{CT}:{TAG}", "missing prefix"),
        (f"ENC2:{SALT}:{NONCE}:{CT}", "expected 4 parts, got 3"),
        (f"ENC2:{SALT}:{NONCE}:{CT}:{TAG}:{TAG}", "expected 4 parts, got 5"),
        (f"ENC2:{SALT}:{NONCE}:{CT}:ab!d", "hmac not valid base64"),
        (f"ENC2:{SALT}:{NONCE}:c!T=:{TAG}", "cipherText not valid base64"),
    ],
)
def test_decode_rejects_malformed(raw, message):
    with pytest.raises(ValidationError, match=message):
        envelope.decode(raw)


def test_missing_parts_are_reported_together():
    with pytest.raises(ValidationError, match="missing salt, iv"):
        envelope.decode(f"ENC2:::{CT}:{TAG}")


def test_parse_returns_error_as_data():
    result = envelope.parse("ENC2:a:b")
    assert result.ok is False
    assert result.envelope is None
    assert "got 2" in result.error


def test_parse_success():
    result = envelope.parse(envelope.encode(SALT, NONCE, CT, TAG))
    assert result.ok
    assert result.unwrap().cipher_text == CT


def test_parse_non_string():
    assert envelope.parse(None).ok is False
    assert envelope.parse(12345).ok is False


def test_is_encrypted():
    assert envelope.is_encrypted(envelope.encode(SALT, NONCE, CT, TAG))
    assert not envelope.is_encrypted("plainvalue")
    assert not envelope.is_encrypted("ENC2:a:b")
    assert not envelope.is_encrypted("")
    assert not envelope.is_encrypted(None)
    assert not envelope.is_encrypted(f"ENC2:{SALT}:{NONCE}:{CT}:bad!")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("YWJj", True),
        ("YWI=", True),
        ("YQ==", True),
        ("YWJ", False),  # length not a multiple of 4
        ("YW=j", False),  # padding in the middle
        ("YWJj\n", False),
        ("Y!Jj", False),
        ("", False),
        ("YQ===", False),
        ("YR==", False),  # non-zero padding bits
        ("YWJ=", False),
    ],
)
def test_is_valid_base64(value, expected):
    assert is_valid_base64(value) is expected


def test_decode_base64_names_field():
    with pytest.raises(ValidationError, match="salt is not a valid base64"):
        decode_base64("###", "salt")
