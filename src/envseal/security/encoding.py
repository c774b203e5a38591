"""Strict base64 helpers shared by the KDF and envelope code."""
import base64
import binascii
import re

from envseal.core.exceptions import ValidationError

_BASE64_RE = re.compile(r"[A-Za-z0-9+/]*={0,2}")


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def is_valid_base64(value) -> bool:
    """
    True when ``value`` is a non-empty, padded, standard-alphabet base64 string
    in its canonical form: the unused bits of the last character must be zero,
    so exactly one string encodes a given byte sequence.
    """
    if not value or not isinstance(value, str):
        return False
    if not _BASE64_RE.fullmatch(value):
        return False
    if len(value) % 4 != 0:
        return False
    try:
        decoded = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return False
    return encode_base64(decoded) == value


def decode_base64(value: str, field_name: str = "value") -> bytes:
    """Decode ``value`` or raise ValidationError naming the field."""
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a non-empty string")
    if not is_valid_base64(value):
        raise ValidationError(f"{field_name} is not a valid base64 string")
    return base64.b64decode(value, validate=True)
