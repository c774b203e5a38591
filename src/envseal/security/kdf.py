"""Argon2id key derivation for envelope encryption.

One derivation call yields 64 bytes which are split into two single-purpose
keys: the first 32 bytes drive AES-256-GCM, the last 32 bytes drive
HMAC-SHA-256. The salt travels inside the envelope so decryption can re-derive
the same pair from the master secret.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw

from envseal.core.exceptions import KeyDerivationError, ValidationError
from .encoding import decode_base64
from .entropy import SALT_LENGTH

logger = logging.getLogger(__name__)

ENCRYPTION_KEY_LENGTH = 32
MAC_KEY_LENGTH = 32
MIN_SECRET_LENGTH = 16


@dataclass(frozen=True)
class Argon2Parameters:
    time_cost: int = 4
    memory_cost: int = 262144  # KiB, 256 MB
    parallelism: int = 3
    hash_len: int = ENCRYPTION_KEY_LENGTH + MAC_KEY_LENGTH


DEFAULT_ARGON2 = Argon2Parameters()


class _Key:
    """Opaque key handle restricted to a single purpose."""

    __slots__ = ("_material",)
    purpose = ""

    def __init__(self, material: bytes):
        if len(material) != 32:
            raise ValueError(f"{type(self).__name__} must be 32 bytes, got {len(material)}")
        self._material = bytes(material)

    def material_for(self, purpose: str) -> bytes:
        if purpose != self.purpose:
            raise TypeError(f"{type(self).__name__} cannot be used to {purpose}")
        return self._material

    def __repr__(self):
        # never expose key bytes
        return f"{type(self).__name__}(<redacted>)"

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._material == other._material

    def __hash__(self):
        return hash((type(self).__name__, self._material))


class EncryptionKey(_Key):
    __slots__ = ()
    purpose = "encrypt"


class MacKey(_Key):
    __slots__ = ()
    purpose = "sign"


@dataclass(frozen=True)
class DerivedKeys:
    encryption_key: EncryptionKey
    mac_key: MacKey


def validate_master_secret(secret) -> None:
    """Reject empty or short master secrets before any derivation attempt."""
    if not secret or not isinstance(secret, str):
        raise ValidationError("Secret key must be a non-empty string")
    if len(secret) < MIN_SECRET_LENGTH:
        raise ValidationError(
            f"Secret key must be at least {MIN_SECRET_LENGTH} characters long"
        )


def derive_key_material(
    master_secret: str,
    salt: bytes,
    params: Argon2Parameters = DEFAULT_ARGON2,
) -> bytes:
    """
    Run Argon2id over the master secret and raw salt.
    Returns raw derived key bytes (params.hash_len long).
    """
    try:
        return hash_secret_raw(
            secret=master_secret.encode("utf-8"),
            salt=salt,
            time_cost=params.time_cost,
            memory_cost=params.memory_cost,
            parallelism=params.parallelism,
            hash_len=params.hash_len,
            type=Type.ID,
        )
    except (HashingError, MemoryError) as e:
        logger.error("argon2id derivation failed: %s", e)
        raise KeyDerivationError(f"Failed to derive keys using Argon2id: {e}") from e


def derive_keys(
    master_secret: str,
    salt_b64: str,
    params: Argon2Parameters = DEFAULT_ARGON2,
) -> DerivedKeys:
    """
    Derive the encryption and MAC keys for one envelope.

    Deterministic: the same (master_secret, salt_b64) always gives the same
    pair, which is what lets decryption reuse the salt stored in the envelope.
    """
    validate_master_secret(master_secret)
    salt = decode_base64(salt_b64, "salt")
    if len(salt) != SALT_LENGTH:
        raise ValidationError(f"salt must decode to {SALT_LENGTH} bytes, got {len(salt)}")

    material = derive_key_material(master_secret, salt, params)
    if len(material) < ENCRYPTION_KEY_LENGTH + MAC_KEY_LENGTH:
        raise KeyDerivationError(f"derived {len(material)} bytes, need 64")

    return DerivedKeys(
        encryption_key=EncryptionKey(material[:ENCRYPTION_KEY_LENGTH]),
        mac_key=MacKey(material[ENCRYPTION_KEY_LENGTH:ENCRYPTION_KEY_LENGTH + MAC_KEY_LENGTH]),
    )
