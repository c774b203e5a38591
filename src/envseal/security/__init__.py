"""Security helpers: KDF, value encryption and the ENC2 envelope format.

This package provides:
- Argon2id derivation of a purpose-split key pair per envelope
- AES-256-GCM encryption of single string values
- an HMAC-SHA256 tag over salt||nonce||ciphertext
- the ``ENC2:`` envelope text codec
- an optional OS keystore wrapper for stage master secrets
"""

from .entropy import generate_salt, generate_nonce, generate_secret_key
from .kdf import (
    Argon2Parameters,
    DEFAULT_ARGON2,
    DerivedKeys,
    EncryptionKey,
    MacKey,
    derive_keys,
    validate_master_secret,
)
from .crypto import encrypt, decrypt, compute_hmac, verify_hmac, constant_time_compare
from .envelope import Envelope, ParseResult, PREFIX, encode, decode, parse, is_encrypted

__all__ = [
    "generate_salt",
    "generate_nonce",
    "generate_secret_key",
    "Argon2Parameters",
    "DEFAULT_ARGON2",
    "DerivedKeys",
    "EncryptionKey",
    "MacKey",
    "derive_keys",
    "validate_master_secret",
    "encrypt",
    "decrypt",
    "compute_hmac",
    "verify_hmac",
    "constant_time_compare",
    "Envelope",
    "ParseResult",
    "PREFIX",
    "encode",
    "decode",
    "parse",
    "is_encrypted",
]
