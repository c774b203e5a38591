"""Secure random inputs for envelope encryption."""
import base64
import os

SALT_LENGTH = 32
NONCE_LENGTH = 12  # 96-bit GCM nonce
SECRET_KEY_LENGTH = 32


def generate_salt(length: int = SALT_LENGTH) -> bytes:
    """Return a cryptographically secure random salt."""
    return os.urandom(length)


def generate_nonce(length: int = NONCE_LENGTH) -> bytes:
    """Return a fresh random nonce for AES-GCM."""
    return os.urandom(length)


def generate_secret_key(length: int = SECRET_KEY_LENGTH) -> str:
    """
    Return a new base64-encoded master secret for a deployment stage.
    32 random bytes encode to 44 characters.
    """
    return base64.b64encode(os.urandom(length)).decode("ascii")
