"""AES-256-GCM value encryption and the independent HMAC-SHA256 integrity tag.

Envelope tag input (raw bytes, in order):
- salt (32 bytes)
- nonce (12 bytes)
- ciphertext (plaintext length + 16-byte GCM tag)

GCM already authenticates the ciphertext; the HMAC is checked first on
decryption so garbled envelopes are rejected before the AEAD is touched.
"""
import hashlib
import hmac
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from envseal.core.exceptions import AuthenticationError, DecryptionError
from .encoding import decode_base64, encode_base64
from .entropy import NONCE_LENGTH
from .kdf import EncryptionKey, MacKey

logger = logging.getLogger(__name__)

GCM_TAG_LENGTH = 16


def encrypt(plaintext: str, key: EncryptionKey, nonce: bytes) -> bytes:
    """Encrypt a UTF-8 string, returning ciphertext with the GCM tag appended."""
    if len(nonce) != NONCE_LENGTH:
        raise ValueError(f"nonce must be {NONCE_LENGTH} bytes, got {len(nonce)}")
    aead = AESGCM(key.material_for("encrypt"))
    return aead.encrypt(nonce, plaintext.encode("utf-8"), None)


def decrypt(cipher_bytes: bytes, key: EncryptionKey, nonce: bytes) -> str:
    """Decrypt ``cipher_bytes`` and return the UTF-8 plaintext."""
    if len(cipher_bytes) < GCM_TAG_LENGTH:
        raise DecryptionError("ciphertext too short to contain a GCM tag")
    aead = AESGCM(key.material_for("encrypt"))
    try:
        raw = aead.decrypt(nonce, cipher_bytes, None)
    except (InvalidTag, ValueError) as e:
        # ValueError covers a nonce of the wrong size
        logger.warning("AES-GCM decryption failed")
        raise DecryptionError("Failed to decrypt with AES-GCM: authentication tag mismatch") from e
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionError("decrypted value is not valid UTF-8") from e


def compute_hmac(mac_key: MacKey, data: bytes) -> str:
    """HMAC-SHA256 over ``data``, base64-encoded."""
    digest = hmac.new(mac_key.material_for("sign"), data, hashlib.sha256).digest()
    return encode_base64(digest)


def constant_time_compare(first: str, second: str) -> bool:
    # lengths are not secret; the content comparison never exits early
    if len(first) != len(second):
        return False
    return hmac.compare_digest(first.encode("utf-8"), second.encode("utf-8"))


def hmac_input(salt_b64: str, nonce_b64: str, cipher_text_b64: str) -> bytes:
    return (
        decode_base64(salt_b64, "salt")
        + decode_base64(nonce_b64, "iv")
        + decode_base64(cipher_text_b64, "cipherText")
    )


def verify_hmac(
    salt_b64: str,
    nonce_b64: str,
    cipher_text_b64: str,
    expected_hmac_b64: str,
    mac_key: MacKey,
) -> None:
    """Raise AuthenticationError unless the tag over salt||nonce||ciphertext matches."""
    computed = compute_hmac(mac_key, hmac_input(salt_b64, nonce_b64, cipher_text_b64))
    if not constant_time_compare(computed, expected_hmac_b64):
        logger.warning("envelope HMAC mismatch")
        raise AuthenticationError(
            "Authentication failed: HMAC mismatch - invalid key or tampered data"
        )
