"""Text form of an encrypted value.

    ENC2:<saltB64>:<nonceB64>:<cipherTextB64>:<hmacB64>

Parsing is a pipeline of checks that each return an error message or None;
the first failing step ends the pipeline and the message is carried in a
ParseResult rather than raised. ``decode`` is the raising wrapper.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from envseal.core.exceptions import ValidationError
from .encoding import is_valid_base64

PREFIX = "ENC2:"
SEPARATOR = ":"
EXPECTED_PARTS = 4
PART_NAMES = ("salt", "iv", "cipherText", "hmac")


@dataclass(frozen=True)
class Envelope:
    salt: str
    nonce: str
    cipher_text: str
    hmac: str

    def encode(self) -> str:
        return encode(self.salt, self.nonce, self.cipher_text, self.hmac)


@dataclass(frozen=True)
class ParseResult:
    envelope: Optional[Envelope] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.envelope is not None

    def unwrap(self) -> Envelope:
        if self.envelope is None:
            raise ValidationError(self.error or "Invalid encrypted format")
        return self.envelope


def encode(salt: str, nonce: str, cipher_text: str, hmac: str) -> str:
    return f"{PREFIX}{salt}{SEPARATOR}{nonce}{SEPARATOR}{cipher_text}{SEPARATOR}{hmac}"


def _check_prefix(raw, parts: List[str]) -> Optional[str]:
    if not isinstance(raw, str) or not raw.startswith(PREFIX):
        return "Invalid encrypted format: missing prefix"
    return None


def _check_part_count(raw, parts: List[str]) -> Optional[str]:
    if len(parts) != EXPECTED_PARTS:
        return f"Invalid format: expected {EXPECTED_PARTS} parts, got {len(parts)}"
    return None


def _check_required(raw, parts: List[str]) -> Optional[str]:
    missing = [name for name, part in zip(PART_NAMES, parts) if not part]
    if missing:
        return f"Invalid format: missing {', '.join(missing)}"
    return None


def _check_base64(raw, parts: List[str]) -> Optional[str]:
    invalid = [name for name, part in zip(PART_NAMES, parts) if not is_valid_base64(part)]
    if invalid:
        return f"Invalid format: {', '.join(invalid)} not valid base64"
    return None


_PIPELINE: List[Callable[[object, List[str]], Optional[str]]] = [
    _check_prefix,
    _check_part_count,
    _check_required,
    _check_base64,
]


def parse(raw) -> ParseResult:
    """Validate ``raw`` and return a ParseResult; never raises for bad input."""
    parts: List[str] = []
    if isinstance(raw, str) and raw.startswith(PREFIX):
        parts = raw[len(PREFIX):].split(SEPARATOR)
    for step in _PIPELINE:
        error = step(raw, parts)
        if error is not None:
            return ParseResult(error=error)
    return ParseResult(envelope=Envelope(*parts))


def decode(raw: str) -> Envelope:
    """Parse ``raw`` into an Envelope or raise ValidationError."""
    return parse(raw).unwrap()


def is_encrypted(value) -> bool:
    """True when ``value`` is already a well-formed envelope."""
    return parse(value).ok
