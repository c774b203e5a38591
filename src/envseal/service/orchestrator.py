"""
Encrypts selected variables of a .env file and opens ENC2 envelopes.

Per target variable the only transition is plaintext -> encrypted; values that
already parse as envelopes are left alone, so running the same encryption
twice produces byte-identical output. All edits are buffered and the file is
written once, only after every requested variable was found and encrypted.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from envseal.config import envfile
from envseal.core.exceptions import SecretNotFoundError, ValidationError
from envseal.security import crypto, envelope
from envseal.security.encoding import decode_base64, encode_base64
from envseal.security.entropy import generate_nonce, generate_salt
from envseal.security.kdf import Argon2Parameters, DEFAULT_ARGON2, derive_keys, validate_master_secret

logger = logging.getLogger(__name__)

# Each derivation reserves memory_cost KiB; keep concurrent derivations small.
MAX_KDF_WORKERS = 2


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str

    def __repr__(self):
        return f"Credentials(username={self.username!r}, password=<redacted>)"


@dataclass
class EncryptionReport:
    """What an encryption pass did to a file."""

    path: Optional[Path] = None
    encrypted: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    written: bool = False


def encrypt_value(
    value: str,
    master_secret: str,
    params: Argon2Parameters = DEFAULT_ARGON2,
) -> str:
    """Encrypt one plaintext value into an ENC2 envelope string."""
    if not value or not isinstance(value, str):
        raise ValidationError("encrypt: Value must be a non-empty string")
    validate_master_secret(master_secret)

    salt_b64 = encode_base64(generate_salt())
    nonce = generate_nonce()
    keys = derive_keys(master_secret, salt_b64, params)

    cipher_text_b64 = encode_base64(crypto.encrypt(value, keys.encryption_key, nonce))
    nonce_b64 = encode_base64(nonce)
    tag = crypto.compute_hmac(keys.mac_key, crypto.hmac_input(salt_b64, nonce_b64, cipher_text_b64))
    return envelope.encode(salt_b64, nonce_b64, cipher_text_b64, tag)


def decrypt_variable(
    envelope_string: str,
    master_secret: str,
    params: Argon2Parameters = DEFAULT_ARGON2,
) -> str:
    """
    Open an ENC2 envelope.

    The HMAC is verified before AES-GCM decryption is attempted, so tampered
    envelopes fail with AuthenticationError without reaching the AEAD.
    """
    if not envelope_string or not isinstance(envelope_string, str):
        raise ValidationError("decrypt: Value must be a non-empty string")
    validate_master_secret(master_secret)

    env = envelope.decode(envelope_string)
    keys = derive_keys(master_secret, env.salt, params)
    crypto.verify_hmac(env.salt, env.nonce, env.cipher_text, env.hmac, keys.mac_key)
    return crypto.decrypt(
        decode_base64(env.cipher_text, "cipherText"),
        keys.encryption_key,
        decode_base64(env.nonce, "iv"),
    )


class EncryptionOrchestrator:
    """Stateless service bound to one stage's master secret."""

    def __init__(
        self,
        master_secret: str,
        params: Argon2Parameters = DEFAULT_ARGON2,
        max_workers: int = MAX_KDF_WORKERS,
    ):
        validate_master_secret(master_secret)
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._master_secret = master_secret
        self.params = params
        self.max_workers = max_workers

    def __repr__(self):
        return f"EncryptionOrchestrator(params={self.params!r}, max_workers={self.max_workers})"

    def encrypt_value(self, value: str) -> str:
        return encrypt_value(value, self._master_secret, self.params)

    def decrypt_value(self, envelope_string: str) -> str:
        return decrypt_variable(envelope_string, self._master_secret, self.params)

    def _map_bounded(self, fn, values: Sequence[str]) -> List[str]:
        # Results come back in input order.
        if len(values) <= 1 or self.max_workers == 1:
            return [fn(v) for v in values]
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(values))) as pool:
            return list(pool.map(fn, values))

    def decrypt_many(self, values: Iterable[str]) -> List[str]:
        return self._map_bounded(self.decrypt_value, list(values))

    def decrypt_credentials(self, username: str, password: str) -> Credentials:
        if not username or not password:
            raise ValidationError("Invalid credentials: Missing username or password.")
        plain_user, plain_password = self.decrypt_many([username, password])
        return Credentials(username=plain_user, password=plain_password)

    def encrypt_lines(
        self,
        lines: List[str],
        target_names: Optional[Iterable[str]] = None,
        report: Optional[EncryptionReport] = None,
    ) -> List[str]:
        """
        Return a copy of ``lines`` with targeted plaintext values replaced by
        envelopes. ``target_names=None`` targets every assignment.

        A key assigned more than once is rewritten on every line, so no
        plaintext copy is left behind next to an envelope.

        Raises SecretNotFoundError before any encryption work when a target
        does not appear in ``lines``.
        """
        if isinstance(target_names, str):
            raise TypeError("target_names must be an iterable of variable names, not a string")
        report = report if report is not None else EncryptionReport()
        assignments = {
            name: [envfile.unquote(v) for v in values]
            for name, values in envfile.collect_assignments(lines).items()
        }

        if target_names is None:
            targets = list(assignments)
        else:
            targets = list(dict.fromkeys(target_names))
            missing = [name for name in targets if name not in assignments]
            if missing:
                raise SecretNotFoundError(
                    f"Environment variable(s) not found: {', '.join(missing)}"
                )

        updates: Dict[str, str] = {}
        pending: Dict[str, str] = {}
        for name in targets:
            values = assignments[name]
            value = values[-1]
            if all(envelope.is_encrypted(v) for v in values):
                logger.info("Variable '%s' is already encrypted; skipping", name)
                report.skipped.append(name)
            elif envelope.is_encrypted(value):
                logger.warning("Variable '%s' has plaintext duplicates; replacing them", name)
                updates[name] = value
                report.encrypted.append(name)
            elif not value and target_names is None:
                logger.warning("Variable '%s' is empty; skipping", name)
            elif not value:
                raise ValidationError(f"Variable '{name}' has an empty value and cannot be encrypted")
            else:
                pending[name] = value

        if pending:
            names = list(pending)
            sealed = self._map_bounded(self.encrypt_value, [pending[n] for n in names])
            updates.update(zip(names, sealed))
            report.encrypted.extend(names)
            logger.info("Encrypted %d variable(s): %s", len(names), ", ".join(names))

        if not updates:
            return list(lines)
        return envfile.update_lines(lines, updates)

    def encrypt_variables(
        self,
        file_contents: str,
        target_names: Optional[Iterable[str]] = None,
    ) -> str:
        """Text-in, text-out form of :meth:`encrypt_lines`; output uses \\n line endings."""
        lines = envfile.split_lines(file_contents)
        return envfile.join_lines(self.encrypt_lines(lines, target_names))

    def encrypt_file(
        self,
        path: Path | str,
        target_names: Optional[Iterable[str]] = None,
    ) -> EncryptionReport:
        """
        Encrypt variables of the file at ``path`` in place.

        The whole read -> transform -> write cycle runs under an exclusive
        lock. The file is rewritten once, atomically, and only if at least one
        value changed; any error leaves it untouched.
        """
        p = Path(path)
        report = EncryptionReport(path=p)
        with envfile.locked(p):
            lines = envfile.read_lines(p)
            updated = self.encrypt_lines(lines, target_names, report=report)
            if report.encrypted:
                envfile.write_lines(p, updated)
                report.written = True
            else:
                logger.info("No variables to encrypt in %s", p)
        return report
