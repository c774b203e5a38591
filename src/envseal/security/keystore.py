"""OS keystore integration for stage master secrets.

A tiny wrapper around `keyring` that stores one master secret per stage under
a service/account pair. Use this only for opt-in convenience storage; do not
assume keyring provides hardware-backed security on all platforms.
"""
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

DEFAULT_SERVICE = "envseal"


def save_secret(account: str, secret: str, service: str = DEFAULT_SERVICE) -> None:
    """Persist ``secret`` in the OS keystore under (service, account)."""
    keyring.set_password(service, account, secret)


def load_secret(account: str, service: str = DEFAULT_SERVICE) -> Optional[str]:
    """Load a stored secret; returns None when nothing is stored."""
    return keyring.get_password(service, account)


def delete_secret(account: str, service: str = DEFAULT_SERVICE) -> None:
    """Remove the secret from the OS keystore; missing entries are not an error."""
    try:
        keyring.delete_password(service, account)
    except PasswordDeleteError:
        pass


def assess_keyring_backend() -> tuple[bool, str]:
    """Return (is_secure, message) describing the current keyring backend.

    Heuristics are used because the `keyring` package exposes different backends
    across platforms.
    """
    try:
        backend = keyring.get_keyring()
    except KeyringError as e:
        return False, f"failed to get keyring backend: {e}"

    name = backend.__class__.__name__
    priority = getattr(backend, "priority", None)

    insecure_indicators = ("Plaintext", "Uncrypted", "Simple", "File")
    if any(tok in name for tok in insecure_indicators):
        return False, f"insecure backend detected: {name}"

    if priority is not None and priority <= 0:
        return False, f"no suitable secure keyring backend available (priority={priority}, backend={name})"

    if "Win" in name or "Keychain" in name or "SecretService" in name or "KWallet" in name:
        return True, f"backend looks acceptable: {name} (priority={priority})"

    return True, f"unknown backend '{name}', treat with caution (priority={priority})"
