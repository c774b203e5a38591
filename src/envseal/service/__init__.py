"""High-level encryption services built on envseal.security."""

from .orchestrator import (
    Credentials,
    EncryptionOrchestrator,
    EncryptionReport,
    decrypt_variable,
    encrypt_value,
)

__all__ = [
    "Credentials",
    "EncryptionOrchestrator",
    "EncryptionReport",
    "decrypt_variable",
    "encrypt_value",
]
