"""Credential lookup for the test harness.

Under CI the credentials come straight from ``CI_<PREFIX>_USERNAME`` /
``CI_<PREFIX>_PASSWORD`` process variables. Locally they are read from the
loaded stage variables as ENC2 envelopes and decrypted with the stage secret.
"""
from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

from envseal.config.loader import EnvironmentLoader
from envseal.config.secrets import SecretStore
from envseal.config.settings import Settings
from envseal.core.exceptions import ValidationError
from .orchestrator import Credentials, EncryptionOrchestrator

logger = logging.getLogger(__name__)

KNOWN_PREFIXES = ("AUTH", "PORTAL", "DATABASE")


class CredentialResolver:
    def __init__(
        self,
        settings: Settings,
        variables: Mapping[str, str],
        secret_store: Optional[SecretStore] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.settings = settings
        self.variables = variables
        self.environ = os.environ if environ is None else environ
        self.secret_store = secret_store or SecretStore(
            settings.paths, environ=self.environ, use_keyring=settings.use_keyring
        )

    def _require(self, source: Mapping[str, str], name: str) -> str:
        value = source.get(name)
        if not value or not value.strip():
            raise ValidationError(f"Environment variable {name} is not set or is empty")
        return value

    def get_value(self, name: str) -> str:
        """Plain (non-secret) setting such as a base URL."""
        if self.settings.ci:
            return self._require(self.environ, f"CI_{name}")
        return self._require(self.variables, name)

    def get_credentials(self, prefix: str) -> Credentials:
        prefix = prefix.upper()
        if self.settings.ci:
            return Credentials(
                username=self._require(self.environ, f"CI_{prefix}_USERNAME"),
                password=self._require(self.environ, f"CI_{prefix}_PASSWORD"),
            )

        username = self._require(self.variables, f"{prefix}_USERNAME")
        password = self._require(self.variables, f"{prefix}_PASSWORD")
        orchestrator = EncryptionOrchestrator(
            self.secret_store.get(self.settings.stage),
            params=self.settings.argon2,
            max_workers=self.settings.kdf_workers,
        )
        logger.debug("Decrypting %s credentials for stage %s", prefix, self.settings.stage.value)
        return orchestrator.decrypt_credentials(username, password)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "CredentialResolver":
        """Resolver over the base and stage files of ``settings.stage``."""
        variables = EnvironmentLoader(settings.paths, settings.stage).initialize()
        return cls(settings, variables, environ=environ)
