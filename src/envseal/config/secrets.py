"""Resolution and creation of per-stage master secrets.

Lookup order for a stage's master secret (variable ``<STAGE>_SECRET_KEY``):
process environment, then the base ``.env`` file, then the OS keystore when
enabled. The value is validated before it is handed to any derivation.
"""
from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

from dotenv import dotenv_values

from envseal.core.exceptions import ConfigurationError, SecretNotFoundError
from envseal.security import keystore
from envseal.security.entropy import generate_secret_key
from envseal.security.kdf import validate_master_secret
from . import envfile
from .settings import EnvironmentPaths, Stage, secret_key_variable

logger = logging.getLogger(__name__)


class SecretStore:
    """Looks up the master secret for a deployment stage."""

    def __init__(
        self,
        paths: EnvironmentPaths,
        environ: Optional[Mapping[str, str]] = None,
        use_keyring: bool = False,
    ):
        self.paths = paths
        self.environ = os.environ if environ is None else environ
        self.use_keyring = use_keyring

    def _from_base_file(self, variable: str) -> Optional[str]:
        base = self.paths.base_file
        if not base.is_file():
            logger.debug("No base environment file at %s", base)
            return None
        return dotenv_values(base, encoding="utf-8").get(variable)

    def lookup(self, stage: Stage) -> Optional[str]:
        variable = secret_key_variable(stage)
        value = self.environ.get(variable)
        if value:
            return value
        value = self._from_base_file(variable)
        if value:
            return value
        if self.use_keyring:
            return keystore.load_secret(variable)
        return None

    def get(self, stage: Stage) -> str:
        """Return the validated master secret for ``stage``."""
        variable = secret_key_variable(stage)
        secret = self.lookup(stage)
        if not secret:
            raise SecretNotFoundError(
                f"Secret key variable '{variable}' not found in environment or {self.paths.base_file}"
            )
        validate_master_secret(secret)
        return secret


def generate_stage_secret(
    paths: EnvironmentPaths,
    stage: Stage,
    skip_if_exists: bool = True,
) -> bool:
    """
    Write a fresh master secret for ``stage`` into the base ``.env`` file.

    Returns True when a secret was written, False when one already existed
    and ``skip_if_exists`` is set.
    """
    variable = secret_key_variable(stage)
    base = paths.base_file
    paths.ensure_root()

    with envfile.locked(base):
        lines = envfile.read_lines(base) if base.is_file() else []
        existing = envfile.extract_variables(lines).get(variable)
        if existing and skip_if_exists:
            logger.info("Secret key '%s' already exists; skipping generation", variable)
            return False

        updated = envfile.update_lines(lines, {variable: generate_secret_key()})
        envfile.write_lines(base, updated)

    logger.info("Stored new secret key '%s' in %s", variable, base)
    return True


def store_stage_secret_in_keyring(
    stage: Stage,
    secret: Optional[str] = None,
    replace: bool = False,
    allow_insecure: bool = False,
) -> Optional[str]:
    """
    Persist a master secret for ``stage`` in the OS keystore and return it.
    A new secret is generated when none is given.

    An existing entry is kept (and None returned) unless ``replace`` is set,
    in which case it is deleted before the new secret is saved. Refuses
    backends that look insecure unless ``allow_insecure`` is set.
    """
    if not allow_insecure:
        secure, msg = keystore.assess_keyring_backend()
        if not secure:
            raise ConfigurationError(
                f"refusing to store master secret in OS keystore: {msg}; "
                "pass allow_insecure=True to override if you understand the risk"
            )
    variable = secret_key_variable(stage)
    if keystore.load_secret(variable):
        if not replace:
            logger.info("Secret key '%s' already exists in OS keystore; skipping", variable)
            return None
        keystore.delete_secret(variable)
        logger.info("Removed previous secret key '%s' from OS keystore", variable)

    secret = secret or generate_secret_key()
    validate_master_secret(secret)
    keystore.save_secret(variable, secret)
    logger.info("Stored secret key for stage '%s' in OS keystore", Stage.parse(stage).value)
    return secret
