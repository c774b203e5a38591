"""
Stage layout and process settings.

The configuration root is resolved once by ``Settings.from_env`` and carried
around as an ``EnvironmentPaths`` value; nothing below caches it globally.

Layout under the root:
 - .env            base file, holds <STAGE>_SECRET_KEY entries
 - .env.<stage>    per-stage variables (plaintext or ENC2 envelopes)
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from envseal.core.exceptions import ConfigurationError
from envseal.security.kdf import Argon2Parameters, DEFAULT_ARGON2

BASE_FILE = ".env"
SECRET_KEY_SUFFIX = "SECRET_KEY"
DEFAULT_ROOT = "envs"
DEFAULT_KDF_WORKERS = 2


class Stage(Enum):
    DEV = "dev"
    QA = "qa"
    UAT = "uat"
    PREPROD = "preprod"
    PROD = "prod"

    @classmethod
    def parse(cls, value) -> "Stage":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ConfigurationError(
                f"Invalid environment stage: {value!r}. Valid stages are: {valid}"
            ) from None


@dataclass(frozen=True)
class EnvironmentPaths:
    root: Path

    @property
    def base_file(self) -> Path:
        return self.root / BASE_FILE

    def stage_file(self, stage: Stage) -> Path:
        return self.root / f"{BASE_FILE}.{Stage.parse(stage).value}"

    def stage_files(self) -> dict:
        return {stage: self.stage_file(stage) for stage in Stage}

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root


def secret_key_variable(stage: Stage) -> str:
    """Name of the base-file variable that holds the stage master secret."""
    return f"{Stage.parse(stage).value.upper()}_{SECRET_KEY_SUFFIX}"


def _is_truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    paths: EnvironmentPaths
    stage: Stage = Stage.DEV
    kdf_workers: int = DEFAULT_KDF_WORKERS
    argon2: Argon2Parameters = field(default=DEFAULT_ARGON2)
    ci: bool = False
    use_keyring: bool = False

    @property
    def stage_file(self) -> Path:
        return self.paths.stage_file(self.stage)

    @property
    def secret_variable(self) -> str:
        return secret_key_variable(self.stage)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from process environment variables:

        - ENVSEAL_ROOT: directory holding the .env files (default ./envs)
        - ENV: stage name (default dev)
        - ENVSEAL_KDF_WORKERS: concurrent Argon2 derivations (default 2)
        - ENVSEAL_USE_KEYRING: also look up master secrets in the OS keystore
        - CI: running under continuous integration
        """
        env = os.environ if environ is None else environ
        root = Path(env.get("ENVSEAL_ROOT", DEFAULT_ROOT)).expanduser().resolve()
        stage = Stage.parse(env.get("ENV", Stage.DEV.value))

        raw_workers = env.get("ENVSEAL_KDF_WORKERS", str(DEFAULT_KDF_WORKERS))
        try:
            workers = int(raw_workers)
        except ValueError:
            raise ConfigurationError(f"ENVSEAL_KDF_WORKERS must be an integer, got {raw_workers!r}") from None
        if workers < 1:
            raise ConfigurationError("ENVSEAL_KDF_WORKERS must be at least 1")

        return cls(
            paths=EnvironmentPaths(root),
            stage=stage,
            kdf_workers=workers,
            ci=_is_truthy(env.get("CI")),
            use_keyring=_is_truthy(env.get("ENVSEAL_USE_KEYRING")),
        )
