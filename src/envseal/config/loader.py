"""Loads the base and stage .env files for the active stage."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, MutableMapping, Optional

from dotenv import dotenv_values, load_dotenv

from .settings import EnvironmentPaths, Stage

logger = logging.getLogger(__name__)


class EnvironmentLoader:
    """
    Reads ``.env`` then ``.env.<stage>``; stage values override base values.
    A missing file is not an error: it is logged and contributes nothing.
    """

    def __init__(self, paths: EnvironmentPaths, stage: Stage):
        self.paths = paths
        self.stage = Stage.parse(stage)
        self.variables: Dict[str, str] = {}
        self._loaded_files: List[Path] = []
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def loaded_files(self) -> List[Path]:
        return list(self._loaded_files)

    def _load_file(self, path: Path, label: str) -> None:
        if not path.is_file():
            logger.warning(
                "Environment '%s' was specified but its configuration file could not be found at %s",
                label,
                path,
            )
            return
        # keys written without '=' come back as None
        values = {k: v for k, v in dotenv_values(path, encoding="utf-8").items() if v is not None}
        self.variables.update(values)
        self._loaded_files.append(path)
        logger.debug("Loaded %d variable(s) from %s", len(values), path)

    def initialize(self) -> Dict[str, str]:
        if self._initialized:
            logger.debug("environment already initialized")
            return self.variables

        self._load_file(self.paths.base_file, "base")
        self._load_file(self.paths.stage_file(self.stage), self.stage.value)
        self._initialized = True

        if self._loaded_files:
            logger.info(
                "Environment initialized with %d config files: %s",
                len(self._loaded_files),
                ", ".join(str(p) for p in self._loaded_files),
            )
        else:
            logger.warning("Environment initialized but no config files were loaded")
        return self.variables

    def export(self, environ: Optional[MutableMapping[str, str]] = None, override: bool = False) -> int:
        """
        Copy loaded variables into ``environ``; returns the count set.

        Without ``environ`` the files are applied to the process environment
        with ``load_dotenv``. Existing process values are kept unless
        ``override`` is set; either way a stage value beats a base value.
        """
        self.initialize()
        target = os.environ if environ is None else environ
        keys = [key for key in self.variables if override or key not in target]

        if environ is None:
            # without override the first file to set a key wins, so stage goes first
            files = self._loaded_files if override else list(reversed(self._loaded_files))
            for path in files:
                load_dotenv(path, override=override, encoding="utf-8")
        else:
            for key in keys:
                environ[key] = self.variables[key]
        return len(keys)
