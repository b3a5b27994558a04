"""Sequence locate → backup → patch → settings for a target, and the reverse.

Failures surface as `DeployError` naming the step; nothing is rolled back
automatically, the caller runs `restore` explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .backends import DeployBackend, LocalBackend
from .errors import (
    BACKED_UP,
    LOCATED,
    PATCHED,
    RESTORED,
    SETTINGS_WRITTEN,
    DeployError,
    RelayError,
)
from .mapping import CLI_FILENAME, CLI_PATCH_MARKER, EXTENSION_FILENAME, LEGACY_PATCH_MARKER
from .models import Config, DeployStatus, Target
from .remote import RemoteBackend, RemoteExecutor

logger = logging.getLogger(__name__)


@dataclass
class DeployResult:
    target: str
    path: str = ""
    steps: list[str] = field(default_factory=list)
    applied: list[str] = field(default_factory=list)
    legacy_cleaned: bool = False


class Deployer:
    def __init__(self, home: Path | None = None, executor: RemoteExecutor | None = None) -> None:
        self.home = home
        self.executor = executor or RemoteExecutor()

    def backend_for(self, target: Target) -> DeployBackend:
        if target.is_remote:
            return RemoteBackend(target, self.executor)
        return LocalBackend(self.home)

    def _cleanup_legacy(self, backend: DeployBackend, target: Target) -> bool:
        # extension.js serves every Copilot model, so its old patch is rolled back
        try:
            ext = backend.try_locate(EXTENSION_FILENAME)
            if ext and backend.cleanup_legacy(ext):
                logger.info("%s: legacy extension.js patch removed (%s)", target.name, ext)
                return True
        except RelayError as exc:
            logger.warning("%s: legacy extension.js cleanup failed: %s", target.name, exc)
        return False

    def deploy(self, target: Target, cfg: Config) -> DeployResult:
        backend = self.backend_for(target)
        result = DeployResult(target=target.name)
        result.legacy_cleaned = self._cleanup_legacy(backend, target)

        step = LOCATED
        try:
            result.path = backend.locate(CLI_FILENAME)
            result.steps.append(LOCATED)

            # apply backs up and patches; a backup failure reports its own step
            step = PATCHED
            result.applied = backend.apply(result.path, cfg.mapping_table())
            result.steps.extend((BACKED_UP, PATCHED))

            step = SETTINGS_WRITTEN
            backend.write_settings(cfg)
            result.steps.append(SETTINGS_WRITTEN)
        except RelayError as exc:
            step = exc.step or step
            logger.error("%s: deploy failed at %s: %s", target.name, step, exc)
            raise DeployError(step, exc) from exc

        logger.info("%s: deployed %s (%s)", target.name, result.path, ", ".join(result.applied))
        return result

    def status(self, target: Target) -> DeployStatus:
        backend = self.backend_for(target)
        status = DeployStatus(target=target.name)

        ext = backend.try_locate(EXTENSION_FILENAME)
        if ext:
            status.ext_path = ext
            status.patched = backend.is_patched(ext, LEGACY_PATCH_MARKER)
            status.backup_exists = backend.has_backup(ext)

        cli = backend.try_locate(CLI_FILENAME)
        if cli:
            status.cli_path = cli
            status.cli_patched = backend.is_patched(cli, CLI_PATCH_MARKER)
            status.cli_backup_exists = backend.has_backup(cli)

        status.config_exists = backend.settings_exist()
        return status

    def restore(self, target: Target) -> DeployResult:
        backend = self.backend_for(target)
        result = DeployResult(target=target.name)
        result.legacy_cleaned = self._restore_legacy(backend, target)

        step = LOCATED
        try:
            result.path = backend.locate(CLI_FILENAME)
            result.steps.append(LOCATED)
            step = RESTORED
            backend.restore(result.path)
            result.steps.append(RESTORED)
        except RelayError as exc:
            logger.error("%s: restore failed at %s: %s", target.name, step, exc)
            raise DeployError(step, exc) from exc

        logger.info("%s: restored %s", target.name, result.path)
        return result

    def _restore_legacy(self, backend: DeployBackend, target: Target) -> bool:
        try:
            ext = backend.try_locate(EXTENSION_FILENAME)
            if ext and backend.has_backup(ext):
                backend.restore(ext)
                return True
        except RelayError as exc:
            logger.warning("%s: legacy extension.js restore failed: %s", target.name, exc)
        return False
