"""One set of patch operations, implemented for the local filesystem here and
for remote shells in `remote.py`."""

from __future__ import annotations

import logging
from pathlib import Path

from . import backup, locator, patcher, settings
from .errors import NotFoundError
from .mapping import LEGACY_PATCH_MARKER
from .models import Config

logger = logging.getLogger(__name__)


class DeployBackend:
    """Paths are plain strings so remote paths never get resolved locally."""

    name = ""

    def locate(self, filename: str) -> str:
        raise NotImplementedError

    def apply(self, path: str, mappings: dict[str, str]) -> list[str]:
        raise NotImplementedError

    def restore(self, path: str) -> None:
        raise NotImplementedError

    def has_backup(self, path: str) -> bool:
        raise NotImplementedError

    def is_patched(self, path: str, marker: str) -> bool:
        raise NotImplementedError

    def cleanup_legacy(self, path: str) -> bool:
        """Roll back an old extension.js patch if both marker and backup exist."""
        raise NotImplementedError

    def write_settings(self, cfg: Config) -> None:
        raise NotImplementedError

    def settings_exist(self) -> bool:
        raise NotImplementedError

    def try_locate(self, filename: str) -> str | None:
        try:
            return self.locate(filename)
        except NotFoundError:
            return None


class LocalBackend(DeployBackend):
    name = "local"

    def __init__(self, home: Path | None = None) -> None:
        self.home = home if home is not None else Path.home()

    def locate(self, filename: str) -> str:
        return str(locator.locate(filename, remote=False, home=self.home))

    def apply(self, path: str, mappings: dict[str, str]) -> list[str]:
        return [p.name for p in patcher.apply_patch(Path(path), mappings)]

    def restore(self, path: str) -> None:
        backup.restore(Path(path))

    def has_backup(self, path: str) -> bool:
        return backup.has_backup(Path(path))

    def is_patched(self, path: str, marker: str) -> bool:
        return backup.is_patched(Path(path), marker)

    def cleanup_legacy(self, path: str) -> bool:
        if not (self.is_patched(path, LEGACY_PATCH_MARKER) and self.has_backup(path)):
            return False
        backup.restore(Path(path))
        return True

    def write_settings(self, cfg: Config) -> None:
        settings.write_claude_settings(cfg, self.home)
        settings.write_vscode_settings(cfg.mcp_servers, self.home)

    def settings_exist(self) -> bool:
        return settings.claude_settings_exist(self.home)
