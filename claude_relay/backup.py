from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .errors import BACKED_UP, IOFailure, NotFoundError
from .mapping import CLI_PATCH_MARKER, backup_path

logger = logging.getLogger(__name__)


def has_backup(path: Path) -> bool:
    return Path(backup_path(path)).is_file()


def is_patched(path: Path, marker: str = CLI_PATCH_MARKER) -> bool:
    try:
        data = path.read_bytes()
    except OSError:
        return False
    return marker.encode("utf-8") in data


def read_pristine(path: Path) -> bytes:
    """Backup content when one exists, otherwise the live file."""
    source = Path(backup_path(path)) if has_backup(path) else path
    try:
        return source.read_bytes()
    except FileNotFoundError as exc:
        raise NotFoundError(f"{source} not found") from exc
    except OSError as exc:
        raise IOFailure(f"read {source}: {exc}") from exc


def ensure_backup(path: Path, data: bytes) -> bool:
    """Write `data` as the backup of `path` unless a backup already exists."""
    bak = Path(backup_path(path))
    if bak.is_file():
        return False
    try:
        bak.write_bytes(data)
    except OSError as exc:
        raise IOFailure(f"create backup {bak}: {exc}", step=BACKED_UP) from exc
    logger.info("backup created: %s", bak)
    return True


def restore(path: Path) -> None:
    bak = Path(backup_path(path))
    if not bak.is_file():
        raise NotFoundError(f"no backup found at {bak}")
    try:
        shutil.copyfile(bak, path)
    except OSError as exc:
        raise IOFailure(f"restore {path}: {exc}") from exc
    logger.info("restored %s from %s", path, bak)
