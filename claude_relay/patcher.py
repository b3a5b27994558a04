"""Inject the model map into cli.js and rewrite the functions that pick a model.

cli.js is an ES module whose only top-level "use strict" lives inside a
Function() constructor string, so the header goes before the first import and
publishes everything on globalThis.
"""

from __future__ import annotations

import logging
from pathlib import Path

from . import backup
from .discovery import PatchPoint, discover
from .errors import FormatChangedError, IOFailure
from .mapping import CLI_PATCH_MARKER, FALLBACK_IMPORT_ANCHOR, PRIMARY_IMPORT_ANCHOR, build_header

logger = logging.getLogger(__name__)

# surrogateescape keeps undecodable bytes intact through decode/encode
ENCODING = "utf-8"
ERRORS = "surrogateescape"


def insert_header(content: str, header: str) -> str:
    for anchor in (PRIMARY_IMPORT_ANCHOR, FALLBACK_IMPORT_ANCHOR):
        idx = content.find(anchor)
        if idx >= 0:
            return content[:idx] + header + content[idx:]
    raise FormatChangedError("cannot find import statement in cli.js; file format may have changed")


def patch_content(content: str, mappings: dict[str, str]) -> tuple[str, list[PatchPoint]]:
    if CLI_PATCH_MARKER in content:
        # live file already patched and its backup is gone
        raise FormatChangedError("cli.js is already patched and has no backup; reinstall the extension")
    content = insert_header(content, build_header(mappings))

    applied = discover(content)
    # splice back to front so earlier offsets stay valid
    for point in sorted(applied, key=lambda p: p.start, reverse=True):
        content = content[:point.start] + point.new + content[point.start + len(point.old):]
        logger.debug("applied %s: %s", point.name, point.comment)

    if not applied:
        raise FormatChangedError(
            "no function-level patches matched in cli.js; minified names may have changed"
        )
    return content, applied


def apply_patch(path: Path, mappings: dict[str, str]) -> list[PatchPoint]:
    """Patch `path` from its pristine content; returns the applied patch points.

    Re-running always starts from the backup, so repeated deploys see the
    original function shapes. Nothing is written when patching fails.
    """
    pristine = backup.read_pristine(path)
    patched, applied = patch_content(pristine.decode(ENCODING, ERRORS), mappings)

    backup.ensure_backup(path, pristine)
    try:
        path.write_bytes(patched.encode(ENCODING, ERRORS))
    except OSError as exc:
        raise IOFailure(f"write {path}: {exc}") from exc

    logger.info("patched %s (%s)", path, ", ".join(p.name for p in applied))
    return applied
