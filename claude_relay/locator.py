from __future__ import annotations

import logging
from pathlib import Path

from .errors import NotFoundError

logger = logging.getLogger(__name__)

EXTENSION_GLOB = "github.copilot-chat-*"

# remote-mounted installs first; a desktop install only exists locally
REMOTE_ROOTS = (".vscode-server/extensions", ".vscode-remote/extensions")
LOCAL_ROOTS = REMOTE_ROOTS + (".vscode/extensions",)


def search_roots(remote: bool) -> tuple[str, ...]:
    return REMOTE_ROOTS if remote else LOCAL_ROOTS


def search_patterns(filename: str, remote: bool) -> list[str]:
    return [f"{root}/{EXTENSION_GLOB}/dist/{filename}" for root in search_roots(remote)]


def locate(filename: str, *, remote: bool = False, home: Path | None = None) -> Path:
    """Return the newest-looking installed copy of `filename`.

    Matches from every search root are pooled and the lexicographically
    greatest path wins, since extension directories embed sortable versions.
    """
    base = home if home is not None else Path.home()
    matches: list[str] = []
    for pattern in search_patterns(filename, remote):
        matches.extend(str(p) for p in base.glob(pattern) if p.is_file())

    if not matches:
        raise NotFoundError(f"{filename} not found under {base}; ensure GitHub Copilot Chat is installed")

    matches.sort()
    logger.debug("locate %s: %d candidate(s), picked %s", filename, len(matches), matches[-1])
    return Path(matches[-1])
