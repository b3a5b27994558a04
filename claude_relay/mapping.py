"""Mapping-table serialization, patch markers and backup naming.

Shared by the local and remote backends so both inject byte-identical headers
and look for backups under the same name.
"""

from __future__ import annotations

import json
from pathlib import PurePath

CLI_FILENAME = "cli.js"
EXTENSION_FILENAME = "extension.js"

CLI_PATCH_MARKER = "/* claude-relay-cli-patch */"
# extension.js was patched by older releases; only cleaned up now
LEGACY_PATCH_MARKER = "/* claude-relay-patch-begin */"

BACKUP_SUFFIX = ".claude-relay-backup"

PRIMARY_IMPORT_ANCHOR = "import{createRequire"
FALLBACK_IMPORT_ANCHOR = "import "

MAP_GLOBAL = "globalThis.__cliModelMap"
LOOKUP_GLOBAL = "globalThis.__cliMap"


def to_js_obj(mappings: dict[str, str]) -> str:
    return json.dumps(mappings, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def build_header(mappings: dict[str, str]) -> str:
    return (
        f"{CLI_PATCH_MARKER}"
        f"{MAP_GLOBAL}={to_js_obj(mappings)};"
        f"{LOOKUP_GLOBAL}=function(m){{return({MAP_GLOBAL}[m]||m)}};"
    )


def backup_path(path: str | PurePath) -> str:
    return f"{path}{BACKUP_SUFFIX}"
