"""Run the patch operations on a remote host through ssh or `gh codespace ssh`.

Nothing persists between calls, so every operation is one self-contained shell
command. The remote patch script cannot run the structural discovery; it only
knows the fixed signatures from `discovery.remote_signatures()` and will
under-patch a bundle whose minified names have moved on.
"""

from __future__ import annotations

import json
import logging
import shlex
import subprocess
from typing import Callable

from .backends import DeployBackend
from .discovery import remote_signatures
from .errors import BACKED_UP, FormatChangedError, NotFoundError, RemoteTransportError
from .locator import search_patterns
from .mapping import (
    CLI_PATCH_MARKER,
    FALLBACK_IMPORT_ANCHOR,
    LEGACY_PATCH_MARKER,
    PRIMARY_IMPORT_ANCHOR,
    backup_path,
    build_header,
)
from .models import Config, Target, TargetKind
from .settings import claude_settings_json

logger = logging.getLogger(__name__)

q = shlex.quote

# exit statuses of the patch script
FORMAT_CHANGED_EXIT = 3
BACKUP_FAILED_EXIT = 4

REMOTE_CLAUDE_SETTINGS = "~/.claude/settings.json"

PATCH_SCRIPT = """\
import json, os, shutil, sys
cfg = json.loads(sys.argv[1])
def fail(msg, code=3):
    sys.stderr.write(msg + "\\n")
    sys.exit(code)
path, bak = cfg["path"], cfg["backup"]
has_backup = os.path.isfile(bak)
with open(bak if has_backup else path, encoding="utf-8", errors="surrogateescape", newline="") as f:
    c = f.read()
if cfg["marker"] in c:
    fail("cli.js is already patched and has no backup; reinstall the extension")
for anchor in cfg["anchors"]:
    i = c.find(anchor)
    if i >= 0:
        c = c[:i] + cfg["header"] + c[i:]
        break
else:
    fail("cannot find import statement in cli.js; file format may have changed")
applied = []
for name, old, new in cfg["signatures"]:
    if old in c:
        c = c.replace(old, new, 1)
        applied.append(name)
if not applied:
    fail("no fixed signatures matched in cli.js; minified names may have changed")
if not has_backup:
    try:
        shutil.copyfile(path, bak)
    except OSError as e:
        fail(f"create backup {bak}: {e}", 4)
with open(path, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
    f.write(c)
print(",".join(applied))
"""

Runner = Callable[..., subprocess.CompletedProcess]


class RemoteExecutor:
    def __init__(self, run: Runner = subprocess.run) -> None:
        self._run = run

    @staticmethod
    def argv(target: Target, command: str) -> list[str]:
        if target.kind is TargetKind.REMOTE_SHELL:
            return ["ssh", target.host, command]
        if target.kind is TargetKind.REMOTE_CODESPACE:
            return ["gh", "codespace", "ssh", "-c", target.host, "--", command]
        raise RemoteTransportError(f"unsupported remote kind: {target.kind.value}")

    def execute(self, target: Target, command: str) -> str:
        argv = self.argv(target, command)
        logger.debug("%s: %s", target.name, command.splitlines()[0] if command else "")
        try:
            proc = self._run(argv, capture_output=True, text=True)
        except OSError as exc:
            raise RemoteTransportError(f"{argv[0]}: {exc}") from exc

        if proc.returncode != 0:
            detail = (proc.stderr or "").strip() or f"{argv[0]} exited with status {proc.returncode}"
            raise RemoteTransportError(detail, exit_code=proc.returncode)
        return (proc.stdout or "").strip()


def find_newest_command(filename: str) -> str:
    globs = " ".join(f"~/{pattern}" for pattern in search_patterns(filename, remote=True))
    return f"ls -t {globs} 2>/dev/null | head -1"


def heredoc(command: str, body: str, tag: str) -> str:
    return f"{command} << '{tag}'\n{body}\n{tag}"


class RemoteBackend(DeployBackend):
    name = "remote"

    def __init__(self, target: Target, executor: RemoteExecutor | None = None) -> None:
        self.target = target
        self.executor = executor or RemoteExecutor()

    def _exec(self, command: str) -> str:
        return self.executor.execute(self.target, command)

    def _yes(self, test: str) -> bool:
        return self._exec(f"{test} && echo yes || echo no") == "yes"

    def locate(self, filename: str) -> str:
        path = self._exec(find_newest_command(filename))
        if not path:
            raise NotFoundError(f"{filename} not found on {self.target.name}")
        return path

    def has_backup(self, path: str) -> bool:
        return self._yes(f"test -f {q(backup_path(path))}")

    def is_patched(self, path: str, marker: str) -> bool:
        return self._yes(f"grep -qF {q(marker)} {q(path)} 2>/dev/null")

    def patch_command(self, path: str, mappings: dict[str, str]) -> str:
        payload = {
            "path": path,
            "backup": backup_path(path),
            "marker": CLI_PATCH_MARKER,
            "header": build_header(mappings),
            "anchors": [PRIMARY_IMPORT_ANCHOR, FALLBACK_IMPORT_ANCHOR],
            "signatures": [[p.name, p.old, p.new] for p in remote_signatures()],
        }
        return heredoc(f"python3 - {q(json.dumps(payload))}", PATCH_SCRIPT, "EOFRELAYPATCH")

    def apply(self, path: str, mappings: dict[str, str]) -> list[str]:
        logger.warning(
            "%s: remote patching uses fixed signatures only and may under-patch a newer cli.js",
            self.target.name,
        )
        try:
            out = self._exec(self.patch_command(path, mappings))
        except RemoteTransportError as exc:
            if exc.exit_code == FORMAT_CHANGED_EXIT:
                raise FormatChangedError(str(exc)) from exc
            if exc.exit_code == BACKUP_FAILED_EXIT:
                raise RemoteTransportError(str(exc), exit_code=exc.exit_code, step=BACKED_UP) from exc
            raise

        applied = [name for name in out.splitlines()[-1].split(",") if name] if out else []
        missing = [p.name for p in remote_signatures() if p.name not in applied]
        if missing:
            logger.warning("%s: signatures not found in %s: %s", self.target.name, path, ", ".join(missing))
        return applied

    def restore(self, path: str) -> None:
        bak = backup_path(path)
        if not self.has_backup(path):
            raise NotFoundError(f"no backup found at {bak} on {self.target.name}")
        self._exec(f"cp {q(bak)} {q(path)}")

    def cleanup_legacy(self, path: str) -> bool:
        bak = backup_path(path)
        out = self._exec(
            f"grep -qF {q(LEGACY_PATCH_MARKER)} {q(path)} && test -f {q(bak)} "
            f"&& cp {q(bak)} {q(path)} && echo restored || echo skip"
        )
        return out == "restored"

    def write_settings(self, cfg: Config) -> None:
        cmd = heredoc(f"mkdir -p ~/.claude && cat > {REMOTE_CLAUDE_SETTINGS}", claude_settings_json(cfg), "EOFCLAUDE")
        self._exec(f"{cmd}\nchmod 600 {REMOTE_CLAUDE_SETTINGS}")

    def settings_exist(self) -> bool:
        return self._yes(f"test -f {REMOTE_CLAUDE_SETTINGS}")
