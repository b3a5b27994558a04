"""claude-relay command line: run the control server or deploy from a shell."""

from __future__ import annotations

import argparse
import sys
import threading
import webbrowser
from pathlib import Path

import uvicorn

from . import __version__
from .config import ConfigStore, default_config_path
from .deployer import Deployer
from .errors import DeployError, FormatChangedError, NotFoundError, RelayError
from .log import setup_logging
from .server import create_app

DEFAULT_ADDR = "127.0.0.1:8787"

EXIT_ERROR = 1
EXIT_NOT_FOUND = 2
EXIT_FORMAT_CHANGED = 3


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="claude-relay", description="Route Copilot Chat Claude models through a relay")
    parser.add_argument("--config", default=str(default_config_path()), help="Path to config.json")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the web control surface (default)")
    serve.add_argument("--addr", default=DEFAULT_ADDR, help="listen address host:port")
    serve.add_argument("--no-browser", action="store_true", help="don't auto-open browser")

    for name, text in (
        ("deploy", "Patch cli.js and write settings on a target"),
        ("status", "Show patch status of a target"),
        ("restore", "Restore cli.js from its backup on a target"),
    ):
        cmd = sub.add_parser(name, help=text)
        cmd.add_argument("target", nargs="?", default="local")

    sub.add_parser("targets", help="List configured targets")
    return parser.parse_args(argv)


def split_addr(addr: str) -> tuple[str, int]:
    host, _, port = addr.rpartition(":")
    if not host or not port.isdigit():
        raise ValueError(f"invalid listen address: {addr}")
    return host, int(port)


def serve(store: ConfigStore, addr: str, open_browser: bool) -> int:
    host, port = split_addr(addr)
    url = f"http://{addr}"
    if open_browser:
        threading.Timer(1.0, webbrowser.open, args=(url,)).start()
    print(f"claude-relay running at {url}")
    uvicorn.run(create_app(store), host=host, port=port, log_level="info")
    return 0


def exit_code_for(exc: DeployError) -> int:
    if isinstance(exc.cause, NotFoundError):
        return EXIT_NOT_FOUND
    if isinstance(exc.cause, FormatChangedError):
        return EXIT_FORMAT_CHANGED
    return EXIT_ERROR


def run_target_command(store: ConfigStore, command: str, name: str) -> int:
    cfg = store.load()
    target = cfg.find_target(name)
    if target is None:
        print(f"{command}: unknown target: {name}", file=sys.stderr)
        return EXIT_NOT_FOUND

    deployer = Deployer()
    if command == "status":
        try:
            st = deployer.status(target)
        except RelayError as exc:
            print(f"status: FAILED: {exc}", file=sys.stderr)
            return EXIT_ERROR
        print(
            f"status: target={st.target}, cli={st.cli_path}, patched={st.cli_patched}, "
            f"backup={st.cli_backup_exists}, settings={st.config_exists}"
        )
        if st.patched:
            print(f"status: WARNING: legacy extension.js patch still present: {st.ext_path}")
        return 0

    try:
        if command == "deploy":
            result = deployer.deploy(target, cfg)
        else:
            result = deployer.restore(target)
    except DeployError as exc:
        print(f"{command}: FAILED at {exc.step}: {exc.cause}", file=sys.stderr)
        return exit_code_for(exc)

    print(f"{command}: target={result.target}, path={result.path}, steps={','.join(result.steps)}")
    if result.applied:
        print(f"{command}: applied={','.join(result.applied)}")
    if result.legacy_cleaned:
        print(f"{command}: legacy extension.js restored")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)
    store = ConfigStore(Path(args.config).expanduser())

    command = args.command or "serve"
    if command == "serve":
        addr = getattr(args, "addr", DEFAULT_ADDR)
        no_browser = getattr(args, "no_browser", False)
        try:
            return serve(store, addr, not no_browser)
        except ValueError as exc:
            print(f"serve: {exc}", file=sys.stderr)
            return EXIT_ERROR
    if command == "targets":
        for t in store.load().targets:
            print(f"{t.name}\t{t.kind.value}\t{t.host or ''}")
        return 0
    return run_target_command(store, command, args.target)


if __name__ == "__main__":
    raise SystemExit(main())
