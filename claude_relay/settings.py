"""Claude Code and VS Code settings written as the last deploy step."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from .errors import IOFailure
from .models import Config, MCPServer, TargetKind

logger = logging.getLogger(__name__)

API_TIMEOUT_MS = "3000000"
MCP_FLAG = "github.copilot.chat.cli.mcp.enabled"


def claude_settings_path(home: Path) -> Path:
    return home / ".claude" / "settings.json"


def vscode_settings_path(home: Path, kind: TargetKind = TargetKind.LOCAL) -> Path:
    if kind is TargetKind.REMOTE_SHELL:
        return home / ".vscode-server" / "data" / "Machine" / "settings.json"
    if kind is TargetKind.REMOTE_CODESPACE:
        return home / ".vscode-remote" / "data" / "Machine" / "settings.json"
    # a local vscode-server (e.g. inside a dev container) wins over desktop
    server = home / ".vscode-server" / "data" / "Machine" / "settings.json"
    if server.parent.is_dir():
        return server
    return home / ".config" / "Code" / "User" / "settings.json"


def env_block(cfg: Config) -> dict[str, str]:
    return {
        "ANTHROPIC_BASE_URL": cfg.base_url,
        "ANTHROPIC_API_KEY": cfg.api_key,
        "ANTHROPIC_DEFAULT_OPUS_MODEL": cfg.default_opus_model,
        "ANTHROPIC_DEFAULT_SONNET_MODEL": cfg.default_sonnet_model,
        "ANTHROPIC_DEFAULT_HAIKU_MODEL": cfg.default_haiku_model,
        "ANTHROPIC_SMALL_FAST_MODEL": cfg.default_haiku_model,
        "API_TIMEOUT_MS": API_TIMEOUT_MS,
    }


def mcp_block(servers: list[MCPServer]) -> dict[str, dict]:
    return {s.name: {"command": s.command, "args": list(s.args)} for s in servers if s.enabled}


def _read_json_object(path: Path) -> dict:
    try:
        doc = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable settings %s: %s", path, exc)
        return {}
    return doc if isinstance(doc, dict) else {}


def _write_json(path: Path, doc: dict, indent: int, mode: int) -> None:
    try:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        path.write_text(json.dumps(doc, indent=indent, ensure_ascii=False), encoding="utf-8")
        os.chmod(path, mode)
    except OSError as exc:
        raise IOFailure(f"write {path}: {exc}") from exc


def claude_settings(cfg: Config, existing: dict | None = None) -> dict:
    doc = dict(existing or {})
    doc["env"] = env_block(cfg)
    servers = mcp_block(cfg.mcp_servers)
    if servers:
        doc["mcpServers"] = servers
    return doc


def claude_settings_json(cfg: Config) -> str:
    """Fresh settings document for hosts where the existing file can't be merged."""
    return json.dumps(claude_settings(cfg), indent=2, ensure_ascii=False)


def write_claude_settings(cfg: Config, home: Path) -> Path:
    path = claude_settings_path(home)
    _write_json(path, claude_settings(cfg, _read_json_object(path)), indent=2, mode=0o600)
    logger.info("claude settings written: %s", path)
    return path


def write_vscode_settings(servers: list[MCPServer], home: Path, kind: TargetKind = TargetKind.LOCAL) -> Path:
    path = vscode_settings_path(home, kind)
    doc = _read_json_object(path)
    doc[MCP_FLAG] = True

    block = mcp_block(servers)
    if block:
        mcp = doc.get("mcp")
        if not isinstance(mcp, dict):
            mcp = {}
        mcp["servers"] = block
        doc["mcp"] = mcp

    _write_json(path, doc, indent=4, mode=0o644)
    logger.info("vscode settings written: %s", path)
    return path


def claude_settings_exist(home: Path) -> bool:
    return claude_settings_path(home).is_file()
