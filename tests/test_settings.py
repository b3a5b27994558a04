from __future__ import annotations

import json
import stat
from pathlib import Path

from claude_relay.models import MCPServer, TargetKind, default_config
from claude_relay.settings import (
    claude_settings,
    vscode_settings_path,
    write_claude_settings,
    write_vscode_settings,
)


def test_vscode_settings_location(home: Path):
    assert vscode_settings_path(home) == home / ".config" / "Code" / "User" / "settings.json"
    machine = home / ".vscode-server" / "data" / "Machine"
    machine.mkdir(parents=True)
    assert vscode_settings_path(home) == machine / "settings.json"
    assert vscode_settings_path(home, TargetKind.REMOTE_CODESPACE).parts[-4:] == (
        ".vscode-remote",
        "data",
        "Machine",
        "settings.json",
    )


def test_env_block_uses_default_models():
    cfg = default_config()
    env = claude_settings(cfg)["env"]
    assert env["ANTHROPIC_BASE_URL"] == "https://api.anthropic.com"
    assert env["ANTHROPIC_DEFAULT_OPUS_MODEL"] == "claude-opus-4-6"
    assert env["ANTHROPIC_SMALL_FAST_MODEL"] == env["ANTHROPIC_DEFAULT_HAIKU_MODEL"]


def test_disabled_servers_are_left_out(home: Path):
    servers = [
        MCPServer(name="on", command="uvx", args=["a"]),
        MCPServer(name="off", enabled=False, command="npx"),
    ]
    path = write_vscode_settings(servers, home)
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert list(doc["mcp"]["servers"]) == ["on"]


def test_vscode_settings_merge_existing(home: Path):
    path = vscode_settings_path(home)
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"editor.fontSize": 13, "mcp": {"inputs": []}}), encoding="utf-8")

    write_vscode_settings(default_config().mcp_servers, home)

    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc["editor.fontSize"] == 13
    assert doc["mcp"]["inputs"] == []
    assert set(doc["mcp"]["servers"]) == {"fetch", "deepwiki"}


def test_claude_settings_file_is_private(home: Path):
    path = write_claude_settings(default_config(), home)
    assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_unreadable_settings_are_replaced(home: Path):
    path = home / ".claude" / "settings.json"
    path.parent.mkdir()
    path.write_text("[1, 2", encoding="utf-8")
    write_claude_settings(default_config(), home)
    assert "env" in json.loads(path.read_text(encoding="utf-8"))
