from __future__ import annotations

import json
from pathlib import Path

import pytest

from claude_relay import cli
from claude_relay.mapping import CLI_PATCH_MARKER

from .samples import CLI_REL, SAMPLE_CLI, install


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch, home: Path) -> Path:
    monkeypatch.setenv("HOME", str(home))
    path = tmp_path / "relay.json"
    path.write_text(
        json.dumps({"targets": [{"name": "local", "kind": "local"}, {"name": "cs", "kind": "remote-codespace", "host": "space-1"}]}),
        encoding="utf-8",
    )
    return path


def test_targets_lists_local_first(config_path: Path, capsys):
    assert cli.main(["--config", str(config_path), "targets"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["local\tlocal\t", "cs\tremote-codespace\tspace-1"]


def test_unknown_target_exits_2(config_path: Path, capsys):
    assert cli.main(["--config", str(config_path), "deploy", "nope"]) == 2
    assert "unknown target: nope" in capsys.readouterr().err


def test_deploy_status_restore_locally(config_path: Path, home: Path, capsys):
    cli_js = install(home, CLI_REL, SAMPLE_CLI)
    args = ["--config", str(config_path)]

    assert cli.main(args + ["deploy"]) == 0
    out = capsys.readouterr().out
    assert "deploy: target=local" in out
    assert "steps=located,backed_up,patched,settings_written" in out
    assert CLI_PATCH_MARKER in cli_js.read_text(encoding="utf-8")

    assert cli.main(args + ["status"]) == 0
    assert "patched=True, backup=True, settings=True" in capsys.readouterr().out

    assert cli.main(args + ["restore"]) == 0
    assert cli_js.read_text(encoding="utf-8") == SAMPLE_CLI


def test_missing_cli_exits_2(config_path: Path, capsys):
    assert cli.main(["--config", str(config_path), "deploy"]) == 2
    assert "FAILED at located" in capsys.readouterr().err


def test_unpatchable_bundle_exits_3(config_path: Path, home: Path, capsys):
    install(home, CLI_REL, 'import{createRequire as X}from"node:module";\n')
    assert cli.main(["--config", str(config_path), "deploy"]) == 3
    assert "FAILED at patched" in capsys.readouterr().err


def test_split_addr():
    assert cli.split_addr("127.0.0.1:8787") == ("127.0.0.1", 8787)
    with pytest.raises(ValueError):
        cli.split_addr("8787")
