from __future__ import annotations

import logging
from pathlib import Path

import pytest

from claude_relay.config import ConfigStore

from .samples import SAMPLE_CLI


@pytest.fixture
def cli_file(tmp_path: Path) -> Path:
    path = tmp_path / "cli.js"
    path.write_text(SAMPLE_CLI, encoding="utf-8")
    return path


@pytest.fixture
def home(tmp_path: Path) -> Path:
    h = tmp_path / "home"
    h.mkdir()
    return h


@pytest.fixture
def store(tmp_path: Path) -> ConfigStore:
    return ConfigStore(tmp_path / "relay" / "config.json")


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    # cli.main installs a handler bound to the captured stderr of one test
    logger = logging.getLogger("claude_relay")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
