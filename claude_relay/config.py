from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from .errors import ConfigInvalid, IOFailure
from .models import Config, default_config

logger = logging.getLogger(__name__)

CONFIG_ENV = "CLAUDE_RELAY_CONFIG"


def default_config_path() -> Path:
    override = os.getenv(CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".claude-relay" / "config.json"


class ReadWriteLock:
    """Readers share the lock; a writer holds it alone."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class ConfigStore:
    """The per-user config file. Built once at startup and shared by reference."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path is not None else default_config_path()
        self.lock = ReadWriteLock()

    def load(self) -> Config:
        with self.lock.read():
            try:
                raw = self.path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return default_config()
            except OSError as exc:
                raise IOFailure(f"read {self.path}: {exc}") from exc

        try:
            return Config.model_validate_json(raw)
        except ValidationError as exc:
            err = ConfigInvalid(f"{self.path}: {exc.error_count()} validation error(s)")
            logger.warning("config unreadable, using defaults: %s", err)
            return default_config()

    def save(self, cfg: Config) -> None:
        data = cfg.model_dump_json(indent=2)
        with self.lock.write():
            try:
                self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
                tmp = self.path.with_name(self.path.name + ".tmp")
                tmp.write_text(data + "\n", encoding="utf-8")
                os.chmod(tmp, 0o600)
                os.replace(tmp, self.path)
            except OSError as exc:
                raise IOFailure(f"write {self.path}: {exc}") from exc
        logger.debug("config saved: %s", self.path)
