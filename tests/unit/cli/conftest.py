"""Fixtures for CLI tests: isolated working directory and environment."""

from __future__ import annotations

from pathlib import Path

import pytest

from feedsync.db.connection import Database
from feedsync.db.schema import initialize


@pytest.fixture(autouse=True)
def _isolated_cli(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("feedsync.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    for var in ("FEEDSYNC_DB", "FEEDSYNC_GENERATION_MODEL", "FEEDSYNC_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "store.db"
    conn = Database(path).connect()
    initialize(conn)
    conn.close()
    return path
