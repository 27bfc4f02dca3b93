"""Tests for feedsync status and version commands."""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from feedsync.cli.main import app
from feedsync.db.connection import Database
from feedsync.db.models import ErrorType
from feedsync.db.queue import SqliteQueue
from feedsync.db.repository import UnifiedStore
from feedsync.enrich.dead_letter import DeadLetterService

runner = CliRunner()


# ---------------------------------------------------------------------------
# feedsync --version / version
# ---------------------------------------------------------------------------


def test_version_flag_shows_feedsync() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "feedsync" in result.output.lower()


def test_version_command_shows_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "feedsync" in result.output.lower()


# ---------------------------------------------------------------------------
# feedsync status
# ---------------------------------------------------------------------------


def test_status_no_db(tmp_path: Path) -> None:
    result = runner.invoke(app, ["status", "--db", str(tmp_path / "nonexistent.db")])
    assert result.exit_code == 0
    assert "No database found" in result.output


def test_status_shows_counts_and_queue_depth(db_path: Path, make_record) -> None:
    conn = Database(db_path).connect()
    store = UnifiedStore(conn)
    store.upsert(make_record(partition_key="a", summary="s", insight="i"))
    store.upsert(make_record(partition_key="b", record_type="THOUGHT"))
    store.upsert(make_record(partition_key="c", deleted=True))
    DeadLetterService(SqliteQueue(conn, "enrichment-dlq")).send(
        make_record(), ErrorType.INVALID_RESPONSE, "bad"
    )
    conn.close()

    result = runner.invoke(app, ["--log-level", "ERROR", "status", "--db", str(db_path)])

    assert result.exit_code == 0, result.output
    assert "NOTE" in result.output
    assert "THOUGHT" in result.output
    assert "Depth:  1" in result.output
    assert "feedsync redrive" in result.output


def test_status_uses_store_path_from_env(db_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("FEEDSYNC_DB", str(db_path))
    result = runner.invoke(app, ["status"])
    assert result.exit_code == 0
    assert "Depth:  0" in result.output
