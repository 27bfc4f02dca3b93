"""Tests for feedsync backfill command."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from feedsync.cli.main import app
from feedsync.db.connection import Database
from feedsync.db.repository import UnifiedStore

runner = CliRunner()


def _count(db_path: Path) -> int:
    conn = Database(db_path).connect()
    try:
        return sum(UnifiedStore(conn).count_by_record_type().values())
    finally:
        conn.close()


def _backfill(db_path: Path, rows: Path, *extra: str):
    return runner.invoke(
        app,
        [
            "--log-level",
            "ERROR",
            "backfill",
            "--db",
            str(db_path),
            "--source",
            "thoughts",
            "--input",
            str(rows),
            "--no-enrich",
            *extra,
        ],
    )


def _thoughts(n: int) -> list[dict]:
    return [
        {"userId": "u1", "thoughtId": f"t{i}", "content": f"idea {i}", "createdAt": 1_700_000_000}
        for i in range(n)
    ]


def test_backfill_json_rows(tmp_path: Path, db_path: Path) -> None:
    rows = tmp_path / "rows.json"
    rows.write_text(json.dumps(_thoughts(3)), encoding="utf-8")

    result = _backfill(db_path, rows)
    assert result.exit_code == 0, result.output
    assert "Written:" in result.output
    assert _count(db_path) == 3


def test_backfill_scan_export_is_unmarshalled(tmp_path: Path, db_path: Path) -> None:
    rows = tmp_path / "scan.json"
    rows.write_text(
        json.dumps(
            {
                "Items": [
                    {
                        "userId": {"S": "u1"},
                        "thoughtId": {"S": "t1"},
                        "content": {"S": "idea"},
                        "createdAt": {"N": "1700000000"},
                    }
                ]
            }
        ),
        encoding="utf-8",
    )

    result = _backfill(db_path, rows)
    assert result.exit_code == 0, result.output

    conn = Database(db_path).connect()
    record = UnifiedStore(conn).get("nexusnote-thoughts-production#u1#t1", "RECORD")
    conn.close()
    assert record.created_at == "2023-11-14T22:13:20.000Z"


def test_backfill_dry_run_and_limit(tmp_path: Path, db_path: Path) -> None:
    rows = tmp_path / "rows.json"
    rows.write_text(json.dumps(_thoughts(5)), encoding="utf-8")

    result = _backfill(db_path, rows, "--dry-run", "--limit", "2")
    assert result.exit_code == 0, result.output
    assert "Would write:" in result.output
    assert _count(db_path) == 0


def test_backfill_dry_run_without_database(tmp_path: Path) -> None:
    rows = tmp_path / "rows.json"
    rows.write_text(json.dumps(_thoughts(1)), encoding="utf-8")
    missing = tmp_path / "never.db"

    result = _backfill(missing, rows, "--dry-run")
    assert result.exit_code == 0, result.output
    assert not missing.exists()


def test_backfill_row_errors_exit_nonzero(tmp_path: Path, db_path: Path) -> None:
    rows = tmp_path / "rows.json"
    rows.write_text(json.dumps([*_thoughts(1), {"userId": "u1"}]), encoding="utf-8")

    result = _backfill(db_path, rows)
    assert result.exit_code == 1
    assert _count(db_path) == 1
