"""Tests for feedsync sources command."""

from __future__ import annotations

import pytest
from rich.console import Console
from typer.testing import CliRunner

from feedsync.cli.main import app
from feedsync.sync.transformers import ALL_TRANSFORMERS

runner = CliRunner()


def test_sources_lists_registered_sources(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("feedsync.cli.sources.console", Console(width=200))
    result = runner.invoke(app, ["sources"])

    assert result.exit_code == 0
    for cls in ALL_TRANSFORMERS:
        assert cls.source_id in result.output
        assert cls.table_name in result.output
