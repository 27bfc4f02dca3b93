"""Shared pytest fixtures."""

from __future__ import annotations

import pytest
import structlog

from feedsync.db.connection import Database
from feedsync.db.models import CanonicalRecord, EventType, SourceType
from feedsync.db.schema import initialize


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".feedsync.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo any configure_logging() a test (or CLI invocation) performed."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def make_record():
    """Factory for CanonicalRecord with notes-source defaults; override any field."""

    def _make(**overrides) -> CanonicalRecord:
        fields = dict(
            partition_key="nexusnote-notes-production#u1#n1",
            source_type=SourceType.PERSONAL,
            source_name="nexusnote-notes-production",
            source_identity="u1#n1",
            record_type="NOTE",
            content={"title": "T", "content": "C"},
            created_at="2024-01-01T00:00:00.000Z",
            updated_at="2024-01-02T00:00:00.000Z",
            last_event=EventType.INSERT,
        )
        fields.update(overrides)
        return CanonicalRecord(**fields)

    return _make
