"""Forward-only migration runner for the feedsync database schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS unified_records (
    partition_key   TEXT NOT NULL,
    sort_key        TEXT NOT NULL,
    source_type     TEXT NOT NULL,
    source_name     TEXT NOT NULL,
    source_identity TEXT NOT NULL,
    record_type     TEXT NOT NULL,
    content         TEXT NOT NULL DEFAULT '{}',
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    last_event      TEXT NOT NULL,
    deleted         INTEGER NOT NULL DEFAULT 0,
    archived        INTEGER NOT NULL DEFAULT 0,
    owner_id        TEXT,
    summary         TEXT,
    insight         TEXT,
    PRIMARY KEY (partition_key, sort_key)
);

CREATE INDEX IF NOT EXISTS idx_unified_records_type
    ON unified_records (record_type, updated_at);
CREATE INDEX IF NOT EXISTS idx_unified_records_source_type
    ON unified_records (source_type, updated_at);

CREATE TABLE IF NOT EXISTS queue_messages (
    message_id      TEXT PRIMARY KEY,
    queue_name      TEXT NOT NULL,
    body            TEXT NOT NULL,
    attributes      TEXT NOT NULL DEFAULT '{}',
    enqueued_at     REAL NOT NULL,
    visible_at      REAL NOT NULL,
    receipt_handle  TEXT,
    receive_count   INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_queue_messages_visible
    ON queue_messages (queue_name, visible_at);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
