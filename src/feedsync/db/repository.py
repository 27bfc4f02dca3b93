"""Unified store gateway: idempotent writes keyed by (partition_key, sort_key).

The store is last-writer-wins: there are no locks or transactions spanning more
than one statement. ``soft_delete`` is a plain read-then-write.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Any

from feedsync.db.models import (
    CanonicalRecord,
    EventType,
    SourceType,
    utc_now_iso,
)
from feedsync.logging_config import get_logger

log = get_logger(__name__)

_COLUMNS = (
    "partition_key, sort_key, source_type, source_name, source_identity, "
    "record_type, content, created_at, updated_at, last_event, deleted, "
    "archived, owner_id, summary, insight"
)


class UnifiedStore:
    """Data access layer for unified records.

    Wraps an open sqlite3.Connection; the connection is owned by the caller.
    Write failures (sqlite3.Error) propagate to the caller unchanged.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see feedsync.db.schema.initialize).
        """
        self._conn = conn

    # ------------------------------------------------------------------
    # Point operations
    # ------------------------------------------------------------------

    def get(self, partition_key: str, sort_key: str) -> CanonicalRecord | None:
        """Return the record stored under the key, or None if absent."""
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM unified_records WHERE partition_key = ? AND sort_key = ?",
            (partition_key, sort_key),
        ).fetchone()
        return _row_to_record(row) if row else None

    def upsert(self, record: CanonicalRecord) -> None:
        """Write *record*, replacing any row with the same key.

        ``created_at`` and ``archived`` of an existing row are kept: the first
        is fixed at first sight of the entity and the second belongs to the
        read API. Every other column is overwritten.
        """
        log.debug(
            "upserting_record",
            partition_key=record.partition_key,
            sort_key=record.sort_key,
            last_event=record.last_event.value,
        )
        self._conn.execute(
            f"""
            INSERT INTO unified_records ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(partition_key, sort_key) DO UPDATE SET
                source_type = excluded.source_type,
                source_name = excluded.source_name,
                source_identity = excluded.source_identity,
                record_type = excluded.record_type,
                content = excluded.content,
                updated_at = excluded.updated_at,
                last_event = excluded.last_event,
                deleted = excluded.deleted,
                owner_id = excluded.owner_id,
                summary = excluded.summary,
                insight = excluded.insight
            """,
            _record_to_row(record),
        )
        self._conn.commit()
        log.info(
            "record_upserted",
            partition_key=record.partition_key,
            sort_key=record.sort_key,
        )

    def soft_delete(self, partition_key: str, sort_key: str) -> bool:
        """Mark the row deleted. Returns False (and warns) if no row exists.

        A missing row is expected when a delete overtakes an insert that has
        not been replayed yet, or the entity was never synced.
        """
        existing = self.get(partition_key, sort_key)
        if existing is None:
            log.warning(
                "record_not_found_for_soft_delete",
                partition_key=partition_key,
                sort_key=sort_key,
            )
            return False

        existing.deleted = True
        existing.last_event = EventType.REMOVE
        existing.updated_at = utc_now_iso()
        self.upsert(existing)
        log.info("record_soft_deleted", partition_key=partition_key, sort_key=sort_key)
        return True

    def hard_delete(self, partition_key: str, sort_key: str) -> bool:
        """Remove the row. Returns True if a row was deleted."""
        cur = self._conn.execute(
            "DELETE FROM unified_records WHERE partition_key = ? AND sort_key = ?",
            (partition_key, sort_key),
        )
        self._conn.commit()
        log.info(
            "record_hard_deleted",
            partition_key=partition_key,
            sort_key=sort_key,
            existed=cur.rowcount > 0,
        )
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def list_records(
        self,
        record_type: str | None = None,
        include_deleted: bool = False,
        limit: int | None = None,
    ) -> list[CanonicalRecord]:
        """Return records newest-first, optionally filtered by record type."""
        sql = f"SELECT {_COLUMNS} FROM unified_records"
        clauses: list[str] = []
        params: list[Any] = []
        if record_type is not None:
            clauses.append("record_type = ?")
            params.append(record_type)
        if not include_deleted:
            clauses.append("deleted = 0")
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY updated_at DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [_row_to_record(r) for r in self._conn.execute(sql, params).fetchall()]

    def count_by_record_type(self) -> dict[str, int]:
        """Return {record_type: live (non-deleted) row count}."""
        rows = self._conn.execute(
            "SELECT record_type, COUNT(*) AS n FROM unified_records "
            "WHERE deleted = 0 GROUP BY record_type ORDER BY record_type"
        ).fetchall()
        return {r["record_type"]: r["n"] for r in rows}

    def count_deleted(self) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM unified_records WHERE deleted = 1"
        ).fetchone()[0]

    def count_enriched(self) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM unified_records "
            "WHERE summary IS NOT NULL AND insight IS NOT NULL"
        ).fetchone()[0]


# ------------------------------------------------------------------
# Row ↔ model helpers
# ------------------------------------------------------------------

def _record_to_row(record: CanonicalRecord) -> tuple[Any, ...]:
    return (
        record.partition_key,
        record.sort_key,
        record.source_type.value,
        record.source_name,
        record.source_identity,
        record.record_type,
        json.dumps(record.content, default=str, ensure_ascii=False),
        record.created_at,
        record.updated_at,
        record.last_event.value,
        int(record.deleted),
        int(record.archived),
        record.owner_id,
        record.summary,
        record.insight,
    )


def _row_to_record(row: sqlite3.Row) -> CanonicalRecord:
    return CanonicalRecord(
        partition_key=row["partition_key"],
        sort_key=row["sort_key"],
        source_type=SourceType(row["source_type"]),
        source_name=row["source_name"],
        source_identity=row["source_identity"],
        record_type=row["record_type"],
        content=json.loads(row["content"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        last_event=EventType(row["last_event"]),
        deleted=bool(row["deleted"]),
        archived=bool(row["archived"]),
        owner_id=row["owner_id"],
        summary=row["summary"],
        insight=row["insight"],
    )
