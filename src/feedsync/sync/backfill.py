"""Backfill: sync pre-existing source rows into the unified store.

Rows go through the same transformer and builder as live INSERT events, so a
backfilled record is indistinguishable from one synced by the stream. A row
that cannot be transformed is counted and skipped; store write errors stop the
run.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Iterable

from feedsync.db.models import EventType
from feedsync.db.repository import UnifiedStore
from feedsync.errors import IdentityError
from feedsync.logging_config import get_logger
from feedsync.sync.builder import RecordBuilder, reuse_enrichment
from feedsync.sync.transformers import SourceTransformer

if TYPE_CHECKING:
    from feedsync.enrich.service import EnrichmentService

log = get_logger(__name__)


@dataclass
class BackfillStats:
    source: str
    scanned: int = 0
    transformed: int = 0
    written: int = 0
    skipped: int = 0
    errors: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class Backfiller:
    def __init__(
        self,
        transformer: SourceTransformer,
        store: UnifiedStore,
        enricher: EnrichmentService | None = None,
        builder: RecordBuilder | None = None,
    ) -> None:
        self.transformer = transformer
        self._store = store
        self._enricher = enricher
        self._builder = builder or RecordBuilder()

    def run(
        self,
        rows: Iterable[dict[str, Any]],
        dry_run: bool = False,
        limit: int | None = None,
    ) -> BackfillStats:
        """Transform and write *rows*; with *dry_run* nothing is written.

        In dry-run mode ``written`` counts the records that would be written.
        """
        stats = BackfillStats(source=self.transformer.source_id)
        started = time.monotonic()

        for raw in rows:
            if limit is not None and stats.scanned >= limit:
                break
            stats.scanned += 1

            try:
                record = self._builder.build(self.transformer, raw, EventType.INSERT)
            except (IdentityError, TypeError, ValueError) as err:
                stats.errors += 1
                log.warning("backfill_row_rejected", row=stats.scanned, error=str(err))
                continue
            if record is None:
                stats.skipped += 1
                continue
            stats.transformed += 1

            if dry_run:
                stats.written += 1
                continue

            reuse_enrichment(record, self._store.get(record.partition_key, record.sort_key))
            if self._enricher is not None:
                record = self._enricher.enrich(record)
            self._store.upsert(record)
            stats.written += 1

        stats.duration_seconds = round(time.monotonic() - started, 3)
        log.info("backfill_completed", dry_run=dry_run, **stats.to_dict())
        return stats
