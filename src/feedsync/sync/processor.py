"""Stream processor: apply one source's change events to the unified store.

Events of a batch are handled strictly in order, one at a time. Expected
per-event conditions (malformed event, event from another table, missing image,
internal row, delete that cannot be correlated) are logged and skipped.
Anything else stops the batch with EventProcessingError naming the failing
index, so the feed can redeliver from there; every write is an idempotent
overwrite, so replaying the already applied prefix is harmless.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Mapping

import structlog

from feedsync.db.models import (
    RECORD_SORT_KEY,
    CanonicalRecord,
    EventType,
    make_partition_key,
)
from feedsync.db.repository import UnifiedStore
from feedsync.errors import EventProcessingError, MalformedEventError
from feedsync.logging_config import get_logger
from feedsync.sync.builder import RecordBuilder, reuse_enrichment
from feedsync.sync.events import ChangeEvent
from feedsync.sync.transformers import DeletePolicy, SourceTransformer

if TYPE_CHECKING:
    from feedsync.enrich.service import EnrichmentService

log = get_logger(__name__)


class Outcome(str, Enum):
    UPSERTED = "upserted"
    SOFT_DELETED = "soft_deleted"
    HARD_DELETED = "hard_deleted"
    SKIPPED = "skipped"
    UNRESOLVED = "unresolved"


@dataclass
class BatchResult:
    processed: int = 0
    upserted: int = 0
    soft_deleted: int = 0
    hard_deleted: int = 0
    skipped: int = 0
    unresolved: int = 0

    def count(self, outcome: Outcome) -> None:
        self.processed += 1
        setattr(self, outcome.value, getattr(self, outcome.value) + 1)

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class StreamProcessor:
    """Bind builder, store, and (optionally) enrichment for one source.

    Args:
        transformer: The source's transformer.
        store: Unified store gateway.
        enricher: Enrichment service; None disables enrichment.
        builder: Record builder (injectable clock for tests).
    """

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

    def process_batch(
        self, events: Iterable[ChangeEvent | Mapping[str, Any]]
    ) -> BatchResult:
        """Process *events* in order and return per-outcome counts.

        Raises:
            EventProcessingError: On the first unexpected failure.
        """
        result = BatchResult()
        log.info("batch_received", source=self.transformer.source_id)

        for index, item in enumerate(events):
            event_id = _event_id(item)
            with structlog.contextvars.bound_contextvars(
                source=self.transformer.source_id, event_id=event_id or "unknown"
            ):
                try:
                    event = item if isinstance(item, ChangeEvent) else ChangeEvent.from_dict(item)
                except MalformedEventError as err:
                    log.warning("malformed_event_skipped", index=index, error=str(err))
                    result.count(Outcome.SKIPPED)
                    continue

                try:
                    with structlog.contextvars.bound_contextvars(
                        event_type=event.event_type.value
                    ):
                        outcome = self.process_event(event)
                except Exception as err:
                    log.error(
                        "event_processing_failed",
                        index=index,
                        event_type=event.event_type.value,
                        error=str(err),
                        error_type=type(err).__name__,
                    )
                    raise EventProcessingError(index, event_id, err) from err
                result.count(outcome)

        log.info("batch_completed", source=self.transformer.source_id, **result.to_dict())
        return result

    def process_event(self, event: ChangeEvent) -> Outcome:
        """Apply a single change event."""
        if event.source_table and event.source_table != self.transformer.table_name:
            log.warning(
                "event_for_other_table_skipped",
                source_table=event.source_table,
                expected_table=self.transformer.table_name,
            )
            return Outcome.SKIPPED
        if event.event_type is EventType.REMOVE:
            return self._remove(event)
        return self._upsert(event)

    # ------------------------------------------------------------------
    # INSERT / MODIFY
    # ------------------------------------------------------------------

    def _upsert(self, event: ChangeEvent) -> Outcome:
        if not event.new_image:
            log.warning("event_without_new_image_skipped", event_type=event.event_type.value)
            return Outcome.SKIPPED

        record = self._builder.build(self.transformer, event.new_image, event.event_type)
        if record is None:
            return Outcome.SKIPPED

        self._carry_over(record, event)
        if self._enricher is not None:
            record = self._enricher.enrich(record)

        log.info(
            "syncing_record",
            partition_key=record.partition_key,
            record_type=record.record_type,
        )
        self._store.upsert(record)
        return Outcome.UPSERTED

    def _carry_over(self, record: CanonicalRecord, event: ChangeEvent) -> None:
        """Keep first-seen created_at and reuse a still-valid enrichment."""
        existing = self._store.get(record.partition_key, record.sort_key)
        if existing is not None:
            record.created_at = existing.created_at
            reuse_enrichment(record, existing)
            return

        if event.event_type is EventType.MODIFY and event.old_image:
            previous = self.transformer.resolve_created_at(event.old_image)
            if previous:
                record.created_at = previous

    # ------------------------------------------------------------------
    # REMOVE
    # ------------------------------------------------------------------

    def _remove(self, event: ChangeEvent) -> Outcome:
        if not event.key_attributes:
            log.warning("remove_without_keys_skipped")
            return Outcome.SKIPPED

        identity = self._builder.resolve_delete_identity(
            self.transformer, event.key_attributes, event.old_image
        )
        if identity.is_skip:
            log.info("delete_skipped", reason=identity.reason)
            return Outcome.SKIPPED
        if not identity.is_resolved:
            log.error(
                "delete_identity_unresolved",
                reason=identity.reason,
                keys=sorted(event.key_attributes),
            )
            return Outcome.UNRESOLVED

        partition_key = make_partition_key(self.transformer.table_name, identity.identity)
        if self.transformer.delete_policy is DeletePolicy.HARD:
            self._store.hard_delete(partition_key, RECORD_SORT_KEY)
            return Outcome.HARD_DELETED
        self._store.soft_delete(partition_key, RECORD_SORT_KEY)
        return Outcome.SOFT_DELETED


def _event_id(item: ChangeEvent | Mapping[str, Any]) -> str | None:
    if isinstance(item, ChangeEvent):
        return item.event_id
    if isinstance(item, Mapping):
        return item.get("event_id") or item.get("eventID")
    return None
