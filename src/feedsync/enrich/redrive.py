"""Redrive: retry enrichment for dead-lettered records.

One run handles at most ``batch_size`` messages:

  retry_count >= max_retry      abandon: delete message           → failed
  record deleted or changed     drop: delete message, no write    → failed
  enrichment succeeds           upsert record, delete message     → succeeded
  enrichment fails again        re-publish with retry_count + 1,
                                delete the original               → requeued
  anything raises               leave message for redelivery      → failed
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from feedsync.db.models import DeadLetterMessage
from feedsync.db.queue import MessageQueue, QueueMessage
from feedsync.db.repository import UnifiedStore
from feedsync.enrich.dead_letter import DeadLetterService
from feedsync.enrich.service import EnrichmentService
from feedsync.logging_config import get_logger

log = get_logger(__name__)

BATCH_SIZE = 10
MAX_RETRY = 3


@dataclass
class RedriveResult:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    requeued: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class RedriveProcessor:
    def __init__(
        self,
        queue: MessageQueue,
        enricher: EnrichmentService,
        store: UnifiedStore,
        dead_letters: DeadLetterService,
        *,
        batch_size: int = BATCH_SIZE,
        max_retry: int = MAX_RETRY,
        visibility_timeout: int = 60,
    ) -> None:
        self._queue = queue
        self._enricher = enricher
        self._store = store
        self._dead_letters = dead_letters
        self.batch_size = batch_size
        self.max_retry = max_retry
        self.visibility_timeout = visibility_timeout

    def run(self) -> RedriveResult:
        """Process one batch of dead-lettered messages."""
        result = RedriveResult()
        messages = self._queue.receive(
            max_messages=self.batch_size, visibility_timeout=self.visibility_timeout
        )
        log.info("redrive_started", received=len(messages))

        for message in messages:
            result.processed += 1
            try:
                outcome = self._redrive(message)
            except Exception as err:
                log.error(
                    "redrive_message_failed",
                    message_id=message.message_id,
                    error=str(err),
                    error_type=type(err).__name__,
                )
                result.failed += 1
                continue
            setattr(result, outcome, getattr(result, outcome) + 1)

        log.info("redrive_completed", **result.to_dict())
        return result

    def _redrive(self, message: QueueMessage) -> str:
        dead = DeadLetterMessage.from_json(message.body)
        snapshot = dead.record

        if dead.retry_count >= self.max_retry:
            log.warning(
                "redrive_retry_ceiling_reached",
                message_id=message.message_id,
                partition_key=snapshot.partition_key,
                retry_count=dead.retry_count,
            )
            self._queue.delete(message.receipt_handle)
            return "failed"

        current = self._store.get(snapshot.partition_key, snapshot.sort_key)
        if current is None or current.deleted or current.content != snapshot.content:
            log.warning(
                "redrive_record_superseded",
                message_id=message.message_id,
                partition_key=snapshot.partition_key,
                reason="content_changed" if current and not current.deleted else "deleted",
            )
            self._queue.delete(message.receipt_handle)
            return "failed"

        record = current.without_enrichment()
        attempt = self._enricher.attempt(record)
        if attempt.error_type is None:
            self._store.upsert(attempt.record)
            self._queue.delete(message.receipt_handle)
            log.info(
                "redrive_succeeded",
                message_id=message.message_id,
                partition_key=record.partition_key,
            )
            return "succeeded"

        published = self._dead_letters.send(
            record, attempt.error_type, attempt.error_message, dead.retry_count + 1
        )
        if not published:
            log.error(
                "redrive_requeue_failed",
                message_id=message.message_id,
                partition_key=record.partition_key,
            )
            return "failed"
        self._queue.delete(message.receipt_handle)
        return "requeued"
