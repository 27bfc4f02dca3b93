"""Dead-letter publishing for records whose enrichment failed.

Publishing is best effort: a failure here is logged and reported through the
return value, never raised, so it cannot fail the event that triggered it.
"""

from __future__ import annotations

from feedsync.db.models import CanonicalRecord, DeadLetterMessage, ErrorType
from feedsync.db.queue import MessageQueue
from feedsync.logging_config import get_logger

log = get_logger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 1000


class DeadLetterService:
    def __init__(self, queue: MessageQueue | None) -> None:
        self._queue = queue

    @property
    def configured(self) -> bool:
        return self._queue is not None

    def send(
        self,
        record: CanonicalRecord,
        error_type: ErrorType,
        error_message: str,
        retry_count: int = 0,
    ) -> bool:
        """Publish *record* to the dead-letter queue.

        Returns:
            True if the message was published; False when no queue is
            configured or the publish failed.
        """
        if self._queue is None:
            log.warning(
                "dead_letter_queue_not_configured",
                partition_key=record.partition_key,
                error_type=error_type.value,
            )
            return False

        message = DeadLetterMessage(
            record=record.without_enrichment(),
            error_type=error_type,
            error_message=error_message[:MAX_ERROR_MESSAGE_LENGTH],
            retry_count=retry_count,
        )
        try:
            message_id = self._queue.publish(message.to_json(), message.attributes())
        except Exception as err:
            log.error(
                "dead_letter_publish_failed",
                partition_key=record.partition_key,
                error_type=error_type.value,
                error=str(err),
            )
            return False

        log.info(
            "record_dead_lettered",
            message_id=message_id,
            partition_key=record.partition_key,
            record_type=record.record_type,
            error_type=error_type.value,
            retry_count=retry_count,
        )
        return True
