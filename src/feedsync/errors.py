"""feedsync exception hierarchy.

Each stage of the pipeline raises its own error type so callers can tell an
unrecoverable source problem from a transient backend failure.
"""

from __future__ import annotations


class FeedSyncError(Exception):
    """Base exception for all feedsync failures."""


class UnknownSourceError(FeedSyncError):
    """Raised when no transformer is registered for a source id or table."""


class MalformedEventError(FeedSyncError):
    """Raised when a change event cannot be parsed into a ChangeEvent."""


class IdentityError(FeedSyncError):
    """Raised when a source row lacks the fields its identity is built from.

    Attributes:
        source: Source id of the transformer that rejected the row.
        reason: Which fields were missing.
    """

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Cannot extract identity for source '{source}': {reason}")
        self.source = source
        self.reason = reason


class EventProcessingError(FeedSyncError):
    """Raised when one event of a batch fails unexpectedly.

    Events before ``index`` were applied; redelivery should resume at ``index``.
    """

    def __init__(self, index: int, event_id: str | None, cause: BaseException) -> None:
        super().__init__(
            f"Event #{index} ({event_id or 'unknown'}) failed: {cause}"
        )
        self.index = index
        self.event_id = event_id
        self.cause = cause


class EnrichmentError(FeedSyncError):
    """Base for failures while generating a summary/insight pair."""


class GenerationBackendError(EnrichmentError):
    """The generation backend call itself failed (timeout, throttling, 5xx)."""


class InvalidResponseError(EnrichmentError):
    """The backend answered but the text is not a usable {summary, insight}."""


class RetryExhaustedError(FeedSyncError):
    """Raised by call_with_retry once a policy's attempt budget is spent."""

    def __init__(self, last_error: BaseException, attempts: int) -> None:
        super().__init__(f"Gave up after {attempts} attempt(s): {last_error}")
        self.last_error = last_error
        self.attempts = attempts
