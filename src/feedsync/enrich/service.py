"""Enrichment service: add a generated summary/insight to canonical records.

Per record: pick the prompt for its record type, call the generation backend,
parse the answer. Unparseable answers and backend failures are retried with
their own backoff inside one bounded attempt budget. When the budget is spent
the record is dead-lettered and comes back carrying fallback text, so it is
still written and visible, just unenriched.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import Callable

from feedsync.config import EnrichmentCfg
from feedsync.db.models import (
    FALLBACK_INSIGHT,
    FALLBACK_SUMMARY,
    CanonicalRecord,
    ErrorType,
    EventType,
)
from feedsync.enrich.dead_letter import DeadLetterService
from feedsync.enrich.llm_client import LiteLLMGenerator
from feedsync.enrich.parser import Enrichment, parse_enrichment
from feedsync.enrich.prompts import build_prompt
from feedsync.enrich.retry import (
    RetryPolicy,
    call_with_retry,
    exponential_backoff,
    linear_backoff,
)
from feedsync.errors import GenerationBackendError, InvalidResponseError, RetryExhaustedError
from feedsync.logging_config import get_logger

log = get_logger(__name__)

Generator = Callable[[str], str]

DEFAULT_PARSE_POLICY = RetryPolicy(3, linear_backoff(0.5), (InvalidResponseError,))
DEFAULT_BACKEND_POLICY = RetryPolicy(
    3, exponential_backoff(1.0, cap=8.0), (GenerationBackendError,)
)


@dataclass
class EnrichmentResult:
    """Outcome of one enrichment attempt.

    ``record`` carries the generated text on success and the fallback text
    otherwise; ``error_type``/``error_message`` are set only on failure.
    """

    record: CanonicalRecord
    error_type: ErrorType | None = None
    error_message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.error_type is None


class EnrichmentService:
    """Generate summary/insight pairs with bounded retries.

    Args:
        generator: Callable taking a prompt and returning the backend's text.
        dead_letters: Where exhausted records go; None disables dead-lettering.
        parse_policy: Retry policy for unparseable responses.
        backend_policy: Retry policy for backend call failures.
        sleep: Blocking sleep used between attempts (injectable for tests).
    """

    def __init__(
        self,
        generator: Generator,
        dead_letters: DeadLetterService | None = None,
        *,
        parse_policy: RetryPolicy = DEFAULT_PARSE_POLICY,
        backend_policy: RetryPolicy = DEFAULT_BACKEND_POLICY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._generate = generator
        self._dead_letters = dead_letters
        self._policies = (parse_policy, backend_policy)
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        cfg: EnrichmentCfg,
        dead_letters: DeadLetterService | None = None,
        generator: Generator | None = None,
    ) -> EnrichmentService:
        """Build a service from the ``enrichment:`` config section."""
        return cls(
            generator
            or LiteLLMGenerator(
                cfg.model,
                max_tokens=cfg.max_tokens,
                temperature=cfg.temperature,
                timeout=cfg.timeout,
            ),
            dead_letters,
            parse_policy=RetryPolicy(
                cfg.max_attempts, linear_backoff(cfg.parse_backoff), (InvalidResponseError,)
            ),
            backend_policy=RetryPolicy(
                cfg.max_attempts,
                exponential_backoff(cfg.backend_backoff, cap=cfg.backoff_cap),
                (GenerationBackendError,),
            ),
        )

    @staticmethod
    def should_enrich(record: CanonicalRecord) -> bool:
        if record.deleted or record.last_event is EventType.REMOVE:
            return False
        return not record.has_enrichment

    def enrich(self, record: CanonicalRecord) -> CanonicalRecord:
        """Return *record* enriched, or with fallback text after dead-lettering it.

        Records that need no enrichment are returned unchanged. Never raises.
        """
        if not self.should_enrich(record):
            return record

        result = self.attempt(record)
        if result.error_type is not None and self._dead_letters is not None:
            self._dead_letters.send(
                record.without_enrichment(), result.error_type, result.error_message
            )
        return result.record

    def attempt(self, record: CanonicalRecord) -> EnrichmentResult:
        """Run the retry loop once for *record* without dead-lettering. Never raises."""
        prompt = build_prompt(record.record_type, record.content)
        try:
            enrichment = call_with_retry(
                lambda: self._generate_once(prompt), self._policies, sleep=self._sleep
            )
        except RetryExhaustedError as err:
            error_type = (
                ErrorType.INVALID_RESPONSE
                if isinstance(err.last_error, InvalidResponseError)
                else ErrorType.UPSTREAM_API_ERROR
            )
            return self._failed(record, error_type, str(err.last_error), err.attempts)
        except Exception as err:
            return self._failed(
                record, ErrorType.ENRICHMENT_FAILED, f"{type(err).__name__}: {err}", None
            )

        log.info(
            "record_enriched",
            partition_key=record.partition_key,
            record_type=record.record_type,
        )
        return EnrichmentResult(
            record=replace(record, summary=enrichment.summary, insight=enrichment.insight)
        )

    def _generate_once(self, prompt: str) -> Enrichment:
        return parse_enrichment(self._generate(prompt))

    def _failed(
        self,
        record: CanonicalRecord,
        error_type: ErrorType,
        message: str,
        attempts: int | None,
    ) -> EnrichmentResult:
        log.error(
            "enrichment_failed",
            partition_key=record.partition_key,
            record_type=record.record_type,
            error_type=error_type.value,
            attempts=attempts,
            error=message,
        )
        return EnrichmentResult(
            record=replace(record, summary=FALLBACK_SUMMARY, insight=FALLBACK_INSIGHT),
            error_type=error_type,
            error_message=message,
        )
