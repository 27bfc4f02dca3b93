"""Enrichment: generation, retry, dead-lettering and redrive."""

from feedsync.enrich.dead_letter import DeadLetterService
from feedsync.enrich.parser import Enrichment, parse_enrichment
from feedsync.enrich.redrive import RedriveProcessor, RedriveResult
from feedsync.enrich.retry import (
    RetryPolicy,
    call_with_retry,
    exponential_backoff,
    linear_backoff,
)
from feedsync.enrich.service import EnrichmentResult, EnrichmentService

__all__ = [
    "DeadLetterService",
    "Enrichment",
    "EnrichmentResult",
    "EnrichmentService",
    "RedriveProcessor",
    "RedriveResult",
    "RetryPolicy",
    "call_with_retry",
    "exponential_backoff",
    "linear_backoff",
    "parse_enrichment",
]
