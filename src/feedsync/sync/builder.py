"""Record builder: raw source row → CanonicalRecord."""

from __future__ import annotations

from typing import Any, Callable

from feedsync.db.models import (
    CanonicalRecord,
    EventType,
    make_partition_key,
    utc_now_iso,
)
from feedsync.errors import IdentityError
from feedsync.logging_config import get_logger
from feedsync.sync.identity import IdentityResult
from feedsync.sync.transformers import SourceTransformer

log = get_logger(__name__)


class RecordBuilder:
    """Drive a SourceTransformer to produce canonical records.

    Args:
        clock: Returns the "now" timestamp used when a source row has no
            created/updated time of its own.
    """

    def __init__(self, clock: Callable[[], str] = utc_now_iso) -> None:
        self._clock = clock

    def build(
        self,
        transformer: SourceTransformer,
        raw: dict[str, Any],
        event_type: EventType = EventType.INSERT,
    ) -> CanonicalRecord | None:
        """Build the canonical record for *raw*.

        Returns:
            The record, or None when the transformer marks the row as internal.

        Raises:
            IdentityError: If the fields the identity is built from are absent.
        """
        result = transformer.extract_identity(raw)
        if result.is_skip:
            log.info("record_skipped", source=transformer.source_id, reason=result.reason)
            return None
        if not result.is_resolved:
            raise IdentityError(transformer.source_id, result.reason)

        identity = result.identity
        now = self._clock()
        return CanonicalRecord(
            partition_key=make_partition_key(transformer.table_name, identity),
            source_type=transformer.source_type,
            source_name=transformer.table_name,
            source_identity=identity,
            record_type=transformer.record_type,
            content=dict(transformer.map_content(raw)),
            created_at=transformer.resolve_created_at(raw) or now,
            updated_at=transformer.resolve_updated_at(raw) or now,
            last_event=event_type,
            owner_id=transformer.resolve_owner(raw),
        )

    def resolve_delete_identity(
        self,
        transformer: SourceTransformer,
        keys: dict[str, Any],
        old_image: dict[str, Any] | None = None,
    ) -> IdentityResult:
        """Identity for a REMOVE event, trying in order:

        1. the transformer's dedicated key extractor over *keys*,
        2. the general extractor over *keys*,
        3. the general extractor over *old_image*, when present.

        A SKIP at any tier is returned as-is. MISSING means the deletion cannot
        be correlated with a unified record.
        """
        reasons: list[str] = []

        from_keys = transformer.extract_identity_from_keys(keys)
        if from_keys is not None:
            if from_keys.is_resolved or from_keys.is_skip:
                return from_keys
            reasons.append(f"key extractor: {from_keys.reason}")

        general = transformer.extract_identity(keys)
        if general.is_resolved or general.is_skip:
            return general
        reasons.append(f"keys: {general.reason}")

        if old_image:
            previous = transformer.extract_identity(old_image)
            if previous.is_resolved or previous.is_skip:
                return previous
            reasons.append(f"old image: {previous.reason}")
        else:
            reasons.append("old image: absent")

        return IdentityResult.missing("; ".join(reasons))


def reuse_enrichment(record: CanonicalRecord, existing: CanonicalRecord | None) -> None:
    """Copy the stored row's summary/insight onto *record* while still valid.

    Valid means the content is unchanged and the stored text is a generated
    enrichment, not fallback text.
    """
    if (
        existing is not None
        and existing.content == record.content
        and existing.has_enrichment
        and not existing.has_fallback_enrichment
    ):
        record.summary, record.insight = existing.summary, existing.insight
