"""Domain models shared by the sync, store, and enrichment layers."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

RECORD_SORT_KEY = "RECORD"

FALLBACK_SUMMARY = "Unable to generate summary."
FALLBACK_INSIGHT = "Unable to generate insight."


class SourceType(str, Enum):
    PERSONAL = "personal"
    EXTERNAL = "external"


class EventType(str, Enum):
    INSERT = "INSERT"
    MODIFY = "MODIFY"
    REMOVE = "REMOVE"


class ErrorType(str, Enum):
    """Why a record ended up in the dead-letter queue."""

    UPSTREAM_API_ERROR = "UPSTREAM_API_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    ENRICHMENT_FAILED = "ENRICHMENT_FAILED"


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def make_partition_key(source_name: str, source_identity: str) -> str:
    """Return the unified-store partition key for a source entity."""
    return f"{source_name}#{source_identity}"


@dataclass
class CanonicalRecord:
    """One row of the unified store.

    ``summary``/``insight`` double as the enrichment idempotence marker: a record
    carrying both is never sent to the generation backend again.
    """

    partition_key: str
    source_type: SourceType
    source_name: str
    source_identity: str
    record_type: str
    content: dict[str, Any]
    created_at: str
    updated_at: str
    last_event: EventType
    sort_key: str = RECORD_SORT_KEY
    deleted: bool = False
    archived: bool = False
    owner_id: str | None = None
    summary: str | None = None
    insight: str | None = None

    @property
    def has_enrichment(self) -> bool:
        return bool(self.summary) and bool(self.insight)

    @property
    def has_fallback_enrichment(self) -> bool:
        return self.summary == FALLBACK_SUMMARY or self.insight == FALLBACK_INSIGHT

    def without_enrichment(self) -> CanonicalRecord:
        return replace(self, summary=None, insight=None)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["source_type"] = self.source_type.value
        data["last_event"] = self.last_event.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CanonicalRecord:
        return cls(
            partition_key=data["partition_key"],
            sort_key=data.get("sort_key", RECORD_SORT_KEY),
            source_type=SourceType(data["source_type"]),
            source_name=data["source_name"],
            source_identity=data["source_identity"],
            record_type=data["record_type"],
            content=dict(data.get("content") or {}),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
            last_event=EventType(data["last_event"]),
            deleted=bool(data.get("deleted", False)),
            archived=bool(data.get("archived", False)),
            owner_id=data.get("owner_id"),
            summary=data.get("summary"),
            insight=data.get("insight"),
        )


@dataclass
class DeadLetterMessage:
    """Queue payload for a record whose enrichment could not complete."""

    record: CanonicalRecord
    error_type: ErrorType
    error_message: str
    enqueued_at: str = field(default_factory=utc_now_iso)
    retry_count: int = 0

    def attributes(self) -> dict[str, str]:
        """Queryable queue attributes published alongside the body."""
        return {
            "error_type": self.error_type.value,
            "record_type": self.record.record_type,
            "retry_count": str(self.retry_count),
        }

    def to_json(self) -> str:
        return json.dumps(
            {
                "record": self.record.to_dict(),
                "error_type": self.error_type.value,
                "error_message": self.error_message,
                "enqueued_at": self.enqueued_at,
                "retry_count": self.retry_count,
            },
            default=str,
        )

    @classmethod
    def from_json(cls, body: str) -> DeadLetterMessage:
        data = json.loads(body)
        return cls(
            record=CanonicalRecord.from_dict(data["record"]),
            error_type=ErrorType(data["error_type"]),
            error_message=str(data.get("error_message", "")),
            enqueued_at=str(data.get("enqueued_at", "")),
            retry_count=int(data.get("retry_count", 0)),
        )
