"""Per-source transformers: identity, content mapping, and timestamps.

Each source table gets one SourceTransformer subclass. Mapping is explicit and
hand-written; ``map_content`` carries a deliberately narrow subset of the source
row, never the full payload.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypedDict

from feedsync.db.models import SourceType
from feedsync.sync.identity import IdentityResult, join_required


class DeletePolicy(str, Enum):
    SOFT = "soft"
    HARD = "hard"


# Epoch values above this are taken to be milliseconds.
_EPOCH_MS_THRESHOLD = 100_000_000_000


def to_iso8601(value: Any) -> str | None:
    """Normalise a source timestamp to ISO-8601, or None if absent.

    Strings pass through untouched; numbers are read as epoch seconds or
    milliseconds.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > _EPOCH_MS_THRESHOLD else value
        stamp = datetime.fromtimestamp(seconds, tz=timezone.utc)
        return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return str(value)


def _text(raw: dict[str, Any], key: str) -> str:
    value = raw.get(key)
    return "" if value is None else str(value)


class SourceTransformer(ABC):
    """Abstract base for all source transformers.

    Subclasses set the class attributes and implement ``extract_identity`` and
    ``map_content``. Timestamp and owner resolvers default to the common
    ``createdAt`` / ``updatedAt`` / ``userId`` attribute names.
    """

    source_id: str
    table_name: str
    source_type: SourceType
    record_type: str
    delete_policy: DeletePolicy = DeletePolicy.SOFT

    @abstractmethod
    def extract_identity(self, raw: dict[str, Any]) -> IdentityResult:
        """Return the entity's identity within its source table."""

    def extract_identity_from_keys(self, keys: dict[str, Any]) -> IdentityResult | None:
        """Identity from key attributes only (deletions). None if not supported."""
        return None

    @abstractmethod
    def map_content(self, raw: dict[str, Any]) -> dict[str, Any]:
        """Map the source row onto the semantically named content fields."""

    def resolve_created_at(self, raw: dict[str, Any]) -> str | None:
        return to_iso8601(raw.get("createdAt"))

    def resolve_updated_at(self, raw: dict[str, Any]) -> str | None:
        return to_iso8601(raw.get("updatedAt"))

    def resolve_owner(self, raw: dict[str, Any]) -> str | None:
        owner = raw.get("userId")
        return str(owner) if owner else None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.source_id} → {self.table_name}>"


# ════════════════════════════════════════════════════════════════════
# Content shapes
# ════════════════════════════════════════════════════════════════════


class NoteContent(TypedDict, total=False):
    title: str
    content: str
    tags: Any


class ContactContent(TypedDict):
    name: str
    role: str
    working_style: str
    next_interaction: str


class ThoughtContent(TypedDict):
    content: str
    tag: str


class ProjectContent(TypedDict):
    title: str
    description: str
    status: str
    notes: str


class WorkboardContent(TypedDict):
    chain_id: str
    slot_index: int
    chain_archived: bool


class CaptureContent(TypedDict):
    title: str
    content: str
    source: str
    source_url: str
    url: str


class ConversationContent(TypedDict):
    conversation_id: str
    title: str
    user_query: str
    council_response: str


class SoliloquyContent(TypedDict):
    transcript: str
    duration_seconds: float


class ChatSessionContent(TypedDict):
    session_id: str
    user_id: str


# ════════════════════════════════════════════════════════════════════
# Sources
# ════════════════════════════════════════════════════════════════════


class NotesTransformer(SourceTransformer):
    source_id = "notes"
    table_name = "nexusnote-notes-production"
    source_type = SourceType.PERSONAL
    record_type = "NOTE"
    delete_policy = DeletePolicy.HARD

    def extract_identity(self, raw: dict[str, Any]) -> IdentityResult:
        return join_required(raw, "userId", "noteId")

    def map_content(self, raw: dict[str, Any]) -> NoteContent:
        content: NoteContent = {
            "title": _text(raw, "title"),
            "content": _text(raw, "content"),
        }
        if raw.get("aiTags"):
            content["tags"] = raw["aiTags"]
        return content


class ContactsTransformer(SourceTransformer):
    source_id = "contacts"
    table_name = "nexusnote-inno-contacts-production"
    source_type = SourceType.PERSONAL
    record_type = "CONTACT"
    delete_policy = DeletePolicy.SOFT

    def extract_identity(self, raw: dict[str, Any]) -> IdentityResult:
        return join_required(raw, "PK", "SK")

    def map_content(self, raw: dict[str, Any]) -> ContactContent:
        return {
            "name": _text(raw, "contactName"),
            "role": _text(raw, "role"),
            "working_style": _text(raw, "workingStyle"),
            "next_interaction": _text(raw, "nextInteractionPlan")
            or _text(raw, "nextInteraction"),
        }

    def resolve_owner(self, raw: dict[str, Any]) -> str | None:
        # Single-table design: PK is USER#<userId>
        pk = raw.get("PK")
        if isinstance(pk, str) and pk.startswith("USER#"):
            return pk[len("USER#"):]
        return super().resolve_owner(raw)


class ThoughtsTransformer(SourceTransformer):
    source_id = "thoughts"
    table_name = "nexusnote-thoughts-production"
    source_type = SourceType.PERSONAL
    record_type = "THOUGHT"
    delete_policy = DeletePolicy.HARD

    def extract_identity(self, raw: dict[str, Any]) -> IdentityResult:
        return join_required(raw, "userId", "thoughtId")

    def map_content(self, raw: dict[str, Any]) -> ThoughtContent:
        return {"content": _text(raw, "content"), "tag": _text(raw, "tagName")}

    def resolve_updated_at(self, raw: dict[str, Any]) -> str | None:
        # Thoughts are immutable; there is no updatedAt.
        return to_iso8601(raw.get("createdAt"))


class ProjectsTransformer(SourceTransformer):
    source_id = "projects"
    table_name = "nexusnote-implementation-projects-production"
    source_type = SourceType.PERSONAL
    record_type = "PROJECT"
    delete_policy = DeletePolicy.HARD

    def extract_identity(self, raw: dict[str, Any]) -> IdentityResult:
        return join_required(raw, "userId", "projectId")

    def map_content(self, raw: dict[str, Any]) -> ProjectContent:
        return {
            "title": _text(raw, "title"),
            "description": _text(raw, "description"),
            "status": _text(raw, "status"),
            "notes": _text(raw, "notes"),
        }


class WorkboardTransformer(SourceTransformer):
    source_id = "workboard"
    table_name = "nexusnote-tracking-workboard-production"
    source_type = SourceType.PERSONAL
    record_type = "WORKBOARD"
    delete_policy = DeletePolicy.HARD

    def extract_identity(self, raw: dict[str, Any]) -> IdentityResult:
        return join_required(raw, "PK", "SK")

    def map_content(self, raw: dict[str, Any]) -> WorkboardContent:
        return {
            "chain_id": _text(raw, "chainId"),
            "slot_index": int(raw.get("slotIndex") or 0),
            "chain_archived": bool(raw.get("archived", False)),
        }

    def resolve_updated_at(self, raw: dict[str, Any]) -> str | None:
        return to_iso8601(raw.get("lastActiveAt"))

    def resolve_owner(self, raw: dict[str, Any]) -> str | None:
        return None


class CaptureTransformer(SourceTransformer):
    source_id = "capture"
    table_name = "Capture"
    source_type = SourceType.EXTERNAL
    record_type = "CAPTURE"
    delete_policy = DeletePolicy.HARD

    def extract_identity(self, raw: dict[str, Any]) -> IdentityResult:
        return join_required(raw, "pk", "sk")

    def map_content(self, raw: dict[str, Any]) -> CaptureContent:
        return {
            "title": _text(raw, "title"),
            "content": _text(raw, "content"),
            "source": _text(raw, "source"),
            "source_url": _text(raw, "sourceUrl"),
            "url": _text(raw, "url"),
        }

    def resolve_created_at(self, raw: dict[str, Any]) -> str | None:
        return to_iso8601(raw.get("capturedAt"))

    def resolve_updated_at(self, raw: dict[str, Any]) -> str | None:
        return to_iso8601(raw.get("capturedAt"))

    def resolve_owner(self, raw: dict[str, Any]) -> str | None:
        return None


class LlmCouncilTransformer(SourceTransformer):
    """Council conversations; ``user_council*`` rows are internal bookkeeping."""

    source_id = "llm-council"
    table_name = "LLMCouncilConversations"
    source_type = SourceType.EXTERNAL
    record_type = "LLM_CONVERSATION"
    delete_policy = DeletePolicy.SOFT

    INTERNAL_PREFIX = "user_council"

    def extract_identity(self, raw: dict[str, Any]) -> IdentityResult:
        conversation_id = raw.get("id")
        if not conversation_id:
            return IdentityResult.missing("missing id")
        if str(conversation_id).startswith(self.INTERNAL_PREFIX):
            return IdentityResult.skip(f"internal {self.INTERNAL_PREFIX} record")
        return IdentityResult.resolved(str(conversation_id))

    def map_content(self, raw: dict[str, Any]) -> ConversationContent:
        user_query = ""
        council_response = ""
        messages = raw.get("messages")
        if isinstance(messages, list) and messages:
            first = messages[0] if isinstance(messages[0], dict) else {}
            user_query = _text(first, "content")
            if len(messages) > 1 and isinstance(messages[1], dict):
                stage3 = messages[1].get("stage3") or {}
                council_response = _text(stage3, "response") if isinstance(stage3, dict) else ""
        return {
            "conversation_id": _text(raw, "id"),
            "title": _text(raw, "title"),
            "user_query": user_query,
            "council_response": council_response,
        }

    def resolve_created_at(self, raw: dict[str, Any]) -> str | None:
        return to_iso8601(raw.get("created_at"))

    def resolve_updated_at(self, raw: dict[str, Any]) -> str | None:
        return to_iso8601(raw.get("created_at"))

    def resolve_owner(self, raw: dict[str, Any]) -> str | None:
        owner = raw.get("user_id")
        return str(owner) if owner else None


class SoliloquiesTransformer(SourceTransformer):
    source_id = "soliloquies"
    table_name = "nexusnote-soliloquies-production"
    source_type = SourceType.PERSONAL
    record_type = "SOLILOQUY"
    delete_policy = DeletePolicy.HARD

    def extract_identity(self, raw: dict[str, Any]) -> IdentityResult:
        return join_required(raw, "soliloquyId")

    def extract_identity_from_keys(self, keys: dict[str, Any]) -> IdentityResult | None:
        for name in ("soliloquyId", "PK", "id"):
            if keys.get(name):
                return IdentityResult.resolved(str(keys[name]))
        return IdentityResult.missing("no soliloquyId, PK or id in keys")

    def map_content(self, raw: dict[str, Any]) -> SoliloquyContent:
        return {
            "transcript": _text(raw, "normalizedContent"),
            "duration_seconds": raw.get("durationSeconds") or 0,
        }

    def resolve_updated_at(self, raw: dict[str, Any]) -> str | None:
        return to_iso8601(raw.get("processedAt"))


class McpChatTransformer(SourceTransformer):
    source_id = "mcp-chat"
    table_name = "MCP-chat-conversations"
    source_type = SourceType.EXTERNAL
    record_type = "MCP_CONVERSATION"
    delete_policy = DeletePolicy.SOFT

    def extract_identity(self, raw: dict[str, Any]) -> IdentityResult:
        return join_required(raw, "sessionId", "createdAt")

    def map_content(self, raw: dict[str, Any]) -> ChatSessionContent:
        return {"session_id": _text(raw, "sessionId"), "user_id": _text(raw, "userId")}

    def resolve_updated_at(self, raw: dict[str, Any]) -> str | None:
        return to_iso8601(raw.get("lastMessageAt"))


ALL_TRANSFORMERS: tuple[type[SourceTransformer], ...] = (
    NotesTransformer,
    ContactsTransformer,
    ThoughtsTransformer,
    ProjectsTransformer,
    WorkboardTransformer,
    CaptureTransformer,
    LlmCouncilTransformer,
    SoliloquiesTransformer,
    McpChatTransformer,
)
