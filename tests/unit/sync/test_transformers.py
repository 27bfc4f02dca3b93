"""Tests for per-source transformers."""

from __future__ import annotations

import pytest

from feedsync.db.models import SourceType
from feedsync.sync.identity import IdentityStatus
from feedsync.sync.transformers import (
    ALL_TRANSFORMERS,
    CaptureTransformer,
    ContactsTransformer,
    DeletePolicy,
    LlmCouncilTransformer,
    McpChatTransformer,
    NotesTransformer,
    SoliloquiesTransformer,
    ThoughtsTransformer,
    WorkboardTransformer,
    to_iso8601,
)


# ------------------------------------------------------------------
# to_iso8601
# ------------------------------------------------------------------

@pytest.mark.parametrize("value", [None, "", True])
def test_to_iso8601_absent(value):
    assert to_iso8601(value) is None


def test_to_iso8601_string_passthrough():
    assert to_iso8601("2024-05-01T10:00:00Z") == "2024-05-01T10:00:00Z"


def test_to_iso8601_epoch_seconds_and_millis():
    assert to_iso8601(1_700_000_000) == "2023-11-14T22:13:20.000Z"
    assert to_iso8601(1_700_000_000_123) == "2023-11-14T22:13:20.123Z"


# ------------------------------------------------------------------
# Class attributes
# ------------------------------------------------------------------

def test_every_transformer_declares_its_source():
    for cls in ALL_TRANSFORMERS:
        t = cls()
        assert t.source_id and t.table_name and t.record_type
        assert isinstance(t.source_type, SourceType)
        assert isinstance(t.delete_policy, DeletePolicy)


def test_delete_policies():
    assert NotesTransformer.delete_policy is DeletePolicy.HARD
    assert ContactsTransformer.delete_policy is DeletePolicy.SOFT
    assert LlmCouncilTransformer.delete_policy is DeletePolicy.SOFT


# ------------------------------------------------------------------
# Notes
# ------------------------------------------------------------------

def test_notes_identity_and_content():
    t = NotesTransformer()
    raw = {"userId": "u1", "noteId": "n1", "title": "T", "content": "C", "secret": "x"}
    result = t.extract_identity(raw)
    assert result.is_resolved and result.identity == "u1#n1"
    assert t.map_content(raw) == {"title": "T", "content": "C"}
    assert t.resolve_owner(raw) == "u1"


def test_notes_tags_only_when_present():
    t = NotesTransformer()
    raw = {"userId": "u1", "noteId": "n1", "aiTags": ["a", "b"]}
    assert t.map_content(raw) == {"title": "", "content": "", "tags": ["a", "b"]}


def test_notes_missing_identity_names_fields():
    result = NotesTransformer().extract_identity({"userId": "u1"})
    assert result.status is IdentityStatus.MISSING
    assert "noteId" in result.reason


# ------------------------------------------------------------------
# Other sources
# ------------------------------------------------------------------

def test_contacts_owner_from_pk_prefix():
    t = ContactsTransformer()
    raw = {"PK": "USER#u9", "SK": "CONTACT#c1", "contactName": "Ada", "role": "Eng"}
    assert t.extract_identity(raw).identity == "USER#u9#CONTACT#c1"
    assert t.resolve_owner(raw) == "u9"
    assert t.map_content(raw)["name"] == "Ada"


def test_thoughts_updated_at_is_created_at():
    t = ThoughtsTransformer()
    raw = {"userId": "u", "thoughtId": "t", "createdAt": "2024-01-01T00:00:00Z"}
    assert t.resolve_updated_at(raw) == "2024-01-01T00:00:00Z"


def test_workboard_content_types():
    t = WorkboardTransformer()
    raw = {"PK": "P", "SK": "S", "chainId": "c", "slotIndex": "3", "archived": True}
    assert t.map_content(raw) == {"chain_id": "c", "slot_index": 3, "chain_archived": True}
    assert t.resolve_owner(raw) is None


def test_capture_timestamps_from_captured_at():
    t = CaptureTransformer()
    raw = {"pk": "a", "sk": "b", "capturedAt": 1_700_000_000}
    assert t.resolve_created_at(raw) == t.resolve_updated_at(raw) == "2023-11-14T22:13:20.000Z"


def test_llm_council_internal_rows_are_skipped():
    t = LlmCouncilTransformer()
    assert t.extract_identity({"id": "user_council_index"}).is_skip
    assert t.extract_identity({"id": "conv-1"}).identity == "conv-1"
    assert t.extract_identity({}).status is IdentityStatus.MISSING


def test_llm_council_content_from_messages():
    raw = {
        "id": "c1",
        "title": "Q",
        "user_id": "u1",
        "messages": [{"content": "question?"}, {"stage3": {"response": "answer."}}],
    }
    t = LlmCouncilTransformer()
    assert t.map_content(raw) == {
        "conversation_id": "c1",
        "title": "Q",
        "user_query": "question?",
        "council_response": "answer.",
    }
    assert t.resolve_owner(raw) == "u1"


def test_soliloquy_key_extractor_fallbacks():
    t = SoliloquiesTransformer()
    assert t.extract_identity_from_keys({"soliloquyId": "s1"}).identity == "s1"
    assert t.extract_identity_from_keys({"PK": "p1"}).identity == "p1"
    assert t.extract_identity_from_keys({"other": "x"}).status is IdentityStatus.MISSING


def test_mcp_chat_identity_and_updated_at():
    t = McpChatTransformer()
    raw = {"sessionId": "s", "createdAt": "2024-01-01", "lastMessageAt": "2024-01-05"}
    assert t.extract_identity(raw).identity == "s#2024-01-01"
    assert t.resolve_updated_at(raw) == "2024-01-05"
