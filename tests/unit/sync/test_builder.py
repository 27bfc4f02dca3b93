"""Tests for the record builder."""

from __future__ import annotations

import pytest

from feedsync.db.models import EventType, SourceType
from feedsync.errors import IdentityError
from feedsync.sync.builder import RecordBuilder, reuse_enrichment
from feedsync.sync.identity import IdentityStatus
from feedsync.sync.transformers import (
    LlmCouncilTransformer,
    NotesTransformer,
    SoliloquiesTransformer,
)

NOW = "2025-06-01T12:00:00.000Z"


@pytest.fixture
def builder():
    return RecordBuilder(clock=lambda: NOW)


def test_build_note(builder):
    raw = {
        "userId": "u1",
        "noteId": "n1",
        "title": "T",
        "content": "C",
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-02T00:00:00Z",
    }
    record = builder.build(NotesTransformer(), raw, EventType.INSERT)

    assert record.partition_key == "nexusnote-notes-production#u1#n1"
    assert record.sort_key == "RECORD"
    assert record.source_type is SourceType.PERSONAL
    assert record.source_identity == "u1#n1"
    assert record.record_type == "NOTE"
    assert record.content == {"title": "T", "content": "C"}
    assert record.created_at == "2024-01-01T00:00:00Z"
    assert record.updated_at == "2024-01-02T00:00:00Z"
    assert record.last_event is EventType.INSERT
    assert record.owner_id == "u1"
    assert not record.deleted


def test_build_defaults_timestamps_to_now(builder):
    record = builder.build(NotesTransformer(), {"userId": "u1", "noteId": "n1"})
    assert record.created_at == NOW
    assert record.updated_at == NOW


def test_build_partition_key_is_stable(builder):
    raw = {"userId": "u1", "noteId": "n1", "title": "a"}
    first = builder.build(NotesTransformer(), raw)
    second = builder.build(NotesTransformer(), {**raw, "title": "b"}, EventType.MODIFY)
    assert first.partition_key == second.partition_key


def test_build_missing_identity_raises(builder):
    with pytest.raises(IdentityError, match="noteId"):
        builder.build(NotesTransformer(), {"userId": "u1"})


def test_build_internal_row_returns_none(builder):
    assert builder.build(LlmCouncilTransformer(), {"id": "user_council_meta"}) is None


# ------------------------------------------------------------------
# Delete identity: three tiers
# ------------------------------------------------------------------

def test_delete_identity_tier1_key_extractor(builder):
    result = builder.resolve_delete_identity(SoliloquiesTransformer(), {"PK": "s1"})
    assert result.identity == "s1"


def test_delete_identity_tier2_general_extractor_on_keys(builder):
    result = builder.resolve_delete_identity(
        NotesTransformer(), {"userId": "u1", "noteId": "n1"}
    )
    assert result.identity == "u1#n1"


def test_delete_identity_tier3_old_image(builder):
    result = builder.resolve_delete_identity(
        NotesTransformer(), {"noteId": "n1"}, {"userId": "u1", "noteId": "n1", "title": "T"}
    )
    assert result.identity == "u1#n1"


def test_delete_identity_all_tiers_fail(builder):
    result = builder.resolve_delete_identity(NotesTransformer(), {"noteId": "n1"})
    assert result.status is IdentityStatus.MISSING
    assert "keys:" in result.reason
    assert "old image: absent" in result.reason


def test_delete_identity_skip_passes_through(builder):
    result = builder.resolve_delete_identity(LlmCouncilTransformer(), {"id": "user_council_x"})
    assert result.is_skip


def test_reuse_enrichment_copies_valid_enrichment(make_record):
    record = make_record()
    reuse_enrichment(record, make_record(summary="S", insight="I"))
    assert (record.summary, record.insight) == ("S", "I")


@pytest.mark.parametrize(
    "existing",
    [
        None,
        {"summary": "S", "insight": "I", "content": {"title": "T", "content": "new"}},
        {"summary": "Unable to generate summary.", "insight": "Unable to generate insight."},
        {"summary": "S", "insight": None},
    ],
)
def test_reuse_enrichment_leaves_record_alone(make_record, existing):
    record = make_record()
    reuse_enrichment(record, None if existing is None else make_record(**existing))
    assert (record.summary, record.insight) == (None, None)


def test_unresolved_identity_carries_empty_identity(builder):
    result = builder.resolve_delete_identity(NotesTransformer(), {"noteId": "n1"})
    assert result.status is IdentityStatus.MISSING
    assert result.identity == ""
