"""Tests for change event parsing."""

from __future__ import annotations

import pytest

from feedsync.db.models import EventType
from feedsync.errors import MalformedEventError
from feedsync.sync.events import ChangeEvent, unmarshall


def test_plain_shape():
    event = ChangeEvent.from_dict(
        {
            "event_type": "modify",
            "key_attributes": {"userId": "u1", "noteId": "n1"},
            "new_image": {"userId": "u1", "noteId": "n1", "title": "T"},
            "event_id": "e-1",
        }
    )
    assert event.event_type is EventType.MODIFY
    assert event.key_attributes == {"userId": "u1", "noteId": "n1"}
    assert event.new_image["title"] == "T"
    assert event.old_image is None
    assert event.event_id == "e-1"


def test_dynamodb_shape_is_unmarshalled():
    event = ChangeEvent.from_dict(
        {
            "eventID": "abc",
            "eventName": "INSERT",
            "eventSourceARN": (
                "arn:aws:dynamodb:eu-west-1:123:table/nexusnote-notes-production/stream/2024"
            ),
            "dynamodb": {
                "Keys": {"userId": {"S": "u1"}, "noteId": {"S": "n1"}},
                "NewImage": {
                    "userId": {"S": "u1"},
                    "noteId": {"S": "n1"},
                    "views": {"N": "12"},
                    "score": {"N": "1.5"},
                    "pinned": {"BOOL": True},
                    "tags": {"SS": ["b", "a"]},
                    "meta": {"M": {"n": {"N": "1"}}},
                    "nothing": {"NULL": True},
                },
            },
        }
    )
    assert event.event_type is EventType.INSERT
    assert event.event_id == "abc"
    assert event.source_table == "nexusnote-notes-production"
    assert event.key_attributes == {"userId": "u1", "noteId": "n1"}
    assert event.new_image == {
        "userId": "u1",
        "noteId": "n1",
        "views": 12,
        "score": 1.5,
        "pinned": True,
        "tags": ["a", "b"],
        "meta": {"n": 1},
        "nothing": None,
    }


def test_unknown_event_type_is_malformed():
    with pytest.raises(MalformedEventError, match="Unknown event type"):
        ChangeEvent.from_dict({"event_type": "UPSERT"})


def test_missing_event_type_is_malformed():
    with pytest.raises(MalformedEventError):
        ChangeEvent.from_dict({"new_image": {}})


def test_non_object_image_is_malformed():
    with pytest.raises(MalformedEventError):
        ChangeEvent.from_dict({"event_type": "INSERT", "new_image": ["x"]})


def test_non_mapping_event_is_malformed():
    with pytest.raises(MalformedEventError):
        ChangeEvent.from_dict(["INSERT"])  # type: ignore[arg-type]


def test_invalid_attribute_map_is_malformed():
    with pytest.raises(MalformedEventError):
        unmarshall({"x": {"BOGUS": "1"}})


def test_unmarshall_none():
    assert unmarshall(None) is None


@pytest.mark.parametrize(
    "stream",
    [
        {"NewImage": {"userId": "u1"}},
        {"NewImage": {"meta": {"M": {"n": "1"}}}},
        {"Keys": ["userId"]},
        {"OldImage": "u1"},
    ],
)
def test_untyped_dynamodb_values_are_malformed(stream):
    with pytest.raises(MalformedEventError):
        ChangeEvent.from_dict({"eventName": "INSERT", "dynamodb": stream})


def test_non_object_dynamodb_section_is_malformed():
    with pytest.raises(MalformedEventError, match="'dynamodb' must be an object"):
        ChangeEvent.from_dict({"eventName": "INSERT", "dynamodb": "oops"})
