"""Change events delivered by the upstream change feed.

Two input shapes are accepted:

  plain     {"event_type": "INSERT", "key_attributes": {...},
             "new_image": {...}, "old_image": {...}}
  DynamoDB  {"eventID": "...", "eventName": "MODIFY",
             "dynamodb": {"Keys": {...}, "NewImage": {...}, "OldImage": {...}}}

DynamoDB attribute values ({"S": "..."}, {"N": "12"}, ...) are unmarshalled
with boto3's TypeDeserializer; numbers come back as int or float.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping

from boto3.dynamodb.types import Binary, TypeDeserializer

from feedsync.db.models import EventType
from feedsync.errors import MalformedEventError

_deserializer = TypeDeserializer()


@dataclass(frozen=True)
class ChangeEvent:
    event_type: EventType
    key_attributes: dict[str, Any] | None = None
    new_image: dict[str, Any] | None = None
    old_image: dict[str, Any] | None = None
    event_id: str | None = None
    source_table: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ChangeEvent:
        """Parse either supported shape.

        Raises:
            MalformedEventError: If the event type is missing or unknown.
        """
        if not isinstance(data, Mapping):
            raise MalformedEventError(f"Change event must be an object, got {type(data).__name__}")
        if "dynamodb" in data:
            return cls._from_dynamodb(data)
        return cls(
            event_type=_event_type(data.get("event_type")),
            key_attributes=_optional_dict(data.get("key_attributes")),
            new_image=_optional_dict(data.get("new_image")),
            old_image=_optional_dict(data.get("old_image")),
            event_id=data.get("event_id"),
            source_table=data.get("source_table"),
        )

    @classmethod
    def _from_dynamodb(cls, data: Mapping[str, Any]) -> ChangeEvent:
        stream = data.get("dynamodb") or {}
        if not isinstance(stream, Mapping):
            raise MalformedEventError(
                f"'dynamodb' must be an object, got {type(stream).__name__}"
            )
        return cls(
            event_type=_event_type(data.get("eventName")),
            key_attributes=unmarshall(stream.get("Keys")),
            new_image=unmarshall(stream.get("NewImage")),
            old_image=unmarshall(stream.get("OldImage")),
            event_id=data.get("eventID"),
            source_table=_table_from_arn(data.get("eventSourceARN")),
        )


def unmarshall(image: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Convert a DynamoDB attribute-value map into plain Python values.

    Raises:
        MalformedEventError: If *image* or any value in it is not an
            attribute-value map.
    """
    if image is None:
        return None
    if not isinstance(image, Mapping):
        raise MalformedEventError(f"Expected an attribute map, got {type(image).__name__}")
    for key, value in image.items():
        if not isinstance(value, Mapping):
            raise MalformedEventError(f"Attribute {key!r} is not a typed value: {value!r}")
    try:
        return {k: _plain(_deserializer.deserialize(v)) for k, v in image.items()}
    except (AttributeError, TypeError, ValueError) as err:
        raise MalformedEventError(f"Invalid DynamoDB attribute map: {err}") from err


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_plain(v) for v in value), key=str)
    if isinstance(value, Binary):
        value = value.value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return value


def _event_type(value: Any) -> EventType:
    try:
        return EventType(str(value).upper())
    except ValueError:
        raise MalformedEventError(f"Unknown event type {value!r}") from None


def _optional_dict(value: Any) -> dict[str, Any] | None:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise MalformedEventError(f"Expected an object, got {type(value).__name__}")
    return dict(value)


def _table_from_arn(arn: Any) -> str | None:
    # arn:aws:dynamodb:region:account:table/<name>/stream/<label>
    if not isinstance(arn, str) or ":table/" not in arn:
        return None
    return arn.split(":table/", 1)[1].split("/", 1)[0]
