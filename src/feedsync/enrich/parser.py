"""Defensive parsing of generation output into a {summary, insight} pair."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

from feedsync.errors import InvalidResponseError

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*\n?|\n?\s*```\s*$")


@dataclass(frozen=True)
class Enrichment:
    summary: str
    insight: str


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```/```json fence, if any."""
    return _FENCE_RE.sub("", text.strip()).strip()


def parse_enrichment(text: str) -> Enrichment:
    """Parse backend output into an Enrichment.

    Accepts bare JSON, fenced JSON, or JSON embedded in surrounding prose.

    Raises:
        InvalidResponseError: No JSON object found, or summary/insight missing
            or empty.
    """
    cleaned = strip_code_fence(text or "")
    data = _load_object(cleaned)
    summary = data.get("summary")
    insight = data.get("insight")
    if not isinstance(summary, str) or not summary.strip():
        raise InvalidResponseError("Response has no non-empty 'summary'")
    if not isinstance(insight, str) or not insight.strip():
        raise InvalidResponseError("Response has no non-empty 'insight'")
    return Enrichment(summary=summary.strip(), insight=insight.strip())


def _load_object(text: str) -> dict:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise InvalidResponseError(f"No JSON object in response: {text[:200]!r}") from None
        try:
            data = json.loads(text[start : end + 1])
        except json.JSONDecodeError as err:
            raise InvalidResponseError(f"Malformed JSON in response: {err}") from err
    if not isinstance(data, dict):
        raise InvalidResponseError(f"Expected a JSON object, got {type(data).__name__}")
    return data
