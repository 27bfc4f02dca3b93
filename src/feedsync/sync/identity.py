"""Typed outcome of identity extraction.

Transformers return an IdentityResult instead of raising, so callers can tell
"this row is internal, do not sync it" apart from "this row is broken".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class IdentityStatus(str, Enum):
    RESOLVED = "resolved"
    SKIP = "skip"
    MISSING = "missing"


@dataclass(frozen=True)
class IdentityResult:
    status: IdentityStatus
    identity: str = ""
    reason: str = ""

    @classmethod
    def resolved(cls, identity: str) -> IdentityResult:
        return cls(IdentityStatus.RESOLVED, identity=identity)

    @classmethod
    def skip(cls, reason: str) -> IdentityResult:
        return cls(IdentityStatus.SKIP, reason=reason)

    @classmethod
    def missing(cls, reason: str) -> IdentityResult:
        return cls(IdentityStatus.MISSING, reason=reason)

    @property
    def is_resolved(self) -> bool:
        return self.status is IdentityStatus.RESOLVED

    @property
    def is_skip(self) -> bool:
        return self.status is IdentityStatus.SKIP


def join_required(raw: dict, *fields: str) -> IdentityResult:
    """Join the named fields with '#', or report which ones are absent."""
    values = [raw.get(f) for f in fields]
    absent = [f for f, v in zip(fields, values) if v is None or v == ""]
    if absent:
        return IdentityResult.missing(f"missing {', '.join(absent)}")
    return IdentityResult.resolved("#".join(str(v) for v in values))
