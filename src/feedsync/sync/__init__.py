"""feedsync sync pipeline: transformers, registry, builder, stream processor, backfill."""

from feedsync.sync.backfill import Backfiller, BackfillStats
from feedsync.sync.builder import RecordBuilder
from feedsync.sync.events import ChangeEvent
from feedsync.sync.identity import IdentityResult, IdentityStatus
from feedsync.sync.processor import BatchResult, Outcome, StreamProcessor
from feedsync.sync.registry import TransformerRegistry, default_registry
from feedsync.sync.transformers import DeletePolicy, SourceTransformer

__all__ = [
    "Backfiller",
    "BackfillStats",
    "BatchResult",
    "ChangeEvent",
    "DeletePolicy",
    "IdentityResult",
    "IdentityStatus",
    "Outcome",
    "RecordBuilder",
    "SourceTransformer",
    "StreamProcessor",
    "TransformerRegistry",
    "default_registry",
]
