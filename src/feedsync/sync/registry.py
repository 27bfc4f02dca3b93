"""Transformer registry: source id / table name → SourceTransformer.

Built once at process start from explicit transformer instances; there is no
mutable module-level registry.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from feedsync.errors import UnknownSourceError
from feedsync.sync.transformers import ALL_TRANSFORMERS, SourceTransformer


class TransformerRegistry:
    """Immutable lookup of transformers by source id and by source table name."""

    def __init__(self, transformers: Iterable[SourceTransformer]) -> None:
        self._by_id: dict[str, SourceTransformer] = {}
        self._by_table: dict[str, SourceTransformer] = {}
        for transformer in transformers:
            if transformer.source_id in self._by_id:
                raise ValueError(f"Duplicate source id '{transformer.source_id}'")
            if transformer.table_name in self._by_table:
                raise ValueError(f"Duplicate source table '{transformer.table_name}'")
            self._by_id[transformer.source_id] = transformer
            self._by_table[transformer.table_name] = transformer

    def get(self, source_id: str) -> SourceTransformer:
        """Return the transformer for *source_id*.

        Raises:
            UnknownSourceError: If no transformer is registered under that id.
        """
        try:
            return self._by_id[source_id]
        except KeyError:
            raise UnknownSourceError(
                f"Unknown source '{source_id}'. Known sources: {', '.join(self.source_ids())}"
            ) from None

    def find(self, source_id: str) -> SourceTransformer | None:
        return self._by_id.get(source_id)

    def by_table(self, table_name: str) -> SourceTransformer:
        """Return the transformer whose source table is *table_name*."""
        try:
            return self._by_table[table_name]
        except KeyError:
            raise UnknownSourceError(f"No source registered for table '{table_name}'") from None

    def source_ids(self) -> list[str]:
        return list(self._by_id)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._by_id

    def __iter__(self) -> Iterator[SourceTransformer]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)


def default_registry() -> TransformerRegistry:
    """Registry of every built-in source."""
    return TransformerRegistry(cls() for cls in ALL_TRANSFORMERS)
