"""feedsync sources: list the registered source transformers."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from feedsync.sync.registry import default_registry

console = Console()


def sources_cmd() -> None:
    """List registered sources with their table, record type, and delete policy."""
    table = Table(title="Sources")
    table.add_column("Source", style="bold")
    table.add_column("Table")
    table.add_column("Record type")
    table.add_column("Provenance", style="dim")
    table.add_column("Delete")

    for transformer in default_registry():
        table.add_row(
            transformer.source_id,
            transformer.table_name,
            transformer.record_type,
            transformer.source_type.value,
            transformer.delete_policy.value,
        )
    console.print(table)
