"""feedsync sync: apply a batch of change events for one source.

Events are read from a JSON array, a ``{"Records": [...]}`` stream payload, or
JSON Lines, and processed strictly in order. On an unexpected failure the
command stops, reports the failing event index, and exits 1; the events before
it are already applied and safe to replay.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from feedsync.cli.common import (
    build_enricher,
    load_config_or_exit,
    open_db,
    read_json_records,
    resolve_db_path,
)
from feedsync.cli.errors import err_batch_failed, err_source_selector, err_unknown_source
from feedsync.db.repository import UnifiedStore
from feedsync.errors import EventProcessingError, UnknownSourceError
from feedsync.sync.processor import StreamProcessor
from feedsync.sync.registry import TransformerRegistry, default_registry
from feedsync.sync.transformers import SourceTransformer

console = Console()


def sync_cmd(
    events: Annotated[
        Path,
        typer.Option("--events", "-e", help="File with change events (JSON / JSONL)."),
    ],
    source: Annotated[
        str | None,
        typer.Option("--source", "-s", help="Source id (see: feedsync sources)."),
    ] = None,
    table: Annotated[
        str | None,
        typer.Option("--table", "-t", help="Source table name, instead of --source."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the store database (default from config)."),
    ] = None,
    no_enrich: Annotated[
        bool,
        typer.Option("--no-enrich", help="Skip summary/insight generation."),
    ] = False,
) -> None:
    """Apply change events for one source to the unified store."""
    cfg = load_config_or_exit()
    registry = default_registry()
    transformer = resolve_transformer(registry, source, table)
    batch = read_json_records(events)

    conn = open_db(resolve_db_path(db, cfg))
    try:
        enricher = None
        if cfg.enrichment.enabled and not no_enrich:
            enricher = build_enricher(cfg, conn)
        processor = StreamProcessor(transformer, UnifiedStore(conn), enricher)
        try:
            result = processor.process_batch(batch)
        except EventProcessingError as err:
            console.print(err_batch_failed(err.index, err.event_id, err.cause))
            raise typer.Exit(1) from err
    finally:
        conn.close()

    summary = Table(title=f"Synced {transformer.source_id}", show_header=False)
    summary.add_column("Outcome", style="bold")
    summary.add_column("Count", justify="right")
    for outcome, count in result.to_dict().items():
        summary.add_row(outcome, str(count))
    console.print(summary)


def resolve_transformer(
    registry: TransformerRegistry, source: str | None, table: str | None
) -> SourceTransformer:
    """Look up the transformer selected by exactly one of *source* / *table*."""
    if source is not None and table is None:
        name, lookup = source, registry.get
    elif table is not None and source is None:
        name, lookup = table, registry.by_table
    else:
        console.print(err_source_selector())
        raise typer.Exit(1)
    try:
        return lookup(name)
    except UnknownSourceError as err:
        console.print(err_unknown_source(name, registry.source_ids()))
        raise typer.Exit(1) from err
