"""feedsync backfill: sync existing source rows into the unified store.

Rows are read from a JSON array, JSON Lines, or a DynamoDB scan export
(``{"Items": [...]}`` with typed attribute values), and written as INSERTs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from feedsync.cli.common import (
    build_enricher,
    load_config_or_exit,
    open_db,
    read_json_records,
    resolve_db_path,
)
from feedsync.cli.sync import resolve_transformer
from feedsync.db.repository import UnifiedStore
from feedsync.sync.backfill import Backfiller
from feedsync.sync.registry import default_registry

console = Console()


def backfill_cmd(
    source: Annotated[
        str,
        typer.Option("--source", "-s", help="Source id (see: feedsync sources)."),
    ],
    input_file: Annotated[
        Path,
        typer.Option("--input", "-i", help="File with source rows (JSON / JSONL / scan export)."),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the store database (default from config)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Transform only; report what would be written."),
    ] = False,
    limit: Annotated[
        int | None,
        typer.Option("--limit", min=1, help="Stop after this many rows."),
    ] = None,
    no_enrich: Annotated[
        bool,
        typer.Option("--no-enrich", help="Skip summary/insight generation."),
    ] = False,
) -> None:
    """Backfill one source from an export of its existing rows."""
    cfg = load_config_or_exit()
    transformer = resolve_transformer(default_registry(), source, None)
    rows = read_json_records(input_file)

    db_path = resolve_db_path(db, cfg)
    if dry_run and not db_path.exists():
        db_path = Path(":memory:")
    conn = open_db(db_path, must_exist=not dry_run)
    try:
        enricher = None
        if cfg.enrichment.enabled and not (no_enrich or dry_run):
            enricher = build_enricher(cfg, conn)
        stats = Backfiller(transformer, UnifiedStore(conn), enricher).run(
            rows, dry_run=dry_run, limit=limit
        )
    finally:
        conn.close()

    verb = "Would write" if dry_run else "Written"
    console.print(f"\n[bold]Backfill {stats.source}[/]" + (" [dim](dry run)[/]" if dry_run else ""))
    console.print(f"  Scanned:     {stats.scanned}")
    console.print(f"  Transformed: {stats.transformed}")
    console.print(f"  {verb + ':':<12} {stats.written}")
    console.print(f"  Skipped:     {stats.skipped}")
    console.print(f"  Errors:      {stats.errors}")
    console.print(f"  Duration:    {stats.duration_seconds:.2f}s")
    if stats.errors:
        raise typer.Exit(1)
