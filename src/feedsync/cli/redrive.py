"""feedsync redrive: retry enrichment for dead-lettered records.

Prints the run result as a JSON object on stdout:
  {"processed": N, "succeeded": N, "failed": N, "requeued": N}
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer

from feedsync.cli.common import build_enricher, load_config_or_exit, open_db, resolve_db_path
from feedsync.db.queue import SqliteQueue
from feedsync.db.repository import UnifiedStore
from feedsync.enrich.dead_letter import DeadLetterService
from feedsync.enrich.redrive import RedriveProcessor


def redrive_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the store database (default from config)."),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", min=1, max=100, help="Messages per run (default from config)."),
    ] = None,
    max_retry: Annotated[
        int | None,
        typer.Option("--max-retry", min=0, help="Abandon messages redriven this many times."),
    ] = None,
) -> None:
    """Run one redrive batch over the dead-letter queue."""
    cfg = load_config_or_exit()
    conn = open_db(resolve_db_path(db, cfg))
    try:
        queue = SqliteQueue(conn, cfg.dead_letter.queue)
        processor = RedriveProcessor(
            queue,
            build_enricher(cfg, conn),
            UnifiedStore(conn),
            DeadLetterService(queue),
            batch_size=batch_size if batch_size is not None else cfg.redrive.batch_size,
            max_retry=max_retry if max_retry is not None else cfg.redrive.max_retry,
            visibility_timeout=cfg.dead_letter.visibility_timeout,
        )
        result = processor.run()
    finally:
        conn.close()

    typer.echo(json.dumps(result.to_dict()))
