"""feedsync status: store and dead-letter queue overview."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from feedsync.cli.common import load_config_or_exit, open_db, resolve_db_path
from feedsync.db.queue import SqliteQueue
from feedsync.db.repository import UnifiedStore

console = Console()


def status_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the store database (default from config)."),
    ] = None,
) -> None:
    """Show record counts per type and the dead-letter queue depth."""
    cfg = load_config_or_exit()
    db_path = resolve_db_path(db, cfg)

    if not db_path.exists():
        console.print(
            Panel(
                "[yellow]No database found.[/]\n"
                "  Run:  feedsync init",
                title="[bold]Store[/]",
                expand=False,
            )
        )
        return

    size_mb = db_path.stat().st_size / (1024 * 1024)
    conn = open_db(db_path)
    try:
        store = UnifiedStore(conn)
        by_type = store.count_by_record_type()
        deleted = store.count_deleted()
        enriched = store.count_enriched()
        depth = SqliteQueue(conn, cfg.dead_letter.queue).depth()
    finally:
        conn.close()

    total = sum(by_type.values())
    lines = [
        f"Database:  {db_path} ({size_mb:.1f} MB)",
        f"Live:      [bold]{total:,}[/]  |  Deleted: [bold]{deleted:,}[/]  |  "
        f"Enriched: [bold]{enriched:,}[/]",
        f"Model:     {cfg.enrichment.model}"
        + ("" if cfg.enrichment.enabled else " [dim](disabled)[/]"),
    ]
    console.print(Panel("\n".join(lines), title="[bold]Store[/]", expand=False))

    if by_type:
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Type", style="bold")
        table.add_column("Count", justify="right")
        for record_type, count in sorted(by_type.items()):
            table.add_row(record_type, f"{count:,}")
        console.print(Panel(table, title="[bold]Records by type[/]", expand=False))

    depth_style = "yellow" if depth else "green"
    console.print(
        Panel(
            f"Queue:  {cfg.dead_letter.queue}\n"
            f"Depth:  [{depth_style}]{depth}[/]"
            + ("\n  Run:  feedsync redrive" if depth else ""),
            title="[bold]Dead letters[/]",
            expand=False,
        )
    )
