"""feedsync init: create the store database and config files.

Creates:
  .feedsync.db              unified store + dead-letter queue schema
  feedsync.yaml             per-project config template (if missing)
  ~/.feedsync/config.yaml   global model defaults (created once, mode 0o600)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from feedsync.config import ensure_global_config
from feedsync.db.connection import Database
from feedsync.db.schema import CURRENT_VERSION, initialize

console = Console()

_DEFAULT_PROJECT_DIR = Path(".")

_PROJECT_TEMPLATE = """\
# feedsync project configuration.
# API keys belong in environment variables, never in this file.

store:
  path: .feedsync.db

enrichment:
  enabled: true
  model: bedrock/anthropic.claude-3-haiku-20240307-v1:0
  max_tokens: 300
  max_attempts: 3

dead_letter:
  queue: enrichment-dlq
  visibility_timeout: 60

redrive:
  batch_size: 10
  max_retry: 3

logging:
  level: INFO
  json: true
"""


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = _DEFAULT_PROJECT_DIR,
    global_config: Annotated[
        Path | None,
        typer.Option("--global-config", hidden=True, help="Override global config path (for testing)."),
    ] = None,
) -> None:
    """Initialize a feedsync project: database, feedsync.yaml, global config."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)

    db_path = project_dir / ".feedsync.db"
    existed = db_path.exists()
    conn = Database(db_path).connect()
    try:
        initialize(conn)
    finally:
        conn.close()
    if existed:
        console.print(f"  [yellow]⚠[/] {db_path} already exists — schema checked (v{CURRENT_VERSION}).")
    else:
        console.print(f"  [green]✓[/] {db_path} (schema v{CURRENT_VERSION})")

    cfg_file = project_dir / "feedsync.yaml"
    if cfg_file.exists():
        console.print(f"  [dim]·[/] {cfg_file} kept")
    else:
        cfg_file.write_text(_PROJECT_TEMPLATE, encoding="utf-8")
        console.print(f"  [green]✓[/] {cfg_file}")

    global_path = ensure_global_config(global_config)
    console.print(f"  [green]✓[/] {global_path} (global config)")

    console.print("\n[bold green]✓ feedsync initialized.[/]")
    console.print("\nNext steps:")
    console.print("  1. feedsync sources                               (list sources)")
    console.print("  2. feedsync backfill --source <id> --input FILE   (load existing rows)")
    console.print("  3. feedsync sync --source <id> --events FILE      (apply change events)")
    console.print("  4. feedsync redrive                               (retry failed enrichment)")
