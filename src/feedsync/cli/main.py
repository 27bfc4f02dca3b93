"""feedsync CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from feedsync.cli.backfill import backfill_cmd
from feedsync.cli.init import init_cmd
from feedsync.cli.redrive import redrive_cmd
from feedsync.cli.sources import sources_cmd
from feedsync.cli.status import status_cmd
from feedsync.cli.sync import sync_cmd
from feedsync.config import ConfigError, FeedSyncConfig, load_config
from feedsync.logging_config import configure_logging


def _installed_version() -> str:
    try:
        return importlib.metadata.version("feedsync")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"feedsync {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="feedsync",
    help=(
        "feedsync — sync source tables into one enriched newsfeed store.\n\n"
        "  feedsync sync      Apply a batch of change events for one source.\n"
        "  feedsync redrive   Retry enrichment for dead-lettered records."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR (default from config)."),
    ] = None,
    console_logs: Annotated[
        bool,
        typer.Option("--console-logs", help="Human-readable logs instead of JSON lines."),
    ] = False,
) -> None:
    """feedsync: sync source tables into one enriched newsfeed store."""
    # Invalid config is reported by the command itself; logging just uses defaults.
    try:
        logging_cfg = load_config().logging
    except ConfigError:
        logging_cfg = FeedSyncConfig().logging
    configure_logging(
        level=log_level or logging_cfg.level,
        json_output=logging_cfg.json and not console_logs,
    )


app.command("init")(init_cmd)
app.command("sources")(sources_cmd)
app.command("sync")(sync_cmd)
app.command("backfill")(backfill_cmd)
app.command("redrive")(redrive_cmd)
app.command("status")(status_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed feedsync version."""
    typer.echo(f"feedsync {_installed_version()}")


if __name__ == "__main__":
    app()
