"""Helpers shared by feedsync commands: config, database, input files, wiring."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from feedsync.cli.errors import err_config, err_input_file, err_no_api_key, err_no_db
from feedsync.config import ConfigError, FeedSyncConfig, load_config
from feedsync.db.connection import Database
from feedsync.db.queue import SqliteQueue
from feedsync.db.schema import initialize
from feedsync.enrich.dead_letter import DeadLetterService
from feedsync.enrich.llm_client import required_env_var, validate_api_key
from feedsync.enrich.service import EnrichmentService
from feedsync.errors import MalformedEventError
from feedsync.sync.events import unmarshall

console = Console()


def load_config_or_exit() -> FeedSyncConfig:
    try:
        return load_config()
    except ConfigError as err:
        console.print(err_config(str(err)))
        raise typer.Exit(1) from err


def resolve_db_path(db: Path | None, cfg: FeedSyncConfig) -> Path:
    return db if db is not None else Path(cfg.store.path)


def open_db(db_path: Path, *, must_exist: bool = True) -> sqlite3.Connection:
    """Open *db_path* with the schema applied; exit 1 if it must exist and does not."""
    if must_exist and not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    conn = Database(db_path).connect()
    initialize(conn)
    return conn


def build_enricher(cfg: FeedSyncConfig, conn: sqlite3.Connection) -> EnrichmentService:
    """Enrichment service wired to the configured model and dead-letter queue.

    Exits 1 when the model's provider needs an API key that is not set.
    """
    try:
        validate_api_key(cfg.enrichment.model)
    except EnvironmentError as err:
        provider, env_var = required_env_var(cfg.enrichment.model)
        console.print(err_no_api_key(provider, env_var))
        raise typer.Exit(1) from err
    dead_letters = DeadLetterService(SqliteQueue(conn, cfg.dead_letter.queue))
    return EnrichmentService.from_config(cfg.enrichment, dead_letters)


def read_json_records(path: Path) -> list[dict[str, Any]]:
    """Load records from a JSON array, a {"Records"|"Items": [...]} object, or JSON Lines.

    ``Items`` (DynamoDB scan output) are unmarshalled to plain values.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as err:
        console.print(err_input_file(str(path), err.strerror or str(err)))
        raise typer.Exit(1) from err

    try:
        records = _parse_records(text)
    except (ValueError, MalformedEventError) as err:
        console.print(err_input_file(str(path), str(err)))
        raise typer.Exit(1) from err
    return records


def _parse_records(text: str) -> list[dict[str, Any]]:
    stripped = text.strip()
    if not stripped:
        return []
    if stripped[0] in "[{":
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, list):
            return _objects(data)
        if isinstance(data, dict):
            if isinstance(data.get("Records"), list):
                return _objects(data["Records"])
            if isinstance(data.get("Items"), list):
                return [unmarshall(item) or {} for item in _objects(data["Items"])]
            return [data]

    records = []
    for lineno, line in enumerate(stripped.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError as err:
            raise ValueError(f"line {lineno}: {err.msg}") from err
    return _objects(records)


def _objects(items: list[Any]) -> list[dict[str, Any]]:
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"entry {position} is {type(item).__name__}, expected an object")
    return items
