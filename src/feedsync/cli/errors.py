"""feedsync rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from feedsync.cli.errors import err_no_db
    console.print(err_no_db(".feedsync.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_api_key(provider: str, env_var: str | None = None) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_var = env_var or f"{provider.upper()}_API_KEY"
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-...\n"
        "  Or run with --no-enrich to sync without summaries."
    )


def err_no_db(db_path: str = ".feedsync.db") -> str:
    """No store database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  feedsync init"
    )


def err_config(message: str) -> str:
    """Config file failed validation."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {message}\n"
        "  Fix feedsync.yaml (or ~/.feedsync/config.yaml) and retry."
    )


def err_unknown_source(name: str, known: list[str]) -> str:
    """No transformer registered under *name*."""
    return (
        f"[red]Error:[/] Unknown source '{name}'.\n"
        f"  Known sources: {', '.join(known) or '(none)'}\n"
        "  Run:  feedsync sources"
    )


def err_source_selector() -> str:
    """Neither or both of --source / --table were given."""
    return (
        "[red]Error:[/] Select exactly one source.\n"
        "  Use:  --source <id>  or  --table <table-name>"
    )


def err_input_file(path: str, reason: str) -> str:
    """Events/rows file missing or unreadable."""
    return (
        f"[red]Error:[/] Cannot read '{path}': {reason}\n"
        "  Expected a JSON array, a JSON object with 'Records' or 'Items', or JSON Lines."
    )


def err_batch_failed(index: int, event_id: str | None, cause: BaseException) -> str:
    """Stream batch stopped on an unexpected per-event failure."""
    return (
        f"[red]Error:[/] Event #{index} ({event_id or 'no id'}) failed: {cause}\n"
        f"  Events before #{index} were applied and are safe to replay.\n"
        f"  Fix the cause and re-run the batch from event #{index}."
    )
