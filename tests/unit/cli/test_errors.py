"""Tests for feedsync rich error messages."""

from __future__ import annotations

from feedsync.cli.errors import (
    err_batch_failed,
    err_config,
    err_input_file,
    err_no_api_key,
    err_no_db,
    err_source_selector,
    err_unknown_source,
)


def _has_action(msg: str) -> bool:
    """Every error must contain an actionable instruction."""
    lower = msg.lower()
    return any(kw in lower for kw in ["run:", "set:", "use:", "fix ", "expected", "re-run"])


def test_err_no_api_key_names_env_var() -> None:
    msg = err_no_api_key("openai", "OPENAI_API_KEY")
    assert "OPENAI_API_KEY" in msg
    assert "--no-enrich" in msg
    assert _has_action(msg)


def test_err_no_api_key_unknown_provider_fallback() -> None:
    assert "MYPROVIDER_API_KEY" in err_no_api_key("myprovider")


def test_err_no_db() -> None:
    msg = err_no_db("x.db")
    assert "x.db" in msg
    assert "feedsync init" in msg


def test_err_unknown_source_lists_known() -> None:
    msg = err_unknown_source("nope", ["notes", "contacts"])
    assert "nope" in msg
    assert "notes, contacts" in msg
    assert _has_action(msg)


def test_err_batch_failed_names_index() -> None:
    msg = err_batch_failed(4, "evt-4", ValueError("bad"))
    assert "#4" in msg and "evt-4" in msg and "bad" in msg
    assert _has_action(msg)


def test_all_errors_are_actionable() -> None:
    for msg in (
        err_config("enrichment.max_attempts must be >= 1"),
        err_input_file("events.json", "No such file"),
        err_source_selector(),
        err_no_db(),
    ):
        assert msg.startswith("[red]Error:[/]")
        assert _has_action(msg)
