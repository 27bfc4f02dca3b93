"""Tests for the enrichment service."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from feedsync.config import EnrichmentCfg
from feedsync.db.models import FALLBACK_INSIGHT, FALLBACK_SUMMARY, ErrorType, EventType
from feedsync.enrich.dead_letter import DeadLetterService
from feedsync.enrich.service import EnrichmentService
from feedsync.errors import GenerationBackendError

GOOD = json.dumps({"summary": "S", "insight": "I"})


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def dead_letters():
    return MagicMock(spec=DeadLetterService)


def _service(generator, dead_letters=None, sleeps=None):
    return EnrichmentService(
        generator,
        dead_letters,
        sleep=(sleeps.append if sleeps is not None else (lambda _: None)),
    )


# ------------------------------------------------------------------
# Success
# ------------------------------------------------------------------

def test_enrich_success(make_record):
    generator = MagicMock(return_value=GOOD)
    record = _service(generator).enrich(make_record())

    assert (record.summary, record.insight) == ("S", "I")
    prompt = generator.call_args.args[0]
    assert '"title": "T"' in prompt


def test_code_fenced_response_parses_first_time(make_record):
    generator = MagicMock(return_value='```json\n{"summary":"S","insight":"I"}\n```')
    record = _service(generator).enrich(make_record())

    assert (record.summary, record.insight) == ("S", "I")
    assert generator.call_count == 1


def test_enrich_does_not_mutate_input(make_record):
    original = make_record()
    _service(MagicMock(return_value=GOOD)).enrich(original)
    assert original.summary is None


# ------------------------------------------------------------------
# Idempotence guard
# ------------------------------------------------------------------

def test_already_enriched_record_is_returned_unchanged(make_record):
    generator = MagicMock()
    record = make_record(summary="old", insight="old")

    assert _service(generator).enrich(record) is record
    generator.assert_not_called()


@pytest.mark.parametrize(
    "overrides",
    [{"deleted": True}, {"last_event": EventType.REMOVE}],
)
def test_deletions_are_not_enriched(make_record, overrides):
    generator = MagicMock()
    record = make_record(**overrides)
    assert _service(generator).enrich(record) is record
    generator.assert_not_called()


# ------------------------------------------------------------------
# Retry bound and dead-lettering
# ------------------------------------------------------------------

def test_backend_timeouts_give_three_attempts_then_dead_letter(
    make_record, dead_letters, sleeps
):
    generator = MagicMock(side_effect=GenerationBackendError("Timeout"))
    record = _service(generator, dead_letters, sleeps).enrich(make_record())

    assert generator.call_count == 3
    assert sleeps == [1.0, 2.0]
    dead_letters.send.assert_called_once()
    sent_record, error_type, message = dead_letters.send.call_args.args
    assert error_type is ErrorType.UPSTREAM_API_ERROR
    assert "Timeout" in message
    assert sent_record.summary is None
    assert record.summary == FALLBACK_SUMMARY
    assert record.insight == FALLBACK_INSIGHT


def test_unparseable_responses_use_linear_backoff(make_record, dead_letters, sleeps):
    generator = MagicMock(return_value="I cannot do that")
    record = _service(generator, dead_letters, sleeps).enrich(make_record())

    assert generator.call_count == 3
    assert sleeps == [0.5, 1.0]
    assert dead_letters.send.call_args.args[1] is ErrorType.INVALID_RESPONSE
    assert record.has_fallback_enrichment


def test_recovers_within_budget(make_record, dead_letters):
    generator = MagicMock(side_effect=[GenerationBackendError("503"), "garbage", GOOD])
    record = _service(generator, dead_letters).enrich(make_record())

    assert record.summary == "S"
    dead_letters.send.assert_not_called()


def test_unexpected_error_maps_to_enrichment_failed(make_record, dead_letters):
    generator = MagicMock(side_effect=ZeroDivisionError("bug"))
    record = _service(generator, dead_letters).enrich(make_record())

    assert generator.call_count == 1
    assert dead_letters.send.call_args.args[1] is ErrorType.ENRICHMENT_FAILED
    assert record.has_fallback_enrichment


def test_no_dead_letter_service_still_returns_fallback(make_record):
    record = _service(MagicMock(return_value="nope")).enrich(make_record())
    assert record.summary == FALLBACK_SUMMARY


# ------------------------------------------------------------------
# attempt()
# ------------------------------------------------------------------

def test_attempt_never_dead_letters(make_record, dead_letters):
    service = _service(MagicMock(return_value="nope"), dead_letters)
    result = service.attempt(make_record())

    assert not result.succeeded
    assert result.error_type is ErrorType.INVALID_RESPONSE
    assert result.record.has_fallback_enrichment
    dead_letters.send.assert_not_called()


def test_attempt_success(make_record):
    result = _service(MagicMock(return_value=GOOD)).attempt(make_record())
    assert result.succeeded
    assert result.error_type is None
    assert result.record.insight == "I"


# ------------------------------------------------------------------
# from_config()
# ------------------------------------------------------------------

def test_from_config_uses_litellm_with_configured_budget(make_record):
    cfg = EnrichmentCfg(model="openai/gpt-4o-mini", max_attempts=2, backend_backoff=0.0)
    service = EnrichmentService.from_config(cfg)

    with patch("litellm.completion", side_effect=RuntimeError("down")) as mock_completion:
        record = service.enrich(make_record())

    assert mock_completion.call_count == 2
    assert mock_completion.call_args.kwargs["model"] == "openai/gpt-4o-mini"
    assert record.has_fallback_enrichment
