from __future__ import annotations

import json

import pytest

from programs.form_pipeline.oracle_adapter import (
    OracleError,
    OracleResponseError,
    OracleUnavailableError,
    meets_field_threshold,
    parse_with_oracle,
)
from programs.form_pipeline.prompts import FORM_PARSER_SYSTEM_PROMPT

_FORM = {
    "title": "Team Offsite",
    "description": "Plan the trip",
    "sections": [
        {
            "title": "You",
            "fields": [
                {"type": "text", "label": "Name", "required": True},
                {"type": "email", "label": "Email", "required": "true"},
            ],
        },
        {"title": "Trip", "fields": [{"type": "dropdown", "label": "Room", "options": ["Single", "Shared"]}]},
    ],
}


def test_valid_json_reply(fake_oracle):
    oracle = fake_oracle(json.dumps(_FORM))
    parsed = parse_with_oracle("plan an offsite", oracle)
    assert parsed.title == "Team Offsite"
    assert parsed.field_count() == 3
    assert parsed.sections[0].fields[1].required is True
    assert oracle.calls == [(FORM_PARSER_SYSTEM_PROMPT, "plan an offsite")]


def test_fenced_and_prose_wrapped_replies(fake_oracle):
    fenced = "```json\n" + json.dumps(_FORM) + "\n```"
    assert parse_with_oracle("x", fake_oracle(fenced)).title == "Team Offsite"
    prose = "Sure! Here is your form:\n" + json.dumps(_FORM) + "\nLet me know if you need changes."
    assert parse_with_oracle("x", fake_oracle(prose)).title == "Team Offsite"


def test_missing_oracle_is_unavailable():
    with pytest.raises(OracleUnavailableError):
        parse_with_oracle("x", None)


@pytest.mark.parametrize(
    "reply",
    [
        "",
        "   ",
        "I cannot help with that.",
        json.dumps({"sections": []}),
        json.dumps({"title": "No sections"}),
        json.dumps({"title": "Bad", "sections": "nope"}),
        json.dumps(["not", "an", "object"]),
    ],
)
def test_unusable_replies_raise_response_error(fake_oracle, reply):
    with pytest.raises(OracleResponseError):
        parse_with_oracle("x", fake_oracle(reply))


def test_transport_errors_are_wrapped(fake_oracle):
    with pytest.raises(OracleError) as exc_info:
        parse_with_oracle("x", fake_oracle(TimeoutError("read timed out")))
    assert not isinstance(exc_info.value, OracleResponseError)
    assert "TimeoutError" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, TimeoutError)


def test_non_object_sections_are_ignored(fake_oracle):
    reply = json.dumps({"title": "T", "sections": ["junk", {"title": "S", "fields": [{"type": "text", "label": "A"}, 7]}]})
    parsed = parse_with_oracle("x", fake_oracle(reply))
    assert len(parsed.sections) == 1
    assert parsed.field_count() == 1


def test_field_threshold(fake_oracle):
    parsed = parse_with_oracle("x", fake_oracle(json.dumps(_FORM)))
    assert meets_field_threshold(parsed, 3)
    assert not meets_field_threshold(parsed, 4)
    assert meets_field_threshold(parsed, 0)


def test_lm_config_requires_credential(monkeypatch):
    from programs.form_parser.program import DspyFormOracle, make_oracle_from_env
    from programs.form_pipeline.config import resolve_oracle_lm_config

    monkeypatch.delenv("DSPY_PROVIDER", raising=False)
    monkeypatch.delenv("DSPY_FORM_PARSER_MODEL", raising=False)
    monkeypatch.delenv("DSPY_MODEL", raising=False)
    assert resolve_oracle_lm_config() is None
    assert make_oracle_from_env() is None

    monkeypatch.setenv("GROQ_API_KEY", "test-key")
    cfg = resolve_oracle_lm_config()
    assert cfg["model"] == "groq/llama-3.1-8b-instant"

    monkeypatch.setenv("DSPY_PROVIDER", "openai")
    monkeypatch.setenv("DSPY_FORM_PARSER_MODEL", "openai/gpt-4o-mini")
    assert resolve_oracle_lm_config() is None
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    assert resolve_oracle_lm_config()["model"] == "openai/gpt-4o-mini"

    oracle = make_oracle_from_env()
    assert isinstance(oracle, DspyFormOracle)
    assert oracle.settings.max_tokens == 1600
