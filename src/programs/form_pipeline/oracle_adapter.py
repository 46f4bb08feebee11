"""
Oracle adapter: prompt -> model JSON -> validated `ParsedForm`.

One call per invocation, no retries. Every failure surfaces as an `OracleError`
subclass so the orchestrator can fall through to the heuristic stages.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from programs.form_pipeline.prompts import FORM_PARSER_SYSTEM_PROMPT
from programs.form_pipeline.validation import _best_effort_parse_json, _validate_parsed_form
from schemas.form_model import ParsedForm

if TYPE_CHECKING:
    from programs.form_parser.program import FormOracle

logger = logging.getLogger(__name__)


class OracleError(RuntimeError):
    """Recoverable oracle failure."""


class OracleUnavailableError(OracleError):
    """No oracle configured (missing credential)."""


class OracleResponseError(OracleError):
    """The oracle answered, but not with a usable form."""


def parse_with_oracle(prompt: str, oracle: Optional["FormOracle"], *, system_prompt: str = FORM_PARSER_SYSTEM_PROMPT) -> ParsedForm:
    if oracle is None:
        raise OracleUnavailableError("form parser oracle is not configured")

    try:
        raw = oracle.complete(system_prompt, prompt)
    except OracleError:
        raise
    except Exception as e:
        # Transport/provider errors from the LM client are not typed; normalize them.
        raise OracleError(f"oracle call failed: {type(e).__name__}: {e}") from e

    if not str(raw or "").strip():
        raise OracleResponseError("oracle returned no content")

    obj = _best_effort_parse_json(raw)
    if obj is None:
        raise OracleResponseError("oracle response is not JSON")

    try:
        return _validate_parsed_form(obj)
    except ValueError as e:
        raise OracleResponseError(f"invalid form structure from oracle: {e}") from e


def meets_field_threshold(parsed: ParsedForm, min_fields: int) -> bool:
    return parsed.field_count() >= int(min_fields)


__all__ = [
    "OracleError",
    "OracleResponseError",
    "OracleUnavailableError",
    "meets_field_threshold",
    "parse_with_oracle",
]
