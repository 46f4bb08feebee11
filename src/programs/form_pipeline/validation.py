from __future__ import annotations

import json
import re
from typing import Any, Optional

from pydantic import ValidationError

from schemas.form_model import ParsedForm

_FENCED_BLOCK_RE = re.compile(r"^```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_FIRST_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def _safe_json_loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def _strip_code_fences(s: str) -> str:
    if not s:
        return s
    t = str(s).strip()
    t = re.sub(r"^```(?:json)?\s*", "", t, flags=re.IGNORECASE)
    t = re.sub(r"\s*```$", "", t, flags=re.IGNORECASE)
    return t.strip()


def _extract_fenced_block(s: str) -> Optional[str]:
    """
    Inner text of a leading ``` / ```json fence, or None when the text does not start with one.
    """
    t = str(s or "").strip()
    if not t.startswith("```"):
        return None
    m = _FENCED_BLOCK_RE.match(t)
    if not m:
        return None
    return m.group(1).strip()


def _best_effort_parse_json(text: str) -> Any:
    """
    Direct parse first; then the outermost `{...}` span (model output often wraps JSON in prose).
    """
    if not text:
        return None
    t = _strip_code_fences(str(text))
    parsed = _safe_json_loads(t)
    if parsed is not None:
        return parsed
    m = _FIRST_OBJECT_RE.search(t)
    if not m:
        return None
    return _safe_json_loads(m.group(0))


def _shape_error(obj: Any) -> Optional[str]:
    if not isinstance(obj, dict):
        return "response is not a JSON object"
    title = obj.get("title")
    if not isinstance(title, str) or not title.strip():
        return "missing title"
    if "sections" not in obj:
        return "missing sections"
    if not isinstance(obj.get("sections"), list):
        return "sections is not a list"
    return None


def _validate_parsed_form(obj: Any) -> ParsedForm:
    """
    Minimal shape check + pydantic validation. Raises ValueError with a short reason.
    """
    err = _shape_error(obj)
    if err:
        raise ValueError(err)
    sections = [s for s in obj["sections"] if isinstance(s, dict)]
    try:
        return ParsedForm.model_validate({**obj, "title": obj["title"].strip(), "sections": sections})
    except ValidationError as e:
        raise ValueError(f"invalid form: {e.error_count()} validation error(s)") from e


__all__ = [
    "_best_effort_parse_json",
    "_extract_fenced_block",
    "_safe_json_loads",
    "_strip_code_fences",
    "_validate_parsed_form",
]
