"""
Structured-definition extractor.

A prompt that *is* a JSON definition (bare, or inside a leading ``` / ```json fence)
skips every model/heuristic stage:

    {"title": "Signup", "fields": [{"type": "short_text", "label": "Name", "required": true}]}

`blocks` is accepted in place of `fields`. Items with unknown types are dropped; a
definition whose items all drop returns None so the caller keeps falling back.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from programs.form_pipeline.validation import _extract_fenced_block, _safe_json_loads
from schemas.form_model import CHOICE_KINDS, FieldKind, FormField, FormSection, FormSettings, ParsedForm, normalize_kind_name

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Custom Form"

_TITLE_TYPES = frozenset({"title", "form_title"})

# type name -> (kind, heading level)
STRUCTURED_TYPE_ALIASES: Dict[str, Tuple[FieldKind, Optional[int]]] = {
    "text": (FieldKind.TEXT, None),
    "short_text": (FieldKind.TEXT, None),
    "input_text": (FieldKind.TEXT, None),
    "email": (FieldKind.EMAIL, None),
    "phone": (FieldKind.PHONE, None),
    "phone_number": (FieldKind.PHONE, None),
    "textarea": (FieldKind.TEXTAREA, None),
    "long_text": (FieldKind.TEXTAREA, None),
    "message": (FieldKind.TEXTAREA, None),
    "date": (FieldKind.DATE, None),
    "url": (FieldKind.URL, None),
    "website": (FieldKind.URL, None),
    "link": (FieldKind.URL, None),
    "number": (FieldKind.NUMBER, None),
    "select": (FieldKind.DROPDOWN, None),
    "dropdown": (FieldKind.DROPDOWN, None),
    "choice": (FieldKind.MULTIPLE_CHOICE, None),
    "radio": (FieldKind.MULTIPLE_CHOICE, None),
    "checkbox": (FieldKind.CHECKBOXES, None),
    "multi_select": (FieldKind.CHECKBOXES, None),
    "rating": (FieldKind.RATING, None),
    "file": (FieldKind.FILE_UPLOAD, None),
    "upload": (FieldKind.FILE_UPLOAD, None),
    "file_upload": (FieldKind.FILE_UPLOAD, None),
    "input_file_upload": (FieldKind.FILE_UPLOAD, None),
    "signature": (FieldKind.SIGNATURE, None),
    "sign": (FieldKind.SIGNATURE, None),
    "heading": (FieldKind.HEADING, 2),
    "heading_1": (FieldKind.HEADING, 1),
    "heading1": (FieldKind.HEADING, 1),
    "h1": (FieldKind.HEADING, 1),
    "heading_2": (FieldKind.HEADING, 2),
    "heading2": (FieldKind.HEADING, 2),
    "h2": (FieldKind.HEADING, 2),
    "heading_3": (FieldKind.HEADING, 3),
    "heading3": (FieldKind.HEADING, 3),
    "h3": (FieldKind.HEADING, 3),
    "text_block": (FieldKind.TEXT_BLOCK, None),
    "paragraph": (FieldKind.TEXT_BLOCK, None),
    "content": (FieldKind.TEXT_BLOCK, None),
    "description": (FieldKind.TEXT_BLOCK, None),
    "divider": (FieldKind.DIVIDER, None),
    "separator": (FieldKind.DIVIDER, None),
}

_PLACEHOLDER_KINDS = frozenset(
    {
        FieldKind.TEXT,
        FieldKind.EMAIL,
        FieldKind.PHONE,
        FieldKind.TEXTAREA,
        FieldKind.DATE,
        FieldKind.NUMBER,
        FieldKind.URL,
    }
)


def _json_text(prompt: str) -> Optional[str]:
    trimmed = str(prompt or "").strip()
    if trimmed.startswith("```"):
        inner = _extract_fenced_block(trimmed)
        if inner:
            return inner
    if trimmed.startswith("{") or trimmed.startswith("["):
        return trimmed
    return None


def _clean_str(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    t = value.strip()
    return t or None


def _first(item: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if item.get(k) is not None:
            return item[k]
    return None


def _first_bool(item: Dict[str, Any], *keys: str) -> Optional[bool]:
    for k in keys:
        if isinstance(item.get(k), bool):
            return item[k]
    return None


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v or "").strip()]


def _resolve_type(raw: Any) -> Tuple[Optional[FieldKind], Optional[int]]:
    name = normalize_kind_name(raw)
    if name in STRUCTURED_TYPE_ALIASES:
        return STRUCTURED_TYPE_ALIASES[name]
    try:
        return FieldKind(name), None
    except ValueError:
        return None, None


def _map_item(item: Dict[str, Any]) -> Optional[FormField]:
    kind, level = _resolve_type(item.get("type"))
    if kind is None:
        return None

    label = _clean_str(item.get("label")) or ""
    data: Dict[str, Any] = {
        "type": kind.value,
        "label": label,
        "required": item.get("required") is True,
    }
    description = _clean_str(item.get("description"))
    if description:
        data["description"] = description
    show_if = _clean_str(_first(item, "showIf", "show_if"))
    if show_if:
        data["showIf"] = show_if

    if kind in _PLACEHOLDER_KINDS:
        resolved_label = label or kind.value.replace("_", " ")
        data["placeholder"] = _clean_str(item.get("placeholder")) or f"Enter {resolved_label.lower()}"

    if kind in CHOICE_KINDS:
        options = _first(item, "options", "choices")
        if not isinstance(options, list) or not options:
            return None
        data["options"] = options

    elif kind is FieldKind.RATING:
        data["maxRating"] = _first(item, "max", "maxRating", "scale")
        shape = _clean_str(item.get("shape"))
        if shape:
            data["shape"] = shape.upper()

    elif kind is FieldKind.FILE_UPLOAD:
        data["allowMultiple"] = _first_bool(item, "allowMultiple", "multiple")
        data["maxFiles"] = _first(item, "maxFiles", "maximumFiles")
        data["maxFileSize"] = _first(item, "maxFileSize", "sizeLimit", "maxSize")
        data["allowedFileTypes"] = _string_list(_first(item, "acceptedTypes", "fileTypes", "accept", "allowedFileTypes"))

    elif kind is FieldKind.SIGNATURE:
        data["strokeWidth"] = _first(item, "strokeWidth", "penWidth")

    elif kind in (FieldKind.HEADING, FieldKind.TEXT_BLOCK):
        content = _clean_str(_first(item, "content", "text")) or label
        if not content:
            return None
        data["content"] = content
        if level is not None:
            data["level"] = level

    elif kind in (FieldKind.LINEAR_SCALE, FieldKind.NPS, FieldKind.LIKERT, FieldKind.MATRIX, FieldKind.MEDIA, FieldKind.PAYMENT):
        # Pass-through kinds: keep the item's own attributes for lowering.
        for k, v in item.items():
            data.setdefault(k, v)

    try:
        return FormField.model_validate({k: v for k, v in data.items() if v is not None})
    except ValidationError as e:
        logger.debug("structured definition: invalid item type=%r: %s", item.get("type"), e.error_count())
        return None


def extract_structured_definition(prompt: str) -> Optional[ParsedForm]:
    """
    Parse an embedded JSON definition. Returns None on any malformed or empty input.
    """
    text = _json_text(prompt)
    if not text:
        return None

    definition = _safe_json_loads(text)
    if not isinstance(definition, dict):
        return None

    raw_items = definition.get("fields")
    if raw_items is None:
        raw_items = definition.get("blocks")
    if not isinstance(raw_items, list) or not raw_items:
        return None

    title = _clean_str(definition.get("title"))
    fields: List[FormField] = []
    for item in raw_items:
        if not isinstance(item, dict):
            continue
        if normalize_kind_name(item.get("type")) in _TITLE_TYPES:
            if not title:
                title = _clean_str(_first(item, "label", "title", "content", "text"))
            continue
        f = _map_item(item)
        if f is None:
            logger.debug("structured definition: dropped item type=%r", item.get("type"))
            continue
        fields.append(f)

    if not fields:
        return None

    settings = FormSettings(
        confirmation_message=_clean_str(definition.get("confirmationMessage")),
        redirect_url=_clean_str(definition.get("redirectUrl")),
    )
    return ParsedForm(
        title=title or DEFAULT_TITLE,
        description=_clean_str(definition.get("description")),
        sections=[FormSection(title="", fields=fields)],
        settings=settings,
    )


__all__ = ["DEFAULT_TITLE", "STRUCTURED_TYPE_ALIASES", "extract_structured_definition"]
