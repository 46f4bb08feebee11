"""
Keyword field detection (last-resort path).

Scans the prompt for a fixed table of keywords and emits title + input block pairs
directly, without an intermediate `ParsedForm`. Always returns a usable form.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from programs.form_pipeline.lowering import attribution_block, form_title_block, question_blocks, title_case
from schemas.tally_blocks import BlockKind, TallyBlock

DEFAULT_FORM_TITLE = "Custom Form"

_QUALIFIERS = r"(?:an?\s+)?(?:simple\s+)?(?:contact\s+)?(?:survey\s+)?(?:registration\s+)?(?:feedback\s+)?(?:application\s+)?"
_CREATE_FORM_RE = re.compile(r"\bcreate\s+(" + _QUALIFIERS + r")(.*?)\s*\bform\b", re.IGNORECASE)
_QUOTED_RE = re.compile(r'"([^"]+)"')

# (pattern, block kind, label, required); order is the on-screen order.
KEYWORD_FIELDS: List[Tuple[re.Pattern, BlockKind, str, bool]] = [
    (re.compile(r"\b(?:name|full name|first name|last name)\b"), BlockKind.INPUT_TEXT, "Name", True),
    (re.compile(r"\b(?:email|e-mail|email address)\b"), BlockKind.INPUT_EMAIL, "Email", True),
    (re.compile(r"\b(?:phone|telephone|mobile|cell|phone number)\b"), BlockKind.INPUT_PHONE_NUMBER, "Phone Number", False),
    (
        re.compile(r"\b(?:message|comment|feedback|suggestion|inquiry|question|note|description)\b"),
        BlockKind.TEXTAREA,
        "Message",
        True,
    ),
    (re.compile(r"\b(?:company|organization|business|firm|corporation)\b"), BlockKind.INPUT_TEXT, "Company", False),
    (re.compile(r"\b(?:address|location|street|city|zip|postal)\b"), BlockKind.TEXTAREA, "Address", False),
    (re.compile(r"\b(?:website|url|link|web)\b"), BlockKind.INPUT_LINK, "Website", False),
    (re.compile(r"\b(?:age|number|quantity|amount|count)\b"), BlockKind.INPUT_NUMBER, "Number", False),
    (re.compile(r"\b(?:date|birthday|birth|appointment|schedule)\b"), BlockKind.INPUT_DATE, "Date", False),
]

BASIC_CONTACT_FIELDS: List[Tuple[BlockKind, str, bool]] = [
    (BlockKind.INPUT_TEXT, "Name", True),
    (BlockKind.INPUT_EMAIL, "Email", True),
    (BlockKind.TEXTAREA, "Message", True),
]


def extract_title(prompt: str) -> str:
    """
    `create a <words> form` -> "<Words>", else the first quoted string, else "Custom Form".
    """
    text = str(prompt or "")
    m = _CREATE_FORM_RE.search(text)
    if m:
        remainder = m.group(2).strip()
        if remainder:
            return title_case(remainder)
        qualifiers = re.sub(r"^an?\s+", "", m.group(1).strip(), flags=re.IGNORECASE).strip()
        if qualifiers:
            return title_case(f"{qualifiers} form")
    q = _QUOTED_RE.search(text)
    if q and q.group(1).strip():
        return q.group(1).strip()
    return DEFAULT_FORM_TITLE


def _has_question_labeled(blocks: List[TallyBlock], label: str) -> bool:
    needle = label.lower()
    return any(b.type is BlockKind.TITLE and b.title_text().lower() == needle for b in blocks)


def parse_by_keyword(lowered_prompt: str, title: str, *, attribution_text: Optional[str] = None) -> List[TallyBlock]:
    blocks: List[TallyBlock] = [form_title_block(title or DEFAULT_FORM_TITLE)]
    text = str(lowered_prompt or "").lower()

    for pattern, kind, label, required in KEYWORD_FIELDS:
        if not pattern.search(text):
            continue
        if _has_question_labeled(blocks, label):
            continue
        blocks.extend(question_blocks(label, kind, required=required, placeholder=f"Enter {label.lower()}"))

    if len(blocks) == 1:
        for kind, label, required in BASIC_CONTACT_FIELDS:
            blocks.extend(question_blocks(label, kind, required=required, placeholder=f"Enter {label.lower()}"))

    blocks.append(attribution_block(attribution_text))
    return blocks


__all__ = ["BASIC_CONTACT_FIELDS", "DEFAULT_FORM_TITLE", "KEYWORD_FIELDS", "extract_title", "parse_by_keyword"]
