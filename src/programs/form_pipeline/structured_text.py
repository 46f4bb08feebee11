"""
Heuristic parser for semi-structured plaintext form descriptions.

Recognized conventions (case-insensitive):

    Title: Volunteer Signup
    Intro / Description: Thanks for helping out!
    Section: About You
      1. Full name (required)
      2. Email (email, required)
      3. Shirt size (dropdown: S, M, L, XL)
      4. Do you have a car? (yes/no)
      5. If yes, how many seats? (number)
    Section 2: Availability
      - Days available (checkboxes: Mon, Tue, Wed, Other)
      - Consent checkbox: I agree to the volunteer code of conduct
    End / Thank You Page:
      Message: "See you there!"

A prompt with no `Section:` header falls back to the canned domain templates; if
none match, the parser gives up (returns None).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from programs.form_pipeline.domain_templates import match_domain_template, severity_field
from programs.form_pipeline.keyword_fields import extract_title
from schemas.form_model import CHOICE_KINDS, FieldKind, FormField, FormSection, FormSettings, ParsedForm

logger = logging.getLogger(__name__)

PREFERRED_METHOD_OPTIONS = ["Email", "Phone", "Text message"]
TIME_OF_DAY_OPTIONS = ["Morning", "Afternoon", "Evening"]
DEFAULT_CONSENT_TEXT = "I agree to the terms and conditions"

_TITLE_RE = re.compile(r"^\s*(?:form\s+)?title\s*:\s*(.+?)\s*$", re.IGNORECASE)
_INTRO_RE = re.compile(r"^\s*(?:intro(?:duction)?(?:\s*/\s*description)?|description)\s*:\s*(.*?)\s*$", re.IGNORECASE)
_SECTION_RE = re.compile(r"^\s*#*\s*(?:\d+[.)]\s*)?section(?:\s*\d+)?\s*[:.\-–]\s*(.+?)\s*$", re.IGNORECASE)
_TRAILER_RE = re.compile(
    r"^\s*(?:end(?:\s*/\s*thank[\s-]*you(?:\s*page)?)?|thank[\s-]*you(?:\s*page)?)\s*:\s*(.*?)\s*$",
    re.IGNORECASE,
)
_MESSAGE_RE = re.compile(r"message\s*:\s*[\"“](.+?)[\"”]|message\s*:\s*(.+)$", re.IGNORECASE | re.MULTILINE)

_FIELD_LINE_RE = re.compile(
    r"^\s*(?P<lead>(?:\d+[.)]|[-*•])\s*)?(?P<label>.+?)\s*(?:\((?P<attrs>[^()]*)\))?\s*[:.]?\s*$"
)
_CONSENT_LINE_RE = re.compile(
    r"^\s*(?:(?:\d+[.)]|[-*•])\s*)?consent\s+checkbox\b\s*(?:\([^)]*\))?\s*[:\-–]?\s*(?P<statement>.*?)\s*$",
    re.IGNORECASE,
)
_RANGE_RE = re.compile(r"(\d+)\s*(?:-|to|–)\s*(\d+)")

# (keywords, kind); first hit wins so longer phrases come first.
_TYPE_KEYWORDS: List[Tuple[Tuple[str, ...], FieldKind]] = [
    (("consent",), FieldKind.CONSENT_CHECKBOX),
    (("long text", "paragraph", "textarea", "multi-line", "multiline"), FieldKind.TEXTAREA),
    (("multiple choice", "single choice", "radio"), FieldKind.MULTIPLE_CHOICE),
    (("checkboxes", "checkbox", "multi-select", "select all"), FieldKind.CHECKBOXES),
    (("dropdown", "select"), FieldKind.DROPDOWN),
    (("nps", "net promoter"), FieldKind.NPS),
    (("likert",), FieldKind.LIKERT),
    (("rating", "stars"), FieldKind.RATING),
    (("scale",), FieldKind.LINEAR_SCALE),
    (("file", "upload", "attachment"), FieldKind.FILE_UPLOAD),
    (("signature",), FieldKind.SIGNATURE),
    (("email",), FieldKind.EMAIL),
    (("phone",), FieldKind.PHONE),
    (("date",), FieldKind.DATE),
    (("number", "numeric"), FieldKind.NUMBER),
    (("url", "website", "link"), FieldKind.URL),
    (("short text", "text"), FieldKind.TEXT),
]

_LABEL_HINTS: List[Tuple[str, FieldKind]] = [
    ("email", FieldKind.EMAIL),
    ("phone", FieldKind.PHONE),
    ("date", FieldKind.DATE),
]


@dataclass
class _FieldSpec:
    kind: Optional[FieldKind] = None
    required: bool = False
    options: List[str] = field(default_factory=list)
    low: Optional[int] = None
    high: Optional[int] = None
    yes_no: bool = False


@dataclass
class _SectionDraft:
    title: str
    description: List[str] = field(default_factory=list)
    fields: List[FormField] = field(default_factory=list)


def _split_options(raw: str) -> List[str]:
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) == 1 and "/" in parts[0]:
        parts = [p.strip() for p in parts[0].split("/")]
    return [p.strip(" .;\"'") for p in parts if p.strip(" .;\"'")]


def _parse_attrs(attrs: str) -> _FieldSpec:
    spec = _FieldSpec()
    head, sep, tail = attrs.partition(":")
    lowered = head.lower()

    if re.search(r"\brequired\b", lowered):
        spec.required = True
    if re.search(r"\byes\s*/\s*no\b", lowered):
        spec.yes_no = True
        spec.kind = FieldKind.MULTIPLE_CHOICE
    if spec.kind is None:
        for keywords, kind in _TYPE_KEYWORDS:
            if any(re.search(r"\b" + re.escape(k), lowered) for k in keywords):
                spec.kind = kind
                break
    m = _RANGE_RE.search(attrs)
    if m:
        spec.low, spec.high = int(m.group(1)), int(m.group(2))

    if sep:
        spec.options = _split_options(tail)
        if spec.kind is None and spec.options:
            spec.kind = FieldKind.MULTIPLE_CHOICE
    if spec.yes_no and not spec.options:
        spec.options = ["Yes", "No"]
    return spec


def _infer_kind_from_label(label: str) -> FieldKind:
    lowered = label.lower()
    for hint, kind in _LABEL_HINTS:
        if hint in lowered:
            return kind
    return FieldKind.TEXT


def _canned_mention(label: str) -> Optional[FormField]:
    lowered = label.lower()
    if "preferred method" in lowered or "preferred contact method" in lowered:
        return FormField(type="multiple_choice", label=label, options=list(PREFERRED_METHOD_OPTIONS))
    if "time of day" in lowered:
        return FormField(type="dropdown", label=label, placeholder="Select a time", options=list(TIME_OF_DAY_OPTIONS))
    return None


def _consent_field(statement: str) -> FormField:
    text = statement.strip().strip("\"'") or DEFAULT_CONSENT_TEXT
    return FormField(type="consent_checkbox", label="Consent", required=True, options=[text])


def _field_from_line(line: str) -> Optional[FormField]:
    """
    One field for a line matching the grammar, else None.
    """
    consent = _CONSENT_LINE_RE.match(line)
    if consent:
        return _consent_field(consent.group("statement"))

    m = _FIELD_LINE_RE.match(line)
    if not m:
        return None
    label = m.group("label").strip().rstrip(":").strip()
    attrs = m.group("attrs")
    if not label:
        return None

    if not m.group("lead") and attrs is None:
        # Bare line: only the canned mentions count as fields.
        return _canned_mention(label)

    spec = _parse_attrs(attrs) if attrs is not None else _FieldSpec()
    if spec.kind is None:
        canned = _canned_mention(label)
        if canned is not None:
            canned.required = spec.required
            return canned
        spec.kind = _infer_kind_from_label(label)

    data = {"type": spec.kind.value, "label": label, "required": spec.required}
    if spec.kind is FieldKind.CONSENT_CHECKBOX:
        data["required"] = True
        data["options"] = spec.options or [label]
    elif spec.kind in CHOICE_KINDS:
        options = spec.options
        if not options:
            canned = _canned_mention(label)
            options = canned.options if canned is not None else []
        data["options"] = options
    elif spec.kind is FieldKind.RATING and spec.high:
        data["maxRating"] = spec.high
    elif spec.kind in (FieldKind.LINEAR_SCALE, FieldKind.NPS, FieldKind.LIKERT) and spec.high is not None:
        data["minValue"] = spec.low
        data["maxValue"] = spec.high
    return FormField.model_validate(data)


def _other_option(f: FormField) -> Optional[str]:
    for opt in f.options:
        text = str(opt.get("label") if isinstance(opt, dict) else opt or "").strip()
        if text.lower().startswith("other"):
            return text
    return None


class _Builder:
    def __init__(self) -> None:
        self.sections: List[_SectionDraft] = []
        self.last_choice: Optional[FormField] = None

    def add_field(self, f: FormField) -> None:
        section = self.sections[-1]
        if f.label.lower().startswith("if yes") and self.last_choice is not None and not f.show_if:
            f.show_if = f"{self.last_choice.label} = Yes"
        section.fields.append(f)
        if f.kind in CHOICE_KINDS:
            self.last_choice = f
        if f.kind is FieldKind.CHECKBOXES:
            other = _other_option(f)
            if other:
                section.fields.append(
                    FormField(
                        type="text",
                        label=f"{f.label.rstrip('?:')}: please specify",
                        placeholder="Please specify",
                        showIf=f"{f.label} = {other}",
                    )
                )

    def add_line(self, line: str) -> None:
        section = self.sections[-1]
        f = _field_from_line(line)
        if f is not None:
            self.add_field(f)
        elif not section.fields:
            section.description.append(line.strip())


def _trailer_message(lines: Sequence[str]) -> Optional[str]:
    m = _MESSAGE_RE.search("\n".join(lines))
    if not m:
        return None
    msg = (m.group(1) or m.group(2) or "").strip().strip("\"“”")
    return msg or None


def parse_structured_sections(prompt: str) -> Optional[ParsedForm]:
    text = str(prompt or "")
    title: Optional[str] = None
    intro: List[str] = []
    trailer: List[str] = []
    builder = _Builder()
    mode = "preamble"

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        m = _SECTION_RE.match(line)
        if m:
            builder.sections.append(_SectionDraft(title=m.group(1).strip().rstrip(":")))
            mode = "section"
            continue
        m = _TRAILER_RE.match(line)
        if m:
            mode = "trailer"
            if m.group(1):
                trailer.append(m.group(1))
            continue
        if mode == "trailer":
            trailer.append(line)
            continue
        if mode in ("preamble", "intro"):
            m = _TITLE_RE.match(line)
            if m:
                title = m.group(1).strip().strip("\"'")
                continue
            m = _INTRO_RE.match(line)
            if m:
                mode = "intro"
                if m.group(1):
                    intro.append(m.group(1))
                continue
            if mode == "intro":
                intro.append(line)
            continue
        builder.add_line(line)

    sections = [
        FormSection(title=d.title, description=" ".join(d.description) or None, fields=d.fields)
        for d in builder.sections
    ]
    sections = [s for s in sections if s.fields]

    if not sections:
        parsed = match_domain_template(text)
        if parsed is None:
            logger.debug("structured text: no sections and no domain template")
            return None
        return enrich_form(parsed, text)

    settings = None
    message = _trailer_message(trailer)
    if message:
        settings = FormSettings(confirmation_message=message)

    parsed = ParsedForm(
        title=title or extract_title(text),
        description=" ".join(intro).strip() or None,
        sections=sections,
        settings=settings,
    )
    return enrich_form(parsed, text)


# ---------------------------------------------------------------------------
# Enrichment: canned fields injected on bare mentions anywhere in the prompt.
# ---------------------------------------------------------------------------


def _pick_section(form: ParsedForm, keywords: Sequence[str], *, default_last: bool = False) -> FormSection:
    for s in form.sections:
        t = s.title.lower()
        if any(k in t for k in keywords):
            return s
    return form.sections[-1] if default_last else form.sections[0]


@dataclass(frozen=True)
class _Enrichment:
    trigger: str
    present: Tuple[str, ...]
    section_keywords: Tuple[str, ...]
    build: Callable[[], FormField]
    default_last: bool = False


ENRICHMENTS: List[_Enrichment] = [
    _Enrichment(
        trigger="severity",
        present=("severity",),
        section_keywords=("summary", "bug", "issue", "problem", "details"),
        build=severity_field,
    ),
    _Enrichment(
        trigger="preferred method",
        present=("preferred method", "preferred contact", "contact method"),
        section_keywords=("contact", "personal", "about", "info", "details", "reporter"),
        build=lambda: FormField(
            type="multiple_choice",
            label="Preferred contact method",
            options=list(PREFERRED_METHOD_OPTIONS),
        ),
    ),
    _Enrichment(
        trigger="time of day",
        present=("time of day",),
        section_keywords=("contact", "availability", "schedule", "personal", "about"),
        build=lambda: FormField(
            type="dropdown",
            label="Best time of day to reach you",
            placeholder="Select a time",
            options=list(TIME_OF_DAY_OPTIONS),
        ),
    ),
    _Enrichment(
        trigger="consent",
        present=("consent", "i agree"),
        section_keywords=("consent", "legal", "agreement", "final", "submit"),
        build=lambda: _consent_field(""),
        default_last=True,
    ),
]


def enrich_form(form: ParsedForm, prompt: str) -> ParsedForm:
    lowered = str(prompt or "").lower()
    if not form.sections:
        return form
    for e in ENRICHMENTS:
        if e.trigger not in lowered:
            continue
        if form.has_field_labeled(*e.present):
            continue
        if e.trigger == "consent" and any(f.kind is FieldKind.CONSENT_CHECKBOX for f in form.iter_fields()):
            continue
        _pick_section(form, e.section_keywords, default_last=e.default_last).fields.append(e.build())
    return form


__all__ = [
    "DEFAULT_CONSENT_TEXT",
    "ENRICHMENTS",
    "PREFERRED_METHOD_OPTIONS",
    "TIME_OF_DAY_OPTIONS",
    "enrich_form",
    "parse_structured_sections",
]
