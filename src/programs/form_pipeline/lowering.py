"""
Lowering: `ParsedForm` -> ordered Tally blocks.

Layout of the emitted sequence:
  FORM_TITLE, [TEXT description],
  per section: [HEADING_2], [TEXT description], <field blocks...>, DIVIDER (between sections),
  trailing attribution TEXT block.

Each field goes through `FIELD_LOWERERS` (one entry per `FieldKind`). A field with a
`showIf` gets its rule resolved against fields emitted before it.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from programs.form_pipeline.conditional_logic import attach_rule, register_label, resolve_show_if
from schemas.form_model import FieldKind, FormField, ParsedForm
from schemas.tally_blocks import (
    BlockKind,
    BlockPayload,
    CalculatedField,
    CalculatedFieldsPayload,
    ChoiceOptionPayload,
    ConditionalLogicPayload,
    EmptyPayload,
    FileUploadPayload,
    FormTitlePayload,
    HeadingPayload,
    HiddenField,
    HiddenFieldsPayload,
    InputPayload,
    LinearScalePayload,
    MatrixItemPayload,
    MatrixPayload,
    MediaPayload,
    PageBreakPayload,
    PaymentPayload,
    QuestionTitlePayload,
    RatingPayload,
    SignaturePayload,
    TallyBlock,
    TextPayload,
    ThankYouPagePayload,
    WalletConnectPayload,
)

logger = logging.getLogger(__name__)

DEFAULT_ATTRIBUTION_TEXT = "Made with Respira ✨"

_BYTES_PER_MB = 1024 * 1024

_INPUT_BLOCK_KINDS: Dict[FieldKind, BlockKind] = {
    FieldKind.TEXT: BlockKind.INPUT_TEXT,
    FieldKind.EMAIL: BlockKind.INPUT_EMAIL,
    FieldKind.PHONE: BlockKind.INPUT_PHONE_NUMBER,
    FieldKind.TEXTAREA: BlockKind.TEXTAREA,
    FieldKind.DATE: BlockKind.INPUT_DATE,
    FieldKind.NUMBER: BlockKind.INPUT_NUMBER,
    FieldKind.URL: BlockKind.INPUT_LINK,
}

# (option block kind, groupType)
_CHOICE_BLOCK_KINDS: Dict[FieldKind, Tuple[BlockKind, str]] = {
    FieldKind.DROPDOWN: (BlockKind.DROPDOWN_OPTION, "DROPDOWN"),
    FieldKind.COUNTRY_SELECT: (BlockKind.DROPDOWN_OPTION, "DROPDOWN"),
    FieldKind.MULTIPLE_CHOICE: (BlockKind.MULTIPLE_CHOICE_OPTION, "MULTIPLE_CHOICE"),
    FieldKind.CHECKBOXES: (BlockKind.CHECKBOX, "CHECKBOXES"),
    FieldKind.CONSENT_CHECKBOX: (BlockKind.CHECKBOX, "CHECKBOXES"),
}

# (min, max, minLabel, maxLabel)
_SCALE_DEFAULTS: Dict[FieldKind, Tuple[int, int, str, str]] = {
    FieldKind.LINEAR_SCALE: (1, 5, "Lowest", "Highest"),
    FieldKind.NPS: (0, 10, "Not likely", "Very likely"),
    FieldKind.LIKERT: (1, 5, "Strongly Disagree", "Strongly Agree"),
}

COUNTRY_OPTIONS: List[str] = [
    "United States",
    "Canada",
    "Mexico",
    "Brazil",
    "Argentina",
    "United Kingdom",
    "Ireland",
    "France",
    "Germany",
    "Spain",
    "Italy",
    "Portugal",
    "Netherlands",
    "Belgium",
    "Switzerland",
    "Sweden",
    "Norway",
    "Denmark",
    "Poland",
    "Turkey",
    "India",
    "China",
    "Japan",
    "South Korea",
    "Singapore",
    "Australia",
    "New Zealand",
    "South Africa",
    "Nigeria",
    "Other",
]

_MEDIA_EXTENSIONS: Dict[BlockKind, Tuple[str, ...]] = {
    BlockKind.IMAGE: (".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg"),
    BlockKind.VIDEO: (".mp4", ".mov", ".webm"),
    BlockKind.AUDIO: (".mp3", ".wav", ".ogg", ".m4a"),
}


def _new_id() -> str:
    return str(uuid.uuid4())


def title_case(text: str) -> str:
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), str(text or ""))


def _rich(text: str) -> List[List[str]]:
    return [[text]]


def make_block(kind: BlockKind, payload: BlockPayload, *, group_uuid: Optional[str] = None, group_type: Optional[str] = None) -> TallyBlock:
    return TallyBlock(
        uuid=_new_id(),
        type=kind,
        group_uuid=group_uuid or _new_id(),
        group_type=group_type or kind.value,
        payload=payload,
    )


def form_title_block(title: str) -> TallyBlock:
    return make_block(
        BlockKind.FORM_TITLE,
        FormTitlePayload(title=title, safe_html_schema=_rich(title)),
        group_type="TEXT",
    )


def text_block(text: str) -> TallyBlock:
    return make_block(BlockKind.TEXT, TextPayload(text=text, safe_html_schema=_rich(text)))


def heading_block(title: str, level: int = 2) -> TallyBlock:
    kind = {1: BlockKind.HEADING_1, 3: BlockKind.HEADING_3}.get(int(level or 2), BlockKind.HEADING_2)
    return make_block(kind, HeadingPayload(title=title, safe_html_schema=_rich(title)))


def divider_block() -> TallyBlock:
    return make_block(BlockKind.DIVIDER, EmptyPayload())


def attribution_block(text: Optional[str] = None) -> TallyBlock:
    return text_block(str(text or DEFAULT_ATTRIBUTION_TEXT))


def question_title_block(label: str, group_uuid: str, *, description: Optional[str] = None) -> TallyBlock:
    desc = str(description or "").strip() or None
    return make_block(
        BlockKind.TITLE,
        QuestionTitlePayload(title=label, safe_html_schema=_rich(label), description=desc),
        group_uuid=group_uuid,
        group_type="QUESTION",
    )


def question_blocks(
    label: str,
    kind: BlockKind,
    *,
    required: bool = False,
    placeholder: Optional[str] = None,
    description: Optional[str] = None,
) -> List[TallyBlock]:
    """
    Title + single input block sharing one group.
    """
    group = _new_id()
    return [
        question_title_block(label, group, description=description),
        make_block(
            kind,
            InputPayload(is_required=bool(required), placeholder=str(placeholder or "").strip() or None),
            group_uuid=group,
        ),
    ]


@dataclass(frozen=True)
class ChoiceOption:
    text: str
    value: str
    is_default: bool = False
    description: Optional[str] = None


def normalize_options(options: Any) -> List[ChoiceOption]:
    """
    Bare strings become label == value; objects reuse `label`/`value`/`description`/`default`.
    """
    if not isinstance(options, list):
        return []
    out: List[ChoiceOption] = []
    for opt in options:
        if isinstance(opt, dict):
            raw_label = opt.get("label")
            raw_value = opt.get("value")
            label = str(raw_label if raw_label is not None else (raw_value if raw_value is not None else "")).strip()
            if not label:
                continue
            value = str(raw_value).strip() if raw_value is not None and str(raw_value).strip() else label
            desc = str(opt.get("description") or "").strip() or None
            out.append(ChoiceOption(text=label, value=value, is_default=opt.get("default") is True, description=desc))
        elif isinstance(opt, (str, int, float)) and not isinstance(opt, bool):
            t = str(opt).strip()
            if t:
                out.append(ChoiceOption(text=t, value=t))
    return out


def choice_blocks(
    label: str,
    field_kind: FieldKind,
    options: List[ChoiceOption],
    *,
    required: bool = False,
    description: Optional[str] = None,
    placeholder: Optional[str] = None,
) -> List[TallyBlock]:
    option_kind, group_type = _CHOICE_BLOCK_KINDS[field_kind]
    group = _new_id()
    blocks = [question_title_block(label, group, description=description)]
    last = len(options) - 1
    for i, opt in enumerate(options):
        payload = ChoiceOptionPayload(
            index=i,
            is_required=bool(required),
            is_first=i == 0,
            is_last=i == last,
            text=opt.text,
            value=opt.value,
            is_default=True if opt.is_default else None,
            description=opt.description,
            placeholder=placeholder if (i == 0 and option_kind is BlockKind.DROPDOWN_OPTION) else None,
        )
        blocks.append(make_block(option_kind, payload, group_uuid=group, group_type=group_type))
    return blocks


def _label_for(f: FormField) -> str:
    return f.label or title_case(f.type.replace("_", " "))


def _int_or_none(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    out: List[str] = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("label") or item.get("name") or item.get("text") or item.get("value")
        t = str(item or "").strip()
        if t:
            out.append(t)
    return out


# ---------------------------------------------------------------------------
# Per-kind lowerers. Each returns the blocks for one field, in order.
# ---------------------------------------------------------------------------


def _lower_input(f: FormField) -> List[TallyBlock]:
    kind = f.kind or FieldKind.TEXT
    return question_blocks(
        _label_for(f),
        _INPUT_BLOCK_KINDS[kind],
        required=f.required,
        placeholder=f.placeholder,
        description=f.description,
    )


def _lower_choice(f: FormField) -> List[TallyBlock]:
    kind = f.kind or FieldKind.MULTIPLE_CHOICE
    options = normalize_options(f.options)
    if not options and kind is FieldKind.COUNTRY_SELECT:
        options = normalize_options(COUNTRY_OPTIONS)
    if not options and kind is FieldKind.CONSENT_CHECKBOX:
        options = normalize_options([f.label or "I agree to the terms and conditions"])
    if not options:
        # A choice with nothing to choose degrades to free text.
        return question_blocks(_label_for(f), BlockKind.INPUT_TEXT, required=f.required, placeholder=f.placeholder, description=f.description)
    return choice_blocks(
        _label_for(f),
        kind,
        options,
        required=f.required or kind is FieldKind.CONSENT_CHECKBOX,
        description=f.description,
        placeholder=f.placeholder,
    )


def _lower_rating(f: FormField) -> List[TallyBlock]:
    group = _new_id()
    payload = RatingPayload(
        is_required=f.required,
        max_rating=_int_or_none(f.max_rating) or 5,
        shape=str(f.shape or "STAR").strip().upper() or "STAR",
    )
    return [
        question_title_block(_label_for(f), group, description=f.description),
        make_block(BlockKind.RATING, payload, group_uuid=group),
    ]


def _lower_scale(f: FormField) -> List[TallyBlock]:
    kind = f.kind or FieldKind.LINEAR_SCALE
    lo, hi, lo_label, hi_label = _SCALE_DEFAULTS[kind]
    group = _new_id()
    payload = LinearScalePayload(
        is_required=f.required,
        min_value=f.min_value if f.min_value is not None else lo,
        max_value=f.max_value if f.max_value is not None else hi,
        min_label=f.min_label or lo_label,
        max_label=f.max_label or hi_label,
        step=f.step or 1,
    )
    return [
        question_title_block(_label_for(f), group, description=f.description),
        make_block(BlockKind.LINEAR_SCALE, payload, group_uuid=group),
    ]


def _lower_file_upload(f: FormField) -> List[TallyBlock]:
    group = _new_id()
    accepted = [t.strip().lower().lstrip(".") for t in f.allowed_file_types if t.strip()]
    if not accepted:
        accepted = [t.lower().lstrip(".") for t in _string_list(f.extra("acceptedFileTypes", "acceptedTypes", "fileTypes"))]
    payload = FileUploadPayload(
        is_required=f.required,
        max_file_size=int(f.max_file_size * _BYTES_PER_MB) if f.max_file_size else None,
        accepted_file_types=accepted or None,
        allow_multiple=f.allow_multiple,
        max_files=f.max_files,
    )
    return [
        question_title_block(_label_for(f), group, description=f.description),
        make_block(BlockKind.FILE_UPLOAD, payload, group_uuid=group),
    ]


def _lower_signature(f: FormField) -> List[TallyBlock]:
    group = _new_id()
    return [
        question_title_block(_label_for(f), group, description=f.description),
        make_block(BlockKind.SIGNATURE, SignaturePayload(is_required=f.required, stroke_width=f.stroke_width), group_uuid=group),
    ]


def _lower_matrix(f: FormField) -> List[TallyBlock]:
    group = _new_id()
    rows = _string_list(f.rows)
    columns = _string_list(f.columns) or _string_list(f.options)
    blocks = [
        question_title_block(_label_for(f), group, description=f.description),
        make_block(BlockKind.MATRIX, MatrixPayload(is_required=f.required, allow_multiple=f.allow_multiple), group_uuid=group),
    ]
    for i, row in enumerate(rows):
        blocks.append(make_block(BlockKind.MATRIX_ROW, MatrixItemPayload(order=i, text=row), group_uuid=group, group_type="MATRIX"))
    for i, col in enumerate(columns):
        blocks.append(make_block(BlockKind.MATRIX_COLUMN, MatrixItemPayload(order=i, text=col), group_uuid=group, group_type="MATRIX"))
    return blocks


def _content_text(f: FormField) -> str:
    return str(f.content or f.extra("text") or f.label or f.description or "").strip()


def _lower_heading(f: FormField) -> List[TallyBlock]:
    text = _content_text(f)
    if not text:
        return []
    return [heading_block(text, f.level or 2)]


def _lower_text_block(f: FormField) -> List[TallyBlock]:
    text = _content_text(f)
    if not text:
        return []
    return [text_block(text)]


def _lower_divider(f: FormField) -> List[TallyBlock]:
    return [divider_block()]


def _lower_page_break(f: FormField) -> List[TallyBlock]:
    label = f.extra("buttonLabel", "button_label")
    return [make_block(BlockKind.PAGE_BREAK, PageBreakPayload(button_label=str(label) if label else None))]


def _lower_thank_you_page(f: FormField) -> List[TallyBlock]:
    title = f.label or None
    text = str(f.content or f.extra("message", "text") or f.description or "").strip() or None
    payload = ThankYouPagePayload(title=title, text=text, safe_html_schema=_rich(text) if text else None)
    return [make_block(BlockKind.THANK_YOU_PAGE, payload)]


def _media_kind(f: FormField, url: str) -> BlockKind:
    hint = str(f.extra("mediaType", "media_type", "kind") or "").strip().upper()
    if hint in {"IMAGE", "VIDEO", "AUDIO", "EMBED"}:
        return BlockKind(hint)
    path = url.lower().split("?", 1)[0]
    for kind, exts in _MEDIA_EXTENSIONS.items():
        if path.endswith(exts):
            return kind
    if "youtube.com" in path or "youtu.be" in path or "vimeo.com" in path:
        return BlockKind.VIDEO
    return BlockKind.EMBED


def _lower_media(f: FormField) -> List[TallyBlock]:
    url = str(f.url or f.extra("src", "mediaUrl", "media_url", "embedUrl") or "").strip()
    if not url:
        return []
    kind = _media_kind(f, url)
    caption = str(f.description or f.label or "").strip() or None
    alt = str(f.extra("alt") or "").strip() or None
    return [make_block(kind, MediaPayload(url=url, caption=caption, alt=alt))]


def _lower_hidden_fields(f: FormField) -> List[TallyBlock]:
    names = _string_list(f.extra("hiddenFields", "hidden_fields", "fields", "names")) or _string_list(f.options)
    if not names and f.label:
        names = [f.label]
    payload = HiddenFieldsPayload(hidden_fields=[HiddenField(uuid=_new_id(), name=n) for n in names])
    return [make_block(BlockKind.HIDDEN_FIELDS, payload)]


def _lower_calculated_fields(f: FormField) -> List[TallyBlock]:
    raw = f.extra("calculatedFields", "calculated_fields", "variables")
    items: List[CalculatedField] = []
    if isinstance(raw, list):
        for item in raw:
            if isinstance(item, dict):
                name = str(item.get("name") or item.get("label") or "").strip()
                if not name:
                    continue
                ftype = str(item.get("type") or "NUMBER").strip().upper()
                value = item.get("value")
                if isinstance(value, bool) or not isinstance(value, (int, float, str)):
                    value = 0 if ftype == "NUMBER" else ""
                items.append(CalculatedField(uuid=_new_id(), name=name, type=ftype, value=value))
            elif str(item or "").strip():
                items.append(CalculatedField(uuid=_new_id(), name=str(item).strip()))
    if not items and f.label:
        items.append(CalculatedField(uuid=_new_id(), name=f.label))
    return [make_block(BlockKind.CALCULATED_FIELDS, CalculatedFieldsPayload(calculated_fields=items))]


def _lower_conditional_logic(f: FormField) -> List[TallyBlock]:
    conditionals = f.extra("conditionals", "conditions")
    actions = f.extra("actions")
    payload = ConditionalLogicPayload(
        logical_operator=str(f.extra("logicalOperator", "logical_operator") or "AND").upper(),
        conditionals=[c for c in conditionals if isinstance(c, dict)] if isinstance(conditionals, list) else [],
        actions=[a for a in actions if isinstance(a, dict)] if isinstance(actions, list) else [],
    )
    return [make_block(BlockKind.CONDITIONAL_LOGIC, payload)]


def _lower_captcha(f: FormField) -> List[TallyBlock]:
    return [make_block(BlockKind.CAPTCHA, EmptyPayload())]


def _lower_payment(f: FormField) -> List[TallyBlock]:
    payload = PaymentPayload(
        is_required=f.required if "required" in f.model_fields_set else True,
        amount=f.amount,
        currency=str(f.currency or "USD").strip().upper() or "USD",
        description=str(f.description or f.label or "").strip() or None,
    )
    return [make_block(BlockKind.PAYMENT, payload)]


def _lower_wallet_connect(f: FormField) -> List[TallyBlock]:
    return [make_block(BlockKind.WALLET_CONNECT, WalletConnectPayload(is_required=f.required))]


def _lower_respondent_country(f: FormField) -> List[TallyBlock]:
    return [make_block(BlockKind.RESPONDENT_COUNTRY, EmptyPayload())]


FIELD_LOWERERS: Dict[FieldKind, Callable[[FormField], List[TallyBlock]]] = {
    FieldKind.TEXT: _lower_input,
    FieldKind.EMAIL: _lower_input,
    FieldKind.PHONE: _lower_input,
    FieldKind.TEXTAREA: _lower_input,
    FieldKind.DATE: _lower_input,
    FieldKind.NUMBER: _lower_input,
    FieldKind.URL: _lower_input,
    FieldKind.DROPDOWN: _lower_choice,
    FieldKind.MULTIPLE_CHOICE: _lower_choice,
    FieldKind.CHECKBOXES: _lower_choice,
    FieldKind.COUNTRY_SELECT: _lower_choice,
    FieldKind.CONSENT_CHECKBOX: _lower_choice,
    FieldKind.RATING: _lower_rating,
    FieldKind.LINEAR_SCALE: _lower_scale,
    FieldKind.NPS: _lower_scale,
    FieldKind.LIKERT: _lower_scale,
    FieldKind.FILE_UPLOAD: _lower_file_upload,
    FieldKind.SIGNATURE: _lower_signature,
    FieldKind.MATRIX: _lower_matrix,
    FieldKind.HEADING: _lower_heading,
    FieldKind.TEXT_BLOCK: _lower_text_block,
    FieldKind.DIVIDER: _lower_divider,
    FieldKind.PAGE_BREAK: _lower_page_break,
    FieldKind.THANK_YOU_PAGE: _lower_thank_you_page,
    FieldKind.MEDIA: _lower_media,
    FieldKind.HIDDEN_FIELDS: _lower_hidden_fields,
    FieldKind.CALCULATED_FIELDS: _lower_calculated_fields,
    FieldKind.CONDITIONAL_LOGIC: _lower_conditional_logic,
    FieldKind.CAPTCHA: _lower_captcha,
    FieldKind.PAYMENT: _lower_payment,
    FieldKind.WALLET_CONNECT: _lower_wallet_connect,
    FieldKind.RESPONDENT_COUNTRY: _lower_respondent_country,
}


def lower_field(f: FormField) -> List[TallyBlock]:
    kind = f.kind
    if kind is None:
        # Unknown kinds render as a plain text input.
        return question_blocks(_label_for(f), BlockKind.INPUT_TEXT, required=f.required, placeholder=f.placeholder, description=f.description)
    try:
        return FIELD_LOWERERS[kind](f)
    except ValidationError as e:
        # Attributes that fit no payload shape: keep the question, drop the extras.
        logger.warning("lowering %s field %r failed (%s error(s)); emitting text input", kind.value, f.label, e.error_count())
        return question_blocks(_label_for(f), BlockKind.INPUT_TEXT, required=f.required, placeholder=f.placeholder, description=f.description)


@dataclass
class LoweredForm:
    blocks: List[TallyBlock]
    label_to_id: Dict[str, str] = field(default_factory=dict)
    unresolved_conditions: List[str] = field(default_factory=list)


def lower_form(parsed: ParsedForm, *, attribution_text: Optional[str] = None) -> LoweredForm:
    blocks: List[TallyBlock] = [form_title_block(parsed.title)]
    label_to_id: Dict[str, str] = {}
    unresolved: List[str] = []

    description = str(parsed.description or "").strip()
    if description:
        blocks.append(text_block(description))

    last_section = len(parsed.sections) - 1
    for s_idx, section in enumerate(parsed.sections):
        if section.title.strip():
            blocks.append(heading_block(section.title.strip(), 2))
        section_desc = str(section.description or "").strip()
        if section_desc:
            blocks.append(text_block(section_desc))

        for f in section.fields:
            emitted = lower_field(f)
            if not emitted:
                continue
            if f.show_if:
                rule = resolve_show_if(f.show_if, label_to_id)
                if rule is not None:
                    # Rules ride on the question's title block, the first one emitted.
                    attach_rule(emitted[0], rule)
                else:
                    unresolved.append(f.show_if)
            blocks.extend(emitted)
            if f.label:
                register_label(label_to_id, f.label, emitted[-1].uuid)

        if s_idx != last_section:
            blocks.append(divider_block())

    blocks.append(attribution_block(attribution_text))
    return LoweredForm(blocks=blocks, label_to_id=label_to_id, unresolved_conditions=unresolved)


__all__ = [
    "COUNTRY_OPTIONS",
    "DEFAULT_ATTRIBUTION_TEXT",
    "FIELD_LOWERERS",
    "ChoiceOption",
    "LoweredForm",
    "attribution_block",
    "choice_blocks",
    "divider_block",
    "form_title_block",
    "heading_block",
    "lower_field",
    "lower_form",
    "make_block",
    "normalize_options",
    "question_blocks",
    "question_title_block",
    "text_block",
    "title_case",
]
