"""
Intermediate form model.

Every parsing path (structured JSON, DSPy oracle, heuristic text parser) produces
a `ParsedForm`; the lowering step turns it into Tally blocks.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FieldKind(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    TEXTAREA = "textarea"
    DROPDOWN = "dropdown"
    MULTIPLE_CHOICE = "multiple_choice"
    CHECKBOXES = "checkboxes"
    RATING = "rating"
    LINEAR_SCALE = "linear_scale"
    NPS = "nps"
    LIKERT = "likert"
    DATE = "date"
    FILE_UPLOAD = "file_upload"
    SIGNATURE = "signature"
    NUMBER = "number"
    URL = "url"
    COUNTRY_SELECT = "country_select"
    CONSENT_CHECKBOX = "consent_checkbox"
    MATRIX = "matrix"
    # Structural kinds: one self-contained block each.
    HEADING = "heading"
    TEXT_BLOCK = "text_block"
    DIVIDER = "divider"
    PAGE_BREAK = "page_break"
    THANK_YOU_PAGE = "thank_you_page"
    MEDIA = "media"
    HIDDEN_FIELDS = "hidden_fields"
    CALCULATED_FIELDS = "calculated_fields"
    CONDITIONAL_LOGIC = "conditional_logic"
    CAPTCHA = "captcha"
    PAYMENT = "payment"
    WALLET_CONNECT = "wallet_connect"
    RESPONDENT_COUNTRY = "respondent_country"


CHOICE_KINDS = frozenset(
    {
        FieldKind.DROPDOWN,
        FieldKind.MULTIPLE_CHOICE,
        FieldKind.CHECKBOXES,
        FieldKind.COUNTRY_SELECT,
        FieldKind.CONSENT_CHECKBOX,
    }
)

# Alternate names seen in model output and hand-written definitions.
FIELD_KIND_ALIASES: Dict[str, FieldKind] = {
    "short_text": FieldKind.TEXT,
    "input_text": FieldKind.TEXT,
    "string": FieldKind.TEXT,
    "input_email": FieldKind.EMAIL,
    "email_address": FieldKind.EMAIL,
    "phone_number": FieldKind.PHONE,
    "input_phone_number": FieldKind.PHONE,
    "tel": FieldKind.PHONE,
    "long_text": FieldKind.TEXTAREA,
    "paragraph_text": FieldKind.TEXTAREA,
    "select": FieldKind.DROPDOWN,
    "single_select": FieldKind.DROPDOWN,
    "dropdown_field": FieldKind.DROPDOWN,
    "radio": FieldKind.MULTIPLE_CHOICE,
    "choice": FieldKind.MULTIPLE_CHOICE,
    "single_choice": FieldKind.MULTIPLE_CHOICE,
    "binary_choice": FieldKind.MULTIPLE_CHOICE,
    "yes_no": FieldKind.MULTIPLE_CHOICE,
    "checkbox": FieldKind.CHECKBOXES,
    "multi_select": FieldKind.CHECKBOXES,
    "multiple_select": FieldKind.CHECKBOXES,
    "consent": FieldKind.CONSENT_CHECKBOX,
    "star_rating": FieldKind.RATING,
    "scale": FieldKind.LINEAR_SCALE,
    "opinion_scale": FieldKind.LINEAR_SCALE,
    "net_promoter_score": FieldKind.NPS,
    "likert_scale": FieldKind.LIKERT,
    "input_date": FieldKind.DATE,
    "file": FieldKind.FILE_UPLOAD,
    "upload": FieldKind.FILE_UPLOAD,
    "attachment": FieldKind.FILE_UPLOAD,
    "input_file_upload": FieldKind.FILE_UPLOAD,
    "sign": FieldKind.SIGNATURE,
    "input_number": FieldKind.NUMBER,
    "integer": FieldKind.NUMBER,
    "website": FieldKind.URL,
    "link": FieldKind.URL,
    "input_link": FieldKind.URL,
    "country": FieldKind.COUNTRY_SELECT,
    "grid": FieldKind.MATRIX,
    "header": FieldKind.HEADING,
    "text_block": FieldKind.TEXT_BLOCK,
    "statement": FieldKind.TEXT_BLOCK,
    "separator": FieldKind.DIVIDER,
    "pagebreak": FieldKind.PAGE_BREAK,
    "new_page": FieldKind.PAGE_BREAK,
    "thank_you": FieldKind.THANK_YOU_PAGE,
    "thankyou_page": FieldKind.THANK_YOU_PAGE,
    "image": FieldKind.MEDIA,
    "video": FieldKind.MEDIA,
    "audio": FieldKind.MEDIA,
    "embed": FieldKind.MEDIA,
    "media_embed": FieldKind.MEDIA,
    "hidden": FieldKind.HIDDEN_FIELDS,
    "hidden_field": FieldKind.HIDDEN_FIELDS,
    "calculated": FieldKind.CALCULATED_FIELDS,
    "calculated_field": FieldKind.CALCULATED_FIELDS,
    "conditional": FieldKind.CONDITIONAL_LOGIC,
    "recaptcha": FieldKind.CAPTCHA,
    "wallet": FieldKind.WALLET_CONNECT,
}


def normalize_kind_name(raw: Any) -> str:
    """
    Lowercase + snake_case a type name (`"Multiple Choice"` -> `"multiple_choice"`).
    """
    t = str(raw or "").strip().lower()
    t = re.sub(r"[^a-z0-9]+", "_", t).strip("_")
    return t


def resolve_field_kind(raw: Any) -> Optional[FieldKind]:
    name = normalize_kind_name(raw)
    if not name:
        return None
    try:
        return FieldKind(name)
    except ValueError:
        return FIELD_KIND_ALIASES.get(name)


_NUMERIC_KEYS = (
    "maxRating",
    "minValue",
    "maxValue",
    "step",
    "maxFileSize",
    "maxFiles",
    "strokeWidth",
    "level",
    "amount",
)


def _coerce_number(value: Any) -> Any:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    t = str(value).strip()
    if not t:
        return None
    try:
        f = float(t)
    except ValueError:
        return None
    return int(f) if f.is_integer() else f


_TEXT_KEYS = (
    "placeholder",
    "description",
    "showIf",
    "show_if",
    "content",
    "url",
    "shape",
    "minLabel",
    "min_label",
    "maxLabel",
    "max_label",
    "currency",
)


def _coerce_text(value: Any) -> Optional[str]:
    # Scalars become text; containers carry no usable text.
    if isinstance(value, (bool, int, float)):
        return str(value)
    return value if isinstance(value, str) else None


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in {"1", "true", "yes", "y", "required"}


class FormField(BaseModel):
    """
    One logical question or structural element.

    `type` is stored as the canonical `FieldKind` value when recognized, otherwise as
    the normalized raw name so lowering can degrade it to a plain text input.
    Unlisted attributes (e.g. `url`, `hiddenFields`) are kept as extras.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str = FieldKind.TEXT.value
    label: str = ""
    required: bool = False
    placeholder: Optional[str] = None
    description: Optional[str] = None
    options: List[Any] = Field(default_factory=list)

    max_rating: Optional[Union[int, float]] = Field(default=None, alias="maxRating")
    shape: Optional[str] = None
    min_value: Optional[Union[int, float]] = Field(default=None, alias="minValue")
    max_value: Optional[Union[int, float]] = Field(default=None, alias="maxValue")
    min_label: Optional[str] = Field(default=None, alias="minLabel")
    max_label: Optional[str] = Field(default=None, alias="maxLabel")
    step: Optional[Union[int, float]] = None

    max_file_size: Optional[Union[int, float]] = Field(default=None, alias="maxFileSize", description="Megabytes")
    allowed_file_types: List[str] = Field(default_factory=list, alias="allowedFileTypes")
    allow_multiple: Optional[bool] = Field(default=None, alias="allowMultiple")
    max_files: Optional[int] = Field(default=None, alias="maxFiles")
    stroke_width: Optional[Union[int, float]] = Field(default=None, alias="strokeWidth")

    rows: List[Any] = Field(default_factory=list)
    columns: List[Any] = Field(default_factory=list)
    level: Optional[int] = None
    content: Optional[str] = None
    url: Optional[str] = None
    amount: Optional[Union[int, float]] = None
    currency: Optional[str] = None

    show_if: Optional[str] = Field(default=None, alias="showIf")

    @model_validator(mode="before")
    @classmethod
    def _coerce_loose_values(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out = dict(data)
        for key in _NUMERIC_KEYS:
            snake = re.sub(r"([A-Z])", lambda m: "_" + m.group(1).lower(), key)
            for k in (key, snake):
                if k in out:
                    n = _coerce_number(out[k])
                    if key in {"level", "maxFiles"} and n is not None:
                        n = int(n)
                    out[k] = n
        if "required" in out:
            out["required"] = _coerce_bool(out.get("required"))
        if "label" in out and not isinstance(out["label"], str):
            out["label"] = "" if out["label"] is None else str(out["label"])
        for k in _TEXT_KEYS:
            if k in out and not isinstance(out[k], str):
                out[k] = _coerce_text(out[k])
        for k in ("options", "rows", "columns", "allowedFileTypes", "allowed_file_types"):
            if k in out and not isinstance(out[k], list):
                out[k] = [] if out[k] is None else [out[k]]
        if out.get("allowedFileTypes"):
            out["allowedFileTypes"] = [str(x).strip() for x in out["allowedFileTypes"] if str(x).strip()]
        return out

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        kind = resolve_field_kind(value)
        if kind is not None:
            return kind.value
        return normalize_kind_name(value) or FieldKind.TEXT.value

    @field_validator("label", mode="after")
    @classmethod
    def _strip_label(cls, value: str) -> str:
        return value.strip()

    @property
    def kind(self) -> Optional[FieldKind]:
        try:
            return FieldKind(self.type)
        except ValueError:
            return None

    def extra(self, *names: str) -> Any:
        """
        First non-empty extra attribute among `names` (model output is loose about naming).
        """
        extras = self.model_extra or {}
        for name in names:
            v = extras.get(name)
            if v is None:
                continue
            if isinstance(v, str) and not v.strip():
                continue
            return v
        return None


class FormSection(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: str = ""
    description: Optional[str] = None
    fields: List[FormField] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _drop_non_object_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out = dict(data)
        raw = out.get("fields")
        out["fields"] = [f for f in raw if isinstance(f, dict) or isinstance(f, FormField)] if isinstance(raw, list) else []
        if out.get("title") is None:
            out["title"] = ""
        return out


class FormSettings(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    confirmation_message: Optional[str] = Field(default=None, alias="confirmationMessage")
    redirect_url: Optional[str] = Field(default=None, alias="redirectUrl")
    has_progress_bar: Optional[bool] = Field(default=None, alias="hasProgressBar")
    has_partial_submissions: Optional[bool] = Field(default=None, alias="hasPartialSubmissions")
    save_for_later: Optional[bool] = Field(default=None, alias="saveForLater")


class ParsedForm(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: str
    description: Optional[str] = None
    sections: List[FormSection] = Field(default_factory=list)
    settings: Optional[FormSettings] = None

    def field_count(self) -> int:
        return sum(len(s.fields) for s in self.sections)

    def iter_fields(self):
        for section in self.sections:
            for f in section.fields:
                yield f

    def has_field_labeled(self, *needles: str) -> bool:
        lowered = [n.lower() for n in needles if n]
        for f in self.iter_fields():
            label = f.label.lower()
            if any(n in label for n in lowered):
                return True
        return False


__all__ = [
    "CHOICE_KINDS",
    "FIELD_KIND_ALIASES",
    "FieldKind",
    "FormField",
    "FormSection",
    "FormSettings",
    "ParsedForm",
    "normalize_kind_name",
    "resolve_field_kind",
]
