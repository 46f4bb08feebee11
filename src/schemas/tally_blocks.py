"""
Tally block models.

A Tally form document is an ordered list of blocks. Blocks sharing a `groupUuid`
render as one question. Payloads are typed per block kind (`PAYLOAD_TYPES`) so the
lowering step can only produce keys that are legal for that kind.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny, model_validator


class BlockKind(str, Enum):
    FORM_TITLE = "FORM_TITLE"
    TEXT = "TEXT"
    HEADING_1 = "HEADING_1"
    HEADING_2 = "HEADING_2"
    HEADING_3 = "HEADING_3"
    TITLE = "TITLE"
    INPUT_TEXT = "INPUT_TEXT"
    INPUT_EMAIL = "INPUT_EMAIL"
    INPUT_PHONE_NUMBER = "INPUT_PHONE_NUMBER"
    INPUT_NUMBER = "INPUT_NUMBER"
    INPUT_LINK = "INPUT_LINK"
    INPUT_DATE = "INPUT_DATE"
    TEXTAREA = "TEXTAREA"
    DROPDOWN_OPTION = "DROPDOWN_OPTION"
    MULTIPLE_CHOICE_OPTION = "MULTIPLE_CHOICE_OPTION"
    CHECKBOX = "CHECKBOX"
    RATING = "RATING"
    LINEAR_SCALE = "LINEAR_SCALE"
    FILE_UPLOAD = "FILE_UPLOAD"
    SIGNATURE = "SIGNATURE"
    MATRIX = "MATRIX"
    MATRIX_ROW = "MATRIX_ROW"
    MATRIX_COLUMN = "MATRIX_COLUMN"
    DIVIDER = "DIVIDER"
    PAGE_BREAK = "PAGE_BREAK"
    THANK_YOU_PAGE = "THANK_YOU_PAGE"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    EMBED = "EMBED"
    HIDDEN_FIELDS = "HIDDEN_FIELDS"
    CALCULATED_FIELDS = "CALCULATED_FIELDS"
    CONDITIONAL_LOGIC = "CONDITIONAL_LOGIC"
    CAPTCHA = "CAPTCHA"
    PAYMENT = "PAYMENT"
    WALLET_CONNECT = "WALLET_CONNECT"
    RESPONDENT_COUNTRY = "RESPONDENT_COUNTRY"


class ConditionOperator(str, Enum):
    EQUAL = "EQUAL"
    LESS_THAN = "LESS_THAN"
    LESS_OR_EQUAL = "LESS_OR_EQUAL"
    GREATER_THAN = "GREATER_THAN"
    GREATER_OR_EQUAL = "GREATER_OR_EQUAL"


class Condition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_field_id: str = Field(..., alias="targetFieldId")
    operator: ConditionOperator
    value: Union[int, float, str]


class ConditionalRule(BaseModel):
    action: Literal["SHOW"] = "SHOW"
    conditions: List[Condition] = Field(default_factory=list)


class BlockPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    conditional_logic: Optional[ConditionalRule] = Field(default=None, alias="conditionalLogic")


class FormTitlePayload(BlockPayload):
    title: str
    safe_html_schema: List[List[str]] = Field(..., alias="safeHTMLSchema")


class TextPayload(BlockPayload):
    text: str
    safe_html_schema: List[List[str]] = Field(..., alias="safeHTMLSchema")


class HeadingPayload(BlockPayload):
    title: str
    safe_html_schema: List[List[str]] = Field(..., alias="safeHTMLSchema")


class QuestionTitlePayload(BlockPayload):
    title: str
    safe_html_schema: List[List[str]] = Field(..., alias="safeHTMLSchema")
    description: Optional[str] = None


class InputPayload(BlockPayload):
    is_required: bool = Field(default=False, alias="isRequired")
    placeholder: Optional[str] = None


class ChoiceOptionPayload(BlockPayload):
    index: int
    is_required: bool = Field(default=False, alias="isRequired")
    is_first: bool = Field(..., alias="isFirst")
    is_last: bool = Field(..., alias="isLast")
    text: str
    value: Optional[str] = None
    is_default: Optional[bool] = Field(default=None, alias="isDefault")
    description: Optional[str] = None
    placeholder: Optional[str] = None


class RatingPayload(BlockPayload):
    is_required: bool = Field(default=False, alias="isRequired")
    max_rating: int = Field(default=5, alias="maxRating")
    shape: str = "STAR"


class LinearScalePayload(BlockPayload):
    is_required: bool = Field(default=False, alias="isRequired")
    min_value: Union[int, float] = Field(..., alias="minValue")
    max_value: Union[int, float] = Field(..., alias="maxValue")
    min_label: Optional[str] = Field(default=None, alias="minLabel")
    max_label: Optional[str] = Field(default=None, alias="maxLabel")
    step: Union[int, float] = 1


class FileUploadPayload(BlockPayload):
    is_required: bool = Field(default=False, alias="isRequired")
    max_file_size: Optional[int] = Field(default=None, alias="maxFileSize", description="Bytes")
    accepted_file_types: Optional[List[str]] = Field(default=None, alias="acceptedFileTypes")
    allow_multiple: Optional[bool] = Field(default=None, alias="allowMultiple")
    max_files: Optional[int] = Field(default=None, alias="maxFiles")


class SignaturePayload(BlockPayload):
    is_required: bool = Field(default=False, alias="isRequired")
    stroke_width: Optional[Union[int, float]] = Field(default=None, alias="strokeWidth")


class MatrixPayload(BlockPayload):
    is_required: bool = Field(default=False, alias="isRequired")
    allow_multiple: Optional[bool] = Field(default=None, alias="allowMultiple")


class MatrixItemPayload(BlockPayload):
    order: int
    text: str


class EmptyPayload(BlockPayload):
    pass


class PageBreakPayload(BlockPayload):
    button_label: Optional[str] = Field(default=None, alias="buttonLabel")


class ThankYouPagePayload(BlockPayload):
    title: Optional[str] = None
    text: Optional[str] = None
    safe_html_schema: Optional[List[List[str]]] = Field(default=None, alias="safeHTMLSchema")


class MediaPayload(BlockPayload):
    url: str
    caption: Optional[str] = None
    alt: Optional[str] = None


class HiddenField(BaseModel):
    uuid: str
    name: str


class HiddenFieldsPayload(BlockPayload):
    hidden_fields: List[HiddenField] = Field(default_factory=list, alias="hiddenFields")


class CalculatedField(BaseModel):
    uuid: str
    name: str
    type: str = "NUMBER"
    value: Union[int, float, str] = 0


class CalculatedFieldsPayload(BlockPayload):
    calculated_fields: List[CalculatedField] = Field(default_factory=list, alias="calculatedFields")


class ConditionalLogicPayload(BlockPayload):
    logical_operator: str = Field(default="AND", alias="logicalOperator")
    conditionals: List[Dict[str, Any]] = Field(default_factory=list)
    actions: List[Dict[str, Any]] = Field(default_factory=list)


class PaymentPayload(BlockPayload):
    is_required: bool = Field(default=True, alias="isRequired")
    amount: Optional[Union[int, float]] = None
    currency: str = "USD"
    description: Optional[str] = None


class WalletConnectPayload(BlockPayload):
    is_required: bool = Field(default=False, alias="isRequired")


PAYLOAD_TYPES: Dict[BlockKind, Type[BlockPayload]] = {
    BlockKind.FORM_TITLE: FormTitlePayload,
    BlockKind.TEXT: TextPayload,
    BlockKind.HEADING_1: HeadingPayload,
    BlockKind.HEADING_2: HeadingPayload,
    BlockKind.HEADING_3: HeadingPayload,
    BlockKind.TITLE: QuestionTitlePayload,
    BlockKind.INPUT_TEXT: InputPayload,
    BlockKind.INPUT_EMAIL: InputPayload,
    BlockKind.INPUT_PHONE_NUMBER: InputPayload,
    BlockKind.INPUT_NUMBER: InputPayload,
    BlockKind.INPUT_LINK: InputPayload,
    BlockKind.INPUT_DATE: InputPayload,
    BlockKind.TEXTAREA: InputPayload,
    BlockKind.DROPDOWN_OPTION: ChoiceOptionPayload,
    BlockKind.MULTIPLE_CHOICE_OPTION: ChoiceOptionPayload,
    BlockKind.CHECKBOX: ChoiceOptionPayload,
    BlockKind.RATING: RatingPayload,
    BlockKind.LINEAR_SCALE: LinearScalePayload,
    BlockKind.FILE_UPLOAD: FileUploadPayload,
    BlockKind.SIGNATURE: SignaturePayload,
    BlockKind.MATRIX: MatrixPayload,
    BlockKind.MATRIX_ROW: MatrixItemPayload,
    BlockKind.MATRIX_COLUMN: MatrixItemPayload,
    BlockKind.DIVIDER: EmptyPayload,
    BlockKind.PAGE_BREAK: PageBreakPayload,
    BlockKind.THANK_YOU_PAGE: ThankYouPagePayload,
    BlockKind.IMAGE: MediaPayload,
    BlockKind.VIDEO: MediaPayload,
    BlockKind.AUDIO: MediaPayload,
    BlockKind.EMBED: MediaPayload,
    BlockKind.HIDDEN_FIELDS: HiddenFieldsPayload,
    BlockKind.CALCULATED_FIELDS: CalculatedFieldsPayload,
    BlockKind.CONDITIONAL_LOGIC: ConditionalLogicPayload,
    BlockKind.CAPTCHA: EmptyPayload,
    BlockKind.PAYMENT: PaymentPayload,
    BlockKind.WALLET_CONNECT: WalletConnectPayload,
    BlockKind.RESPONDENT_COUNTRY: EmptyPayload,
}


class TallyBlock(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uuid: str
    type: BlockKind
    group_uuid: str = Field(..., alias="groupUuid")
    group_type: str = Field(..., alias="groupType")
    payload: SerializeAsAny[BlockPayload]

    @model_validator(mode="after")
    def _payload_matches_kind(self) -> "TallyBlock":
        expected = PAYLOAD_TYPES[self.type]
        if type(self.payload) is not expected:
            raise ValueError(f"{self.type.value} block requires {expected.__name__}, got {type(self.payload).__name__}")
        return self

    def title_text(self) -> str:
        title = getattr(self.payload, "title", None)
        if isinstance(title, str):
            return title
        text = getattr(self.payload, "text", None)
        return text if isinstance(text, str) else ""

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def blocks_to_api(blocks: List[TallyBlock]) -> List[Dict[str, Any]]:
    return [b.to_api() for b in blocks]


__all__ = [
    "PAYLOAD_TYPES",
    "BlockKind",
    "BlockPayload",
    "CalculatedField",
    "CalculatedFieldsPayload",
    "ChoiceOptionPayload",
    "Condition",
    "ConditionOperator",
    "ConditionalLogicPayload",
    "ConditionalRule",
    "EmptyPayload",
    "FileUploadPayload",
    "FormTitlePayload",
    "HeadingPayload",
    "HiddenField",
    "HiddenFieldsPayload",
    "InputPayload",
    "LinearScalePayload",
    "MatrixItemPayload",
    "MatrixPayload",
    "MediaPayload",
    "PageBreakPayload",
    "PaymentPayload",
    "QuestionTitlePayload",
    "RatingPayload",
    "SignaturePayload",
    "TallyBlock",
    "TextPayload",
    "ThankYouPagePayload",
    "WalletConnectPayload",
    "blocks_to_api",
]
