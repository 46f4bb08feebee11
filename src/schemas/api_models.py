"""
Tally REST request models (what we send to the form-hosting API).
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

FormStatus = Literal["DRAFT", "PUBLISHED"]


class FormPromptOptions(BaseModel):
    """
    Caller overrides for prompt-created forms.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: Optional[str] = None
    include_captcha: bool = Field(default=False, alias="includeCaptcha")
    redirect_url: Optional[str] = Field(default=None, alias="redirectUrl")
    confirmation_message: Optional[str] = Field(default=None, alias="confirmationMessage")

    @model_validator(mode="before")
    @classmethod
    def _blank_strings_to_none(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out = dict(data)
        for k, v in list(out.items()):
            if isinstance(v, str) and not v.strip():
                out[k] = None
        return out


class FormFont(BaseModel):
    provider: str = "Google"
    family: str = "Roboto Slab"


class FormStyles(BaseModel):
    theme: Literal["LIGHT", "DARK"] = "LIGHT"
    font: FormFont = Field(default_factory=FormFont)


class TallyFormSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    language: str = "en"
    is_closed: bool = Field(default=False, alias="isClosed")
    has_self_email_notifications: bool = Field(default=True, alias="hasSelfEmailNotifications")
    has_respondent_email_notifications: bool = Field(default=False, alias="hasRespondentEmailNotifications")
    has_progress_bar: bool = Field(default=True, alias="hasProgressBar")
    has_partial_submissions: bool = Field(default=True, alias="hasPartialSubmissions")
    page_auto_jump: bool = Field(default=False, alias="pageAutoJump")
    save_for_later: bool = Field(default=True, alias="saveForLater")
    redirect_on_completion: Optional[str] = Field(default=None, alias="redirectOnCompletion")
    confirmation_message: str = Field(..., alias="confirmationMessage")
    styles: FormStyles = Field(default_factory=FormStyles)


class CreateFormRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    workspace_id: str = Field(..., alias="workspaceId")
    status: FormStatus = "DRAFT"
    blocks: List[Dict[str, Any]] = Field(default_factory=list)
    settings: TallyFormSettings

    def to_api(self) -> Dict[str, Any]:
        out = self.model_dump(mode="json", by_alias=True)
        # redirectOnCompletion is sent as an explicit null.
        out["settings"]["redirectOnCompletion"] = self.settings.redirect_on_completion
        return out


class UpdateFormRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: Optional[str] = None
    status: Optional[Literal["DRAFT", "PUBLISHED", "CLOSED"]] = None
    blocks: Optional[List[Dict[str, Any]]] = None
    settings: Optional[Dict[str, Any]] = None

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = [
    "CreateFormRequest",
    "FormFont",
    "FormPromptOptions",
    "FormStatus",
    "FormStyles",
    "TallyFormSettings",
    "UpdateFormRequest",
]
