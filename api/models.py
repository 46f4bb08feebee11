from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.api_models import FormPromptOptions, FormStatus


class CompileRequest(BaseModel):
    """Prompt to compile without touching Tally."""

    prompt: str = Field(
        ...,
        min_length=1,
        description="Free-form description of the form (structured JSON definitions accepted)",
    )


class CreateFormFromPromptRequest(CompileRequest):
    options: FormPromptOptions = Field(default_factory=FormPromptOptions)
    status: FormStatus = "DRAFT"


class ContactFormRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = "Contact Form"
    include_phone: bool = Field(default=False, alias="includePhone")
    include_company: bool = Field(default=False, alias="includeCompany")


class ValidateKeyRequest(BaseModel):
    """Optional key to check; defaults to the server-side key."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: Optional[str] = Field(default=None, alias="apiKey")
