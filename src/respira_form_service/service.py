from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Union

from programs.form_parser.program import FormOracle
from programs.form_pipeline.config import CompilerConfig
from programs.form_pipeline.form_request import build_create_form_request
from programs.form_pipeline.lowering import attribution_block, form_title_block, question_blocks
from programs.form_pipeline.orchestrator import CompiledForm, compile_prompt
from providers.tally_client import TallyApiClient
from schemas.api_models import CreateFormRequest, FormPromptOptions, FormStatus, TallyFormSettings, UpdateFormRequest
from schemas.tally_blocks import BlockKind, TallyBlock, blocks_to_api

logger = logging.getLogger(__name__)

CONTACT_FORM_CONFIRMATION = "Thank you for your message! We'll get back to you soon."


class ServiceNotConfiguredError(RuntimeError):
    """No Tally API key available."""


class NoWorkspaceError(RuntimeError):
    """The Tally account has no workspace to create forms in."""


def contact_form_blocks(
    title: str = "Contact Form",
    *,
    include_phone: bool = False,
    include_company: bool = False,
    attribution_text: Optional[str] = None,
) -> List[TallyBlock]:
    blocks: List[TallyBlock] = [form_title_block(title)]
    blocks.extend(question_blocks("Name", BlockKind.INPUT_TEXT, required=True, placeholder="Enter your full name"))
    blocks.extend(question_blocks("Email", BlockKind.INPUT_EMAIL, required=True, placeholder="Enter your email address"))
    if include_phone:
        blocks.extend(question_blocks("Phone Number", BlockKind.INPUT_PHONE_NUMBER, placeholder="Enter your phone number"))
    if include_company:
        blocks.extend(question_blocks("Company", BlockKind.INPUT_TEXT, placeholder="Enter your company name"))
    blocks.extend(question_blocks("Message", BlockKind.TEXTAREA, required=True, placeholder="Enter your message"))
    blocks.append(attribution_block(attribution_text))
    return blocks


class RespiraFormService:
    """
    Compile prompts and manage forms on a Tally account.

    `preview_form` works without a Tally key; everything else needs one
    (`api_key` argument, an injected `client`, or `TALLY_API_KEY`).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        oracle: Optional[FormOracle] = None,
        client: Optional[TallyApiClient] = None,
        config: Optional[CompilerConfig] = None,
    ) -> None:
        self.oracle = oracle
        self.config = config
        key = api_key or os.getenv("TALLY_API_KEY") or ""
        self._client = client if client is not None else (TallyApiClient(key) if key.strip() else None)

    def with_api_key(self, api_key: str) -> "RespiraFormService":
        return RespiraFormService(api_key, oracle=self.oracle, config=self.config)

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> TallyApiClient:
        if self._client is None:
            raise ServiceNotConfiguredError("Not initialized. Please provide a Tally API key.")
        return self._client

    def _config(self) -> CompilerConfig:
        return self.config or CompilerConfig.from_env()

    def _first_workspace_id(self) -> str:
        workspaces = self.client.list_workspaces()
        if not workspaces:
            raise NoWorkspaceError("No workspaces found. Please create a workspace in Tally first.")
        return str(workspaces[0].get("id"))

    # --- compile ---------------------------------------------------------

    def preview_form(self, prompt: str) -> CompiledForm:
        return compile_prompt(prompt, oracle=self.oracle, config=self._config())

    def build_request(
        self,
        prompt: str,
        workspace_id: str,
        options: Optional[FormPromptOptions] = None,
        status: FormStatus = "DRAFT",
    ) -> CreateFormRequest:
        cfg = self._config()
        compiled = compile_prompt(prompt, oracle=self.oracle, config=cfg)
        logger.info("compiled form requestId=%s source=%s blocks=%s", compiled.request_id, compiled.source, len(compiled.blocks))
        return build_create_form_request(
            compiled,
            workspace_id,
            options,
            status,
            default_confirmation_message=cfg.default_confirmation_message,
        )

    # --- create ----------------------------------------------------------

    def create_form_from_prompt(
        self,
        prompt: str,
        options: Optional[Union[FormPromptOptions, Dict[str, Any]]] = None,
        status: FormStatus = "DRAFT",
    ) -> Dict[str, Any]:
        opts = options if isinstance(options, FormPromptOptions) else FormPromptOptions.model_validate(options or {})
        workspace_id = self._first_workspace_id()
        request = self.build_request(prompt, workspace_id, opts, status)
        return self.client.create_form(request)

    def create_contact_form(
        self,
        title: str = "Contact Form",
        *,
        include_phone: bool = False,
        include_company: bool = False,
    ) -> Dict[str, Any]:
        workspace_id = self._first_workspace_id()
        blocks = contact_form_blocks(
            title,
            include_phone=include_phone,
            include_company=include_company,
            attribution_text=self._config().attribution_text,
        )
        request = CreateFormRequest(
            name=title,
            workspace_id=workspace_id,
            status="DRAFT",
            blocks=blocks_to_api(blocks),
            settings=TallyFormSettings(confirmation_message=CONTACT_FORM_CONFIRMATION),
        )
        return self.client.create_form(request)

    # --- pass-throughs ---------------------------------------------------

    def validate_api_key(self) -> Dict[str, Any]:
        return self.client.validate_api_key()

    def get_user(self) -> Dict[str, Any]:
        return self.client.get_user()

    def list_forms(self) -> List[Dict[str, Any]]:
        return self.client.list_forms()

    def get_form(self, form_id: str) -> Dict[str, Any]:
        return self.client.get_form(form_id)

    def update_form(self, form_id: str, update: Union[UpdateFormRequest, Dict[str, Any]]) -> Dict[str, Any]:
        return self.client.update_form(form_id, update)

    def delete_form(self, form_id: str) -> bool:
        return self.client.delete_form(form_id)

    def list_submissions(self, form_id: str) -> List[Dict[str, Any]]:
        return self.client.list_submissions(form_id)

    def get_submission(self, form_id: str, submission_id: str) -> Dict[str, Any]:
        return self.client.get_submission(form_id, submission_id)

    def list_workspaces(self) -> List[Dict[str, Any]]:
        return self.client.list_workspaces()


__all__ = [
    "CONTACT_FORM_CONFIRMATION",
    "NoWorkspaceError",
    "RespiraFormService",
    "ServiceNotConfiguredError",
    "contact_form_blocks",
]
