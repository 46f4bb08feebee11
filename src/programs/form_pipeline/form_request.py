"""
Compiled form -> Tally create-form request.
"""

from __future__ import annotations

from typing import List, Optional

from programs.form_pipeline.config import DEFAULT_CONFIRMATION_MESSAGE
from programs.form_pipeline.lowering import make_block
from programs.form_pipeline.orchestrator import CompiledForm
from schemas.api_models import CreateFormRequest, FormPromptOptions, FormStatus, TallyFormSettings
from schemas.tally_blocks import BlockKind, EmptyPayload, TallyBlock, blocks_to_api


def _with_captcha(blocks: List[TallyBlock]) -> List[TallyBlock]:
    if any(b.type is BlockKind.CAPTCHA for b in blocks) or not blocks:
        return list(blocks)
    # Before the trailing attribution block.
    return [*blocks[:-1], make_block(BlockKind.CAPTCHA, EmptyPayload()), blocks[-1]]


def build_create_form_request(
    compiled: CompiledForm,
    workspace_id: str,
    options: Optional[FormPromptOptions] = None,
    status: FormStatus = "DRAFT",
    *,
    default_confirmation_message: str = DEFAULT_CONFIRMATION_MESSAGE,
) -> CreateFormRequest:
    opts = options or FormPromptOptions()

    # Parsed form wins for the message; the caller wins for the redirect.
    confirmation = compiled.confirmation_message or opts.confirmation_message or default_confirmation_message
    redirect = opts.redirect_url or compiled.redirect_url or None

    settings = TallyFormSettings(confirmation_message=confirmation, redirect_on_completion=redirect)
    parsed_settings = compiled.settings
    if parsed_settings is not None:
        updates = {
            "has_progress_bar": parsed_settings.has_progress_bar,
            "has_partial_submissions": parsed_settings.has_partial_submissions,
            "save_for_later": parsed_settings.save_for_later,
        }
        settings = settings.model_copy(update={k: v for k, v in updates.items() if v is not None})

    return CreateFormRequest(
        name=opts.title or compiled.title,
        workspace_id=workspace_id,
        status=status,
        blocks=blocks_to_api(_with_captcha(compiled.blocks) if opts.include_captcha else compiled.blocks),
        settings=settings,
    )


__all__ = ["build_create_form_request"]
