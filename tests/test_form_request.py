from __future__ import annotations

from programs.form_pipeline.config import DEFAULT_CONFIRMATION_MESSAGE, CompilerConfig
from programs.form_pipeline.form_request import build_create_form_request
from programs.form_pipeline.orchestrator import compile_prompt
from schemas.api_models import FormPromptOptions

_CFG = CompilerConfig(use_oracle=False)


def _compiled(prompt: str = "please make a form"):
    return compile_prompt(prompt, config=_CFG)


def test_default_settings():
    body = build_create_form_request(_compiled(), "ws_1").to_api()
    assert body["name"] == "Custom Form"
    assert body["workspaceId"] == "ws_1"
    assert body["status"] == "DRAFT"
    assert body["blocks"][0]["type"] == "FORM_TITLE"
    assert body["settings"] == {
        "language": "en",
        "isClosed": False,
        "hasSelfEmailNotifications": True,
        "hasRespondentEmailNotifications": False,
        "hasProgressBar": True,
        "hasPartialSubmissions": True,
        "pageAutoJump": False,
        "saveForLater": True,
        "redirectOnCompletion": None,
        "confirmationMessage": DEFAULT_CONFIRMATION_MESSAGE,
        "styles": {"theme": "LIGHT", "font": {"provider": "Google", "family": "Roboto Slab"}},
    }


def test_parsed_confirmation_wins_over_options():
    compiled = _compiled("Section: A\n1. Name (text)\nThank you:\nMessage: \"Cheers!\"")
    opts = FormPromptOptions(confirmationMessage="From options")
    body = build_create_form_request(compiled, "ws", opts).to_api()
    assert body["settings"]["confirmationMessage"] == "Cheers!"


def test_options_confirmation_then_default():
    opts = FormPromptOptions(confirmationMessage="From options")
    assert build_create_form_request(_compiled(), "ws", opts).settings.confirmation_message == "From options"
    body = build_create_form_request(_compiled(), "ws", default_confirmation_message="Configured default")
    assert body.settings.confirmation_message == "Configured default"


def test_redirect_prefers_options_then_parsed():
    compiled = _compiled('{"redirectUrl": "https://parsed.example", "fields": [{"type": "text", "label": "A"}]}')
    assert build_create_form_request(compiled, "ws").settings.redirect_on_completion == "https://parsed.example"
    opts = FormPromptOptions(redirectUrl="https://options.example")
    assert build_create_form_request(compiled, "ws", opts).settings.redirect_on_completion == "https://options.example"


def test_blank_options_are_ignored():
    opts = FormPromptOptions.model_validate({"title": "  ", "redirectUrl": "", "confirmationMessage": ""})
    req = build_create_form_request(_compiled(), "ws", opts)
    assert req.name == "Custom Form"
    assert req.settings.redirect_on_completion is None
    assert req.settings.confirmation_message == DEFAULT_CONFIRMATION_MESSAGE


def test_title_and_status_overrides():
    req = build_create_form_request(_compiled(), "ws", FormPromptOptions(title="Renamed"), "PUBLISHED")
    assert (req.name, req.status) == ("Renamed", "PUBLISHED")


def test_parsed_settings_flags_override_defaults():
    compiled = _compiled('{"fields": [{"type": "text", "label": "A"}]}')
    compiled.settings.has_progress_bar = False
    compiled.settings.save_for_later = False
    settings = build_create_form_request(compiled, "ws").settings
    assert settings.has_progress_bar is False
    assert settings.save_for_later is False
    assert settings.has_partial_submissions is True


def test_captcha_inserted_before_attribution():
    compiled = _compiled()
    blocks = build_create_form_request(compiled, "ws", FormPromptOptions(includeCaptcha=True)).blocks
    assert [b["type"] for b in blocks[-2:]] == ["CAPTCHA", "TEXT"]
    assert len(blocks) == len(compiled.blocks) + 1
    assert "CAPTCHA" not in [b["type"] for b in build_create_form_request(compiled, "ws").blocks]
