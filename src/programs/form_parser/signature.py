from __future__ import annotations

import dspy

from programs.form_pipeline.prompts import build_form_parser_prompt


class ParseFormJSON(dspy.Signature):
    """
    Form parser signature.

    Prompt text lives in `programs.form_pipeline.prompts`.
    """

    form_request: str = dspy.InputField(desc="The user's natural-language description of the form to build.")

    form_json: str = dspy.OutputField(
        desc="JSON object with title, description, sections[].fields[] and settings. Output ONLY JSON (no prose, no markdown, no code fences)."
    )


__all__ = ["ParseFormJSON"]

# Keep the signature file short: pull the prompt from the prompts module.
ParseFormJSON.__doc__ = build_form_parser_prompt()
