from __future__ import annotations

import logging
import threading
import warnings
from typing import Any, Optional, Protocol

import dspy

from programs.form_parser.signature import ParseFormJSON
from programs.form_pipeline.config import OracleSettings, resolve_oracle_lm_config

logger = logging.getLogger(__name__)

# Suppress Pydantic serialization warnings from LiteLLM
warnings.filterwarnings(
    "ignore",
    message=".*PydanticSerializationUnexpectedValue.*",
    category=UserWarning,
    module="pydantic",
)


class FormOracle(Protocol):
    """
    Anything that turns (system prompt, user prompt) into raw model text.
    """

    def complete(self, system_prompt: str, user_prompt: str) -> str: ...


class FormParserProgram(dspy.Module):
    """
    Thin DSPy wrapper for the form-parser call.
    """

    def __init__(self, *, instructions: Optional[str] = None) -> None:
        super().__init__()
        signature = ParseFormJSON.with_instructions(instructions) if instructions else ParseFormJSON
        self.prog = dspy.Predict(signature)

    def forward(self, *, form_request: str):  # type: ignore[override]
        return self.prog(form_request=form_request)


class DspyFormOracle:
    """
    `FormOracle` backed by a DSPy LM.

    The LM is built on first use and reused afterwards; one instance is safe to share
    across requests.
    """

    def __init__(self, *, model: str, settings: Optional[OracleSettings] = None) -> None:
        self.model = model
        self.settings = settings or OracleSettings()
        self._lm: Any = None
        self._lock = threading.Lock()

    def _get_lm(self) -> Any:
        with self._lock:
            if self._lm is None:
                self._lm = dspy.LM(
                    model=self.model,
                    temperature=self.settings.temperature,
                    max_tokens=self.settings.max_tokens,
                    timeout=self.settings.timeout_sec,
                    num_retries=0,
                )
            return self._lm

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        program = FormParserProgram(instructions=system_prompt)
        with dspy.context(lm=self._get_lm()):
            prediction = program(form_request=user_prompt)
        return str(getattr(prediction, "form_json", "") or "")


def make_oracle_from_env() -> Optional[DspyFormOracle]:
    cfg = resolve_oracle_lm_config()
    if cfg is None:
        logger.info("form parser oracle not configured (missing provider credential)")
        return None
    return DspyFormOracle(model=cfg["model"], settings=OracleSettings.from_env())


__all__ = ["DspyFormOracle", "FormOracle", "FormParserProgram", "make_oracle_from_env"]
