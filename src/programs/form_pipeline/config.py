"""
Environment-driven knobs for the form compiler and its oracle.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Optional

from programs.form_pipeline.lowering import DEFAULT_ATTRIBUTION_TEXT

DEFAULT_CONFIRMATION_MESSAGE = "Thank you for your submission!"
DEFAULT_ORACLE_MODEL = "llama-3.1-8b-instant"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or str(raw).strip() == "":
        return bool(default)
    return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or str(raw).strip() == "":
        return int(default)
    try:
        return int(str(raw).strip())
    except ValueError:
        return int(default)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or str(raw).strip() == "":
        return float(default)
    try:
        return float(str(raw).strip())
    except ValueError:
        return float(default)


def _env_str(*names: str, default: str = "") -> str:
    for name in names:
        raw = os.getenv(name)
        if raw is not None and str(raw).strip():
            return str(raw).strip()
    return default


def _prefixed_model(provider: str, model_name: str) -> str:
    p = str(provider or "").strip().lower()
    m = str(model_name or "").strip()
    if not p:
        return m
    if m.startswith(f"{p}/"):
        return m
    return f"{p}/{m}"


def resolve_oracle_lm_config() -> Optional[Dict[str, str]]:
    """
    LiteLLM model string (provider-prefixed) for the form parser, or None when no credential is set.

    Env resolution order:
      - DSPY_PROVIDER (groq | openai)
      - DSPY_FORM_PARSER_MODEL / DSPY_MODEL / llama-3.1-8b-instant
    """
    provider = _env_str("DSPY_PROVIDER", default="groq").lower()
    model_name = _env_str("DSPY_FORM_PARSER_MODEL", "DSPY_MODEL", default=DEFAULT_ORACLE_MODEL)

    if provider == "groq":
        if not os.getenv("GROQ_API_KEY"):
            return None
        return {"provider": "groq", "model": _prefixed_model("groq", model_name), "modelName": model_name}

    if provider == "openai":
        if not os.getenv("OPENAI_API_KEY"):
            return None
        return {"provider": "openai", "model": _prefixed_model("openai", model_name), "modelName": model_name}

    return None


@dataclass(frozen=True)
class OracleSettings:
    temperature: float = 0.4
    max_tokens: int = 1600
    timeout_sec: float = 20.0

    @classmethod
    def from_env(cls) -> "OracleSettings":
        return cls(
            temperature=_env_float("DSPY_FORM_PARSER_TEMPERATURE", _env_float("DSPY_TEMPERATURE", 0.4)),
            max_tokens=_env_int("DSPY_FORM_PARSER_MAX_TOKENS", 1600),
            timeout_sec=_env_float("DSPY_LLM_TIMEOUT_SEC", 20.0),
        )


@dataclass(frozen=True)
class CompilerConfig:
    oracle_min_fields: int = 4
    use_oracle: bool = True
    attribution_text: str = DEFAULT_ATTRIBUTION_TEXT
    default_confirmation_message: str = DEFAULT_CONFIRMATION_MESSAGE
    debug: bool = False

    @classmethod
    def from_env(cls) -> "CompilerConfig":
        return cls(
            oracle_min_fields=max(0, _env_int("FORM_ORACLE_MIN_FIELDS", 4)),
            use_oracle=_env_bool("FORM_USE_ORACLE", True),
            attribution_text=_env_str("FORM_ATTRIBUTION_TEXT", default=DEFAULT_ATTRIBUTION_TEXT),
            default_confirmation_message=_env_str(
                "FORM_DEFAULT_CONFIRMATION_MESSAGE", default=DEFAULT_CONFIRMATION_MESSAGE
            ),
            debug=_env_bool("FORM_COMPILER_DEBUG", False),
        )


__all__ = [
    "CompilerConfig",
    "DEFAULT_CONFIRMATION_MESSAGE",
    "DEFAULT_ORACLE_MODEL",
    "OracleSettings",
    "resolve_oracle_lm_config",
]
