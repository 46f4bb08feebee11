from __future__ import annotations

import sys
from pathlib import Path

import pytest

_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC = _REPO_ROOT / "src"
for _p in (_SRC, _REPO_ROOT):
    if _p.exists() and str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

from programs.form_pipeline.config import CompilerConfig  # noqa: E402


@pytest.fixture(autouse=True)
def _offline_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # No real LM or Tally calls from the test suite.
    monkeypatch.setenv("FORM_USE_ORACLE", "false")
    for name in ("GROQ_API_KEY", "OPENAI_API_KEY", "TALLY_API_KEY", "FORM_COMPILER_DEBUG", "FORM_ATTRIBUTION_TEXT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def no_oracle_config() -> CompilerConfig:
    return CompilerConfig(use_oracle=False)


class FakeOracle:
    """Records calls and returns a canned reply (or raises it when it is an exception)."""

    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if isinstance(self.reply, BaseException):
            raise self.reply
        return self.reply


@pytest.fixture
def fake_oracle():
    return FakeOracle
