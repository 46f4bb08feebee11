"""
Form compiler orchestrator (prompt -> Tally blocks).

Stages, first success wins:
  1. structured definition (embedded JSON)
  2. oracle (DSPy LM), accepted only at or above `oracle_min_fields` fields
  3. heuristic structured-text parser (+ canned domain templates)
  4. keyword field detector (always succeeds)

Stages 1-3 produce a `ParsedForm` that is lowered here; stage 4 emits blocks directly.
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from programs.form_parser.program import FormOracle, make_oracle_from_env
from programs.form_pipeline.config import CompilerConfig
from programs.form_pipeline.keyword_fields import extract_title, parse_by_keyword
from programs.form_pipeline.lowering import lower_form
from programs.form_pipeline.oracle_adapter import (
    OracleError,
    OracleUnavailableError,
    meets_field_threshold,
    parse_with_oracle,
)
from programs.form_pipeline.structured_definition import extract_structured_definition
from programs.form_pipeline.structured_text import parse_structured_sections
from programs.form_pipeline.utils import _truncate
from schemas.form_model import FormSettings, ParsedForm
from schemas.tally_blocks import TallyBlock, blocks_to_api

logger = logging.getLogger(__name__)

CompileSource = Literal["structured", "oracle", "heuristic", "keyword"]


class CompiledForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    blocks: List[TallyBlock]
    source: CompileSource
    parsed_form: Optional[ParsedForm] = Field(default=None, alias="parsedForm")
    confirmation_message: Optional[str] = Field(default=None, alias="confirmationMessage")
    redirect_url: Optional[str] = Field(default=None, alias="redirectUrl")
    settings: Optional[FormSettings] = None
    unresolved_conditions: List[str] = Field(default_factory=list, alias="unresolvedConditions")
    request_id: str = Field(..., alias="requestId")

    def to_api(self) -> Dict[str, Any]:
        out = self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"blocks"})
        out["blocks"] = blocks_to_api(self.blocks)
        return out


@functools.lru_cache(maxsize=1)
def default_oracle() -> Optional[FormOracle]:
    """
    Process-wide oracle built from env on first use.
    """
    return make_oracle_from_env()


class FormCompiler:
    def __init__(self, *, oracle: Optional[FormOracle] = None, config: Optional[CompilerConfig] = None) -> None:
        self.oracle = oracle
        self.config = config or CompilerConfig.from_env()

    def _trace(self, request_id: str, stage: str, detail: str = "") -> None:
        if self.config.debug:
            print(f"[FormCompiler] requestId={request_id} stage={stage} {detail}".rstrip(), flush=True)

    def _from_parsed(self, parsed: ParsedForm, *, source: CompileSource, request_id: str) -> CompiledForm:
        lowered = lower_form(parsed, attribution_text=self.config.attribution_text)
        if lowered.unresolved_conditions:
            logger.info(
                "requestId=%s unresolved showIf references left unconditional: %s",
                request_id,
                lowered.unresolved_conditions,
            )
        settings = parsed.settings
        return CompiledForm(
            title=parsed.title,
            blocks=lowered.blocks,
            source=source,
            parsed_form=parsed,
            confirmation_message=settings.confirmation_message if settings else None,
            redirect_url=settings.redirect_url if settings else None,
            settings=settings,
            unresolved_conditions=lowered.unresolved_conditions,
            request_id=request_id,
        )

    def _try_oracle(self, prompt: str, request_id: str) -> Optional[ParsedForm]:
        if not self.config.use_oracle:
            self._trace(request_id, "oracle", "skipped=disabled")
            return None
        try:
            parsed = parse_with_oracle(prompt, self.oracle)
        except OracleUnavailableError as e:
            logger.warning("requestId=%s oracle unavailable: %s", request_id, e)
            self._trace(request_id, "oracle", "result=unavailable")
            return None
        except OracleError as e:
            logger.warning("requestId=%s oracle failed: %s", request_id, e)
            self._trace(request_id, "oracle", f"result=error error={_truncate(str(e), 160)}")
            return None

        if not meets_field_threshold(parsed, self.config.oracle_min_fields):
            logger.warning(
                "requestId=%s oracle result below threshold (%s < %s fields)",
                request_id,
                parsed.field_count(),
                self.config.oracle_min_fields,
            )
            self._trace(request_id, "oracle", f"result=low_confidence fields={parsed.field_count()}")
            return None
        return parsed

    def compile(self, prompt: str) -> CompiledForm:
        request_id = f"form_compile_{int(time.time() * 1000)}"
        text = str(prompt or "")
        self._trace(request_id, "start", f"promptChars={len(text)}")

        parsed = extract_structured_definition(text)
        if parsed is not None:
            self._trace(request_id, "structured", f"fields={parsed.field_count()}")
            return self._from_parsed(parsed, source="structured", request_id=request_id)
        logger.debug("requestId=%s no structured definition", request_id)

        parsed = self._try_oracle(text, request_id)
        if parsed is not None:
            self._trace(request_id, "oracle", f"fields={parsed.field_count()}")
            return self._from_parsed(parsed, source="oracle", request_id=request_id)

        parsed = parse_structured_sections(text)
        if parsed is not None:
            self._trace(request_id, "heuristic", f"sections={len(parsed.sections)} fields={parsed.field_count()}")
            return self._from_parsed(parsed, source="heuristic", request_id=request_id)
        logger.info("requestId=%s heuristic parser found nothing; using keyword detector", request_id)

        title = extract_title(text)
        blocks = parse_by_keyword(text.lower(), title, attribution_text=self.config.attribution_text)
        self._trace(request_id, "keyword", f"blocks={len(blocks)}")
        return CompiledForm(title=title, blocks=blocks, source="keyword", request_id=request_id)


def compile_prompt(
    prompt: str,
    *,
    oracle: Optional[FormOracle] = None,
    config: Optional[CompilerConfig] = None,
) -> CompiledForm:
    cfg = config or CompilerConfig.from_env()
    if oracle is None and cfg.use_oracle:
        oracle = default_oracle()
    return FormCompiler(oracle=oracle, config=cfg).compile(prompt)


__all__ = ["CompiledForm", "CompileSource", "FormCompiler", "compile_prompt", "default_oracle"]
