"""
`showIf` expressions -> Tally conditional visibility rules.

Grammar: `<field reference> <operator> <value>`, e.g. `satisfaction <= 3` or
`would you recommend us? = Yes`. The reference must name a field emitted earlier in
the same form; unresolved references leave the dependent field unconditional.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Union

from programs.form_pipeline.utils import _snake_case
from schemas.tally_blocks import Condition, ConditionOperator, ConditionalRule, TallyBlock

# Multi-character tokens first so `<` never matches inside `<=`.
_OPERATOR_TOKENS = (
    ("<=", ConditionOperator.LESS_OR_EQUAL),
    (">=", ConditionOperator.GREATER_OR_EQUAL),
    ("==", ConditionOperator.EQUAL),
    ("≤", ConditionOperator.LESS_OR_EQUAL),
    ("≥", ConditionOperator.GREATER_OR_EQUAL),
    ("<", ConditionOperator.LESS_THAN),
    (">", ConditionOperator.GREATER_THAN),
    ("=", ConditionOperator.EQUAL),
)
_EQUALS_WORD = "equals"
# No negated comparison exists on the Tally side; these make the whole expression unparseable.
_UNSUPPORTED_TOKENS = ("!=", "<>", "=!")

_INT_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(r"[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?")


@dataclass(frozen=True)
class ShowIfExpression:
    field_ref: str
    operator: ConditionOperator
    value: Union[int, float, str]


def coerce_condition_value(raw: str) -> Union[int, float, str]:
    t = str(raw or "").strip().strip("\"'").strip()
    if _INT_RE.fullmatch(t):
        return int(t)
    if _FLOAT_RE.fullmatch(t):
        return float(t)
    return t


def _split_at(text: str, idx: int, width: int, op: ConditionOperator) -> Optional[ShowIfExpression]:
    ref = text[:idx].strip()
    raw_value = text[idx + width :].strip()
    if not ref or not raw_value:
        return None
    value = coerce_condition_value(raw_value)
    if value == "":
        return None
    return ShowIfExpression(field_ref=ref, operator=op, value=value)


def _is_word_at(lowered: str, idx: int, word: str) -> bool:
    if not lowered.startswith(word, idx):
        return False
    before_ok = idx == 0 or lowered[idx - 1].isspace()
    end = idx + len(word)
    after_ok = end == len(lowered) or lowered[end].isspace()
    return before_ok and after_ok


def parse_show_if(expr: Optional[str]) -> Optional[ShowIfExpression]:
    """
    Split on the first operator token, scanning left to right.
    """
    text = str(expr or "").strip()
    if not text:
        return None
    lowered = text.lower()
    for i in range(len(text)):
        if _is_word_at(lowered, i, _EQUALS_WORD):
            return _split_at(text, i, len(_EQUALS_WORD), ConditionOperator.EQUAL)
        if any(text.startswith(token, i) for token in _UNSUPPORTED_TOKENS):
            return None
        for token, op in _OPERATOR_TOKENS:
            if text.startswith(token, i):
                return _split_at(text, i, len(token), op)
    return None


def reference_keys(label: str) -> List[str]:
    """
    Lookup keys for a field label: the lowercased label and its snake_case form,
    so `would_recommend = Yes` finds a field labeled "Would recommend".
    """
    base = re.sub(r"\s+", " ", str(label or "").strip().lower())
    if not base:
        return []
    keys = [base]
    slug = _snake_case(base)
    if slug and slug != base:
        keys.append(slug)
    return keys


def register_label(label_to_id: Dict[str, str], label: str, block_id: str) -> None:
    for key in reference_keys(label):
        label_to_id[key] = block_id


def lookup_reference(label_to_id: Mapping[str, str], field_ref: str) -> Optional[str]:
    for key in reference_keys(field_ref):
        hit = label_to_id.get(key)
        if hit:
            return hit
    return None


def resolve_show_if(expr: Optional[str], label_to_id: Mapping[str, str]) -> Optional[ConditionalRule]:
    parsed = parse_show_if(expr)
    if parsed is None:
        return None
    target = lookup_reference(label_to_id, parsed.field_ref)
    if not target:
        return None
    return ConditionalRule(
        conditions=[Condition(target_field_id=target, operator=parsed.operator, value=parsed.value)]
    )


def attach_rule(block: TallyBlock, rule: ConditionalRule) -> None:
    # Merge: the rest of the payload stays as lowered.
    block.payload = block.payload.model_copy(update={"conditional_logic": rule})


__all__ = [
    "ShowIfExpression",
    "attach_rule",
    "coerce_condition_value",
    "lookup_reference",
    "parse_show_if",
    "reference_keys",
    "register_label",
    "resolve_show_if",
]
