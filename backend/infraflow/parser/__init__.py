"""
Prompt parsing - templates, rule-based detection, LLM intents, the spec
builder and change risk assessment.
"""

from infraflow.parser.pipeline import ParseOutcome, ParseSettings, parse_prompt, parse_prompt_local
from infraflow.parser.risk import ChangeRisk, RiskFactor, assess_change_risk
from infraflow.parser.spec_builder import (
    BuildOptions,
    BuildResult,
    apply_command,
    apply_intent,
    handle_add,
    handle_create,
    handle_modify,
)
from infraflow.parser.templates import list_templates, match_fallback_template

__all__ = [
    "BuildOptions",
    "BuildResult",
    "ChangeRisk",
    "ParseOutcome",
    "ParseSettings",
    "RiskFactor",
    "apply_command",
    "apply_intent",
    "assess_change_risk",
    "handle_add",
    "handle_create",
    "handle_modify",
    "list_templates",
    "match_fallback_template",
    "parse_prompt",
    "parse_prompt_local",
]
