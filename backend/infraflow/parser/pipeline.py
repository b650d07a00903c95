"""
Parse pipeline - LLM intent first, local rule-based parsing as fallback.

    settings = ParseSettings.from_env()
    outcome = parse_prompt("3티어 웹 아키텍처", None, settings)
    outcome.result.spec        # InfraSpec
    outcome.knowledge_section  # feed into settings for the next turn

The LLM path is taken only when a provider key is configured. Any
IntentFallback (no key, provider error, unparseable answer) is treated the
same way: the prompt goes through the local pipeline, which always
terminates with a result.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from infraflow.errors import FailureKind
from infraflow.knowledge.store import KnowledgeGraphStore, get_knowledge_store
from infraflow.llm.base import LLMClient
from infraflow.llm.providers import detect_llm_provider
from infraflow.parser.explanation import build_explanation
from infraflow.parser.intent import IntentOk
from infraflow.parser.intent_parser import analyze_intent
from infraflow.parser.spec_builder import BuildOptions, BuildResult, apply_command, apply_intent, handle_create
from infraflow.prompts.enricher import build_knowledge_prompt_section, enrich_spec
from infraflow.spec.model import InfraSpec

logger = logging.getLogger(__name__)


@dataclass
class ParseSettings:
    provider: Optional[str] = None
    api_key: Optional[str] = None
    model: Optional[str] = None
    use_llm: bool = True
    # guidance rendered from the previous turn
    knowledge_section: str = ""
    options: BuildOptions = field(default_factory=BuildOptions)

    @classmethod
    def from_env(cls, **overrides: Any) -> "ParseSettings":
        detected = detect_llm_provider() or {}
        settings = cls(provider=detected.get("provider"), api_key=detected.get("api_key"))
        for key, value in overrides.items():
            setattr(settings, key, value)
        return settings

    @property
    def has_llm(self) -> bool:
        return self.use_llm and bool(self.provider and self.api_key)


@dataclass
class ParseOutcome:
    result: BuildResult
    used_llm: bool = False
    fallback_reason: Optional[FailureKind] = None
    llm_error: Optional[str] = None
    knowledge_section: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = self.result.to_dict()
        data["usedLlm"] = self.used_llm
        if self.fallback_reason is not None:
            data["fallbackReason"] = self.fallback_reason.value
        return data


def parse_prompt_local(
    prompt: str,
    current_spec: Optional[InfraSpec] = None,
    options: Optional[BuildOptions] = None,
    store: Optional[KnowledgeGraphStore] = None,
) -> BuildResult:
    """
    Rule-based parsing only.

    Without a current spec: keyword template, template id, component
    detection, then the fallback template (success=False, is_fallback).
    With one: the command detector picks the edit handler.
    """
    if current_spec is None or not current_spec.nodes:
        result = handle_create(prompt, options, store)
    else:
        result = apply_command(prompt, current_spec, options, store)
    if result.success and result.explanation is None and result.command_type == "create":
        result.explanation = build_explanation(result.spec, result.template_used)
    return result


def parse_prompt(
    prompt: str,
    current_spec: Optional[InfraSpec] = None,
    settings: Optional[ParseSettings] = None,
    store: Optional[KnowledgeGraphStore] = None,
    client: Optional[LLMClient] = None,
) -> ParseOutcome:
    """Parse one prompt against the current spec and prepare the next turn's guidance."""
    settings = settings or ParseSettings.from_env()
    store = store or get_knowledge_store()

    used_llm = False
    fallback_reason: Optional[FailureKind] = None
    llm_error: Optional[str] = None
    result: Optional[BuildResult] = None

    if client is not None or settings.has_llm:
        outcome = analyze_intent(
            prompt,
            current_spec,
            settings.provider,
            settings.api_key,
            model=settings.model,
            knowledge_section=settings.knowledge_section,
            client=client,
        )
        if isinstance(outcome, IntentOk):
            used_llm = True
            result = apply_intent(outcome.intent, prompt, current_spec, settings.options, store)
        else:
            fallback_reason = outcome.reason
            llm_error = outcome.error
            logger.warning("Falling back to local parser: %s (%s)", outcome.reason.value, outcome.error)
    else:
        fallback_reason = FailureKind.PROVIDER_UNAVAILABLE

    if result is None:
        result = parse_prompt_local(prompt, current_spec, settings.options, store)

    if not result.success and fallback_reason is None and result.is_fallback:
        fallback_reason = FailureKind.PROMPT_UNRECOGNIZED

    final_spec = result.spec if result.success else current_spec
    section = build_knowledge_prompt_section(enrich_spec(final_spec, store)) if final_spec else ""

    logger.info(
        "Parsed prompt: command=%s success=%s llm=%s",
        result.command_type, result.success, used_llm,
    )
    return ParseOutcome(
        result=result,
        used_llm=used_llm,
        fallback_reason=fallback_reason,
        llm_error=llm_error,
        knowledge_section=section,
    )
