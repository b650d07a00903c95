from infraflow.prompts.enricher import (
    EnrichedContext,
    build_knowledge_prompt_section,
    enrich_context,
    enrich_spec,
)
from infraflow.prompts.system_prompt import (
    INTENT_ANALYSIS_PROMPT,
    build_system_prompt,
    format_user_message,
)

__all__ = [
    "INTENT_ANALYSIS_PROMPT",
    "EnrichedContext",
    "build_knowledge_prompt_section",
    "build_system_prompt",
    "enrich_context",
    "enrich_spec",
    "format_user_message",
]
