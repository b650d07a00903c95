"""
Intent Parser - one LLM round-trip turning a prompt into an IntentAnalysis.

Never raises: a missing key, a transport error, a non-2xx status or an
unusable body all come back as IntentFallback.
"""

import logging
from typing import Optional

from infraflow.errors import FailureKind, ProviderError
from infraflow.llm.base import LLMClient
from infraflow.llm.providers import get_llm_client
from infraflow.parser.intent import IntentFallback, IntentOk, IntentOutcome, parse_intent_response
from infraflow.prompts.system_prompt import build_system_prompt, format_user_message
from infraflow.spec.context import build_context_from_spec
from infraflow.spec.model import InfraSpec

logger = logging.getLogger(__name__)

PARSE_FAILURE_MESSAGE = "Failed to parse intent from LLM response"


def analyze_intent(
    prompt: str,
    context_spec: Optional[InfraSpec],
    provider: Optional[str],
    api_key: Optional[str],
    model: Optional[str] = None,
    knowledge_section: str = "",
    client: Optional[LLMClient] = None,
) -> IntentOutcome:
    """
    Ask the LLM for the intent behind `prompt`.

    `knowledge_section` comes from the previous turn's enrichment and is
    appended to the base system prompt. No retry is attempted.
    """
    if client is None:
        if not provider or not api_key:
            return IntentFallback(FailureKind.PROVIDER_UNAVAILABLE, error="No LLM API key configured")
        try:
            client = get_llm_client(provider, api_key, model)
        except ProviderError as e:
            return IntentFallback(FailureKind.PROVIDER_UNAVAILABLE, error=str(e))

    context = build_context_from_spec(context_spec)
    messages = [{"role": "user", "content": format_user_message(context, prompt)}]

    try:
        raw = client.generate(messages, system=build_system_prompt(knowledge_section))
    except ProviderError as e:
        logger.warning("LLM call failed (%s): %s", client.provider, e)
        return IntentFallback(FailureKind.PROVIDER_UNAVAILABLE, error=str(e))

    intent = parse_intent_response(raw)
    if intent is None:
        logger.warning("LLM response had no usable intent JSON")
        return IntentFallback(FailureKind.PARSE_FAILURE, raw_response=raw, error=PARSE_FAILURE_MESSAGE)

    logger.debug("Intent: %s (%.2f) %s", intent.action, intent.confidence, intent.component_types)
    return IntentOk(intent=intent, raw_response=raw)
