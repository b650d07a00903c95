from infraflow.llm.base import LLMClient
from infraflow.llm.json_extract import iter_json_objects
from infraflow.llm.providers import (
    AnthropicClient,
    OpenAIClient,
    detect_llm_provider,
    get_llm_client,
)

__all__ = [
    "AnthropicClient",
    "LLMClient",
    "OpenAIClient",
    "detect_llm_provider",
    "get_llm_client",
    "iter_json_objects",
]
