"""
LLM provider clients - Anthropic Messages API and OpenAI Chat Completions.

Both clients raise ProviderError for anything other than a usable text
response; callers decide how to fall back.
"""

import logging
import re
from typing import Dict, List, Optional

import requests

from infraflow import config
from infraflow.errors import ProviderError
from infraflow.llm.base import LLMClient

logger = logging.getLogger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def _strip_fences(content: str) -> str:
    content = re.sub(r"^```(?:json)?\s*", "", content.strip())
    return re.sub(r"\s*```$", "", content.strip())


def _post(provider_name: str, url: str, headers: Dict[str, str], payload: Dict, timeout: float) -> Dict:
    try:
        response = requests.post(url, headers=headers, json=payload, timeout=timeout)
    except requests.Timeout as e:
        raise ProviderError(f"{provider_name} API timeout after {timeout:.0f}s") from e
    except requests.RequestException as e:
        raise ProviderError(f"{provider_name} API unreachable: {e}") from e

    if not response.ok:
        raise ProviderError(
            f"{provider_name} API Error: {response.status_code} - {response.text}",
            status_code=response.status_code,
        )
    try:
        return response.json()
    except ValueError as e:
        raise ProviderError(f"{provider_name} API returned a non-JSON body") from e


class AnthropicClient(LLMClient):
    provider = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        max_tokens: int = config.LLM_MAX_TOKENS,
        timeout_ms: int = config.LLM_TIMEOUT_MS,
    ):
        self.api_key = api_key
        self.model = model or config.ANTHROPIC_MODEL
        self.max_tokens = max_tokens
        self.timeout = timeout_ms / 1000

    def generate(self, messages: List[Dict], system: str = "") -> str:
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": messages,
        }
        if system:
            payload["system"] = system

        data = _post(
            "Anthropic",
            ANTHROPIC_URL,
            {
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
            payload,
            self.timeout,
        )
        try:
            content = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError("Anthropic API response has no text content") from e
        return _strip_fences(content)


class OpenAIClient(LLMClient):
    provider = "openai"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        max_tokens: int = config.LLM_MAX_TOKENS,
        timeout_ms: int = config.LLM_TIMEOUT_MS,
        temperature: float = 0.3,
    ):
        self.api_key = api_key
        self.model = model or config.OPENAI_MODEL
        self.max_tokens = max_tokens
        self.timeout = timeout_ms / 1000
        self.temperature = temperature

    def generate(self, messages: List[Dict], system: str = "") -> str:
        chat = [{"role": "system", "content": system}, *messages] if system else list(messages)
        data = _post(
            "OpenAI",
            OPENAI_URL,
            {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            {
                "model": self.model,
                "messages": chat,
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
            },
            self.timeout,
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError("OpenAI API response has no message content") from e
        return _strip_fences(content or "")


def detect_llm_provider() -> Optional[Dict[str, str]]:
    """
    Pick a provider from configuration.

    LLM_PROVIDER forces a choice when its key is set; otherwise OpenAI is
    preferred over Anthropic. None means no key is configured, which is a
    normal condition that routes every prompt to the local parser.
    """
    keys = {"openai": config.OPENAI_API_KEY, "anthropic": config.ANTHROPIC_API_KEY}
    forced = config.LLM_PROVIDER.lower()
    if forced in keys and keys[forced]:
        return {"provider": forced, "api_key": keys[forced]}
    for provider in ("openai", "anthropic"):
        if keys[provider]:
            return {"provider": provider, "api_key": keys[provider]}
    return None


def get_llm_client(provider: str, api_key: str, model: Optional[str] = None) -> LLMClient:
    model = model or config.LLM_MODEL or None
    if provider == "anthropic":
        return AnthropicClient(api_key=api_key, model=model)
    if provider == "openai":
        return OpenAIClient(api_key=api_key, model=model)
    raise ProviderError(f"Unknown LLM provider '{provider}'")
