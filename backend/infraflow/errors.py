"""
Failure taxonomy for the compiler core.

Only KnowledgeLoadError escapes the core. ProviderError is raised by the
LLM clients and converted to an IntentFallback at the intent parser;
everything else travels as a value (builder results with success=False,
IntentFallback with a FailureKind).
"""

from enum import Enum


class FailureKind(Enum):
    PARSE_FAILURE = "parse_failure"                            # model returned no usable JSON
    PROMPT_UNRECOGNIZED = "prompt_unrecognized"                # nothing applicable found anywhere
    REFERENTIAL_INTEGRITY_RISK = "referential_integrity_risk"  # inferred edge to a missing node
    PROVIDER_UNAVAILABLE = "provider_unavailable"              # no key, network error, timeout


class KnowledgeLoadError(RuntimeError):
    """The knowledge corpus could not be loaded. The process cannot serve requests."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load knowledge corpus from {path}: {reason}")


class ProviderError(Exception):
    """An LLM provider call failed (non-2xx, transport error, timeout, bad body)."""

    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message)
