"""
IntentAnalysis - structured intent extracted from a prompt by the LLM.

The LLM-primary / rule-based-fallback split is modelled as a tagged
outcome: IntentOk carries a validated intent, IntentFallback carries the
FailureKind that sent the caller down the local path.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from infraflow.errors import FailureKind
from infraflow.llm.json_extract import iter_json_objects
from infraflow.spec.catalog import COMPONENTS

logger = logging.getLogger(__name__)

Action = Literal["create", "add", "remove", "modify", "connect", "disconnect", "query"]
PositionType = Literal["before", "after", "between", "start", "end"]


class IntentComponent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    label: Optional[str] = None
    zone: Optional[str] = None
    description: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("component type must be a string")
        v = v.strip().lower().replace("_", "-").replace(" ", "-")
        if v not in COMPONENTS:
            raise ValueError(f"unknown component type '{v}'")
        return v


class IntentPosition(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: PositionType
    reference: Optional[str] = None
    reference_second: Optional[str] = Field(default=None, alias="referenceSecond")


class IntentAnalysis(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    action: Action = Field(validation_alias=AliasChoices("action", "intent"))
    confidence: float = 0.5
    components: List[IntentComponent] = Field(default_factory=list)
    position: Optional[IntentPosition] = None
    reasoning: Optional[str] = None

    @field_validator("action", mode="before")
    @classmethod
    def _normalize_action(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: Any) -> float:
        if v is None:
            return 0.5
        try:
            value = float(v)
        except (TypeError, ValueError):
            logger.debug("Ignoring non-numeric intent confidence: %r", v)
            return 0.5
        if math.isnan(value):
            return 0.5
        return min(1.0, max(0.0, value))

    @field_validator("components", mode="before")
    @classmethod
    def _drop_unknown_components(cls, v: Any) -> List[Any]:
        """Keep only components whose type is in the catalog."""
        if not isinstance(v, list):
            return []
        kept = []
        for item in v:
            if isinstance(item, str):
                item = {"type": item}
            try:
                kept.append(IntentComponent.model_validate(item))
            except ValidationError:
                logger.debug("Dropping unknown intent component: %r", item)
        return kept

    @field_validator("position", mode="before")
    @classmethod
    def _lenient_position(cls, v: Any) -> Any:
        if v is None:
            return None
        try:
            return IntentPosition.model_validate(v)
        except ValidationError:
            return None

    @property
    def component_types(self) -> List[str]:
        return [c.type for c in self.components]

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class IntentOk:
    intent: IntentAnalysis
    raw_response: str = ""

    @property
    def error(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class IntentFallback:
    reason: FailureKind
    raw_response: str = ""
    error: Optional[str] = None

    @property
    def intent(self) -> None:
        return None


IntentOutcome = Union[IntentOk, IntentFallback]


def parse_intent_response(content: Optional[str]) -> Optional[IntentAnalysis]:
    """
    First JSON object in `content` that validates as an IntentAnalysis.

    The response may be bare JSON, fenced (with or without a language tag)
    or embedded in prose. Returns None instead of raising.
    """
    for candidate in iter_json_objects(content or ""):
        try:
            return IntentAnalysis.model_validate(candidate)
        except ValidationError as e:
            logger.debug("Candidate JSON is not an intent: %s", e.errors()[:1])
        except (TypeError, ValueError) as e:
            logger.debug("Candidate JSON is not an intent: %s", e)
    return None
