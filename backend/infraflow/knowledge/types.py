"""
Knowledge graph entities.

All entities are authored offline in YAML, loaded once and never mutated.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class RelationshipType(Enum):
    REQUIRES = "requires"
    RECOMMENDS = "recommends"
    CONFLICTS = "conflicts"
    ENHANCES = "enhances"
    PROTECTS = "protects"


class Strength(Enum):
    MANDATORY = "mandatory"
    STRONG = "strong"
    WEAK = "weak"


class Direction(Enum):
    UPSTREAM = "upstream"
    DOWNSTREAM = "downstream"
    BIDIRECTIONAL = "bidirectional"


class Severity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Higher rank = more severe."""
        return {"low": 0, "medium": 1, "high": 2, "critical": 3}[self.value]


class Impact(Enum):
    SERVICE_DOWN = "service-down"
    DATA_LOSS = "data-loss"
    SECURITY_BREACH = "security-breach"
    DEGRADED = "degraded"


IMPACT_ORDER = {
    Impact.SERVICE_DOWN: 0,
    Impact.DATA_LOSS: 1,
    Impact.SECURITY_BREACH: 2,
    Impact.DEGRADED: 3,
}


@dataclass(frozen=True)
class KnowledgeSource:
    type: str  # rfc | nist | cis | owasp | vendor | user
    title: str
    url: Optional[str] = None
    section: Optional[str] = None


@dataclass(frozen=True)
class ComponentRelationship:
    id: str
    source: str
    target: str
    relationship_type: RelationshipType
    strength: Strength
    direction: Direction
    reason: str
    reason_ko: str
    confidence: float = 0.8
    tags: tuple = ()
    sources: tuple = ()

    def other(self, node_type: str) -> str:
        """The opposite endpoint type."""
        return self.target if node_type == self.source else self.source

    @property
    def primary_source_title(self) -> str:
        return self.sources[0].title if self.sources else "출처 미상"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "relationship_type": self.relationship_type.value,
            "strength": self.strength.value,
            "direction": self.direction.value,
            "reason": self.reason,
            "reason_ko": self.reason_ko,
            "confidence": self.confidence,
            "tags": list(self.tags),
            "sources": [s.__dict__ for s in self.sources],
        }


@dataclass(frozen=True, eq=False)
class AntiPattern:
    """
    A risky structural shape. `signature` is declarative data interpreted by
    knowledge.antipatterns; see that module for the supported kinds.
    """
    id: str
    name: str
    name_ko: str
    severity: Severity
    signature: Dict[str, Any]
    problem_ko: str
    impact_ko: str
    solution_ko: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "name_ko": self.name_ko,
            "severity": self.severity.value,
            "problem_ko": self.problem_ko,
            "impact_ko": self.impact_ko,
            "solution_ko": self.solution_ko,
        }


@dataclass(frozen=True, eq=False)
class FailureScenario:
    id: str
    component: str
    title: str
    title_ko: str
    scenario_ko: str
    impact: Impact
    likelihood: str  # high | medium | low
    affected_components: List[str] = field(default_factory=list)
    prevention_ko: List[str] = field(default_factory=list)
    mitigation_ko: List[str] = field(default_factory=list)
    estimated_mttr: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "component": self.component,
            "title": self.title,
            "title_ko": self.title_ko,
            "scenario_ko": self.scenario_ko,
            "impact": self.impact.value,
            "likelihood": self.likelihood,
            "affected_components": self.affected_components,
            "prevention_ko": self.prevention_ko,
            "mitigation_ko": self.mitigation_ko,
            "estimated_mttr": self.estimated_mttr,
        }


@dataclass(frozen=True)
class PatternRequirement:
    type: str
    min_count: int = 1


@dataclass(frozen=True, eq=False)
class ArchitecturePattern:
    id: str
    name: str
    name_ko: str
    description_ko: str
    required: List[PatternRequirement] = field(default_factory=list)
    optional: List[str] = field(default_factory=list)
    scalability: str = "medium"
    complexity: int = 1
    evolves_to: List[str] = field(default_factory=list)
    evolves_from: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "name_ko": self.name_ko,
            "description_ko": self.description_ko,
            "required": [{"type": r.type, "min_count": r.min_count} for r in self.required],
            "optional": self.optional,
            "scalability": self.scalability,
            "complexity": self.complexity,
            "evolves_to": self.evolves_to,
            "evolves_from": self.evolves_from,
            "tags": self.tags,
        }
