"""
Knowledge graph - relationships, anti-patterns, failure scenarios and
named architecture patterns over component types.
"""

from infraflow.knowledge.store import (
    KnowledgeGraphStore,
    get_knowledge_store,
    load_knowledge_store,
)
from infraflow.knowledge.types import (
    AntiPattern,
    ArchitecturePattern,
    ComponentRelationship,
    Direction,
    FailureScenario,
    Impact,
    RelationshipType,
    Severity,
    Strength,
)

__all__ = [
    "AntiPattern",
    "ArchitecturePattern",
    "ComponentRelationship",
    "Direction",
    "FailureScenario",
    "Impact",
    "KnowledgeGraphStore",
    "RelationshipType",
    "Severity",
    "Strength",
    "get_knowledge_store",
    "load_knowledge_store",
]
