"""
Knowledge Graph Store - read-only, process-wide corpus with lookups.

Relationships are indexed as adjacency maps keyed by component type, so
every lookup is a dict access returning a pre-built tuple. The store is
never mutated after construction and is safe for concurrent reads.
"""

import logging
import threading
from collections import defaultdict
from typing import Dict, List, Optional, Tuple, Union

from infraflow.knowledge.antipatterns import detect_anti_patterns
from infraflow.knowledge.loader import KnowledgeCorpus, KnowledgeLoader
from infraflow.knowledge.types import (
    IMPACT_ORDER,
    AntiPattern,
    ArchitecturePattern,
    ComponentRelationship,
    Direction,
    FailureScenario,
    RelationshipType,
    Strength,
)
from infraflow.spec.context import DiagramContext, build_context_from_spec
from infraflow.spec.model import InfraSpec

logger = logging.getLogger(__name__)

# (relationship, type that would satisfy it)
Dependency = Tuple[ComponentRelationship, str]

_DEPENDENCY_TYPES = (RelationshipType.REQUIRES, RelationshipType.RECOMMENDS)


class KnowledgeGraphStore:
    """
    Usage:
        store = get_knowledge_store()
        store.conflicts_for("db-server")
        store.anti_patterns_matching(spec)
    """

    def __init__(self, corpus: KnowledgeCorpus):
        self._relationships: Tuple[ComponentRelationship, ...] = tuple(corpus.relationships)
        self._anti_patterns: Tuple[AntiPattern, ...] = tuple(corpus.anti_patterns)
        self._failures: Tuple[FailureScenario, ...] = tuple(corpus.failures)
        self._patterns: Tuple[ArchitecturePattern, ...] = tuple(corpus.patterns)

        by_type: Dict[str, List[ComponentRelationship]] = defaultdict(list)
        conflicts: Dict[str, List[ComponentRelationship]] = defaultdict(list)
        dependencies: Dict[str, List[Dependency]] = defaultdict(list)

        for rel in self._relationships:
            by_type[rel.source].append(rel)
            by_type[rel.target].append(rel)

            if rel.relationship_type == RelationshipType.CONFLICTS:
                conflicts[rel.source].append(rel)
                conflicts[rel.target].append(rel)
            elif rel.relationship_type in _DEPENDENCY_TYPES:
                dependencies[rel.source].append((rel, rel.target))
                if rel.direction == Direction.BIDIRECTIONAL:
                    dependencies[rel.target].append((rel, rel.source))
            elif rel.relationship_type == RelationshipType.ENHANCES:
                # the enhanced component benefits from its enhancer
                dependencies[rel.target].append((rel, rel.source))

        failures: Dict[str, List[FailureScenario]] = defaultdict(list)
        for failure in self._failures:
            failures[failure.component].append(failure)

        self._by_type = {k: tuple(v) for k, v in by_type.items()}
        self._conflicts = {k: tuple(v) for k, v in conflicts.items()}
        self._dependencies = {k: tuple(v) for k, v in dependencies.items()}
        self._failures_by_type = {
            k: tuple(sorted(v, key=lambda f: IMPACT_ORDER[f.impact])) for k, v in failures.items()
        }
        self._anti_pattern_index = {ap.id: ap for ap in self._anti_patterns}

    # ---- Corpus ----

    @property
    def relationships(self) -> Tuple[ComponentRelationship, ...]:
        return self._relationships

    @property
    def anti_patterns(self) -> Tuple[AntiPattern, ...]:
        return self._anti_patterns

    @property
    def failures(self) -> Tuple[FailureScenario, ...]:
        return self._failures

    @property
    def patterns(self) -> Tuple[ArchitecturePattern, ...]:
        return self._patterns

    # ---- Lookups ----

    def relationships_for(self, node_type: str) -> Tuple[ComponentRelationship, ...]:
        """Every relationship with `node_type` at either end."""
        return self._by_type.get(node_type, ())

    def conflicts_for(self, node_type: str) -> Tuple[ComponentRelationship, ...]:
        return self._conflicts.get(node_type, ())

    def dependencies_for(self, node_type: str) -> Tuple[Dependency, ...]:
        """requires/recommends/enhances entries `node_type` depends on, with the needed type."""
        return self._dependencies.get(node_type, ())

    def mandatory_dependencies_for(self, node_type: str) -> List[str]:
        return [
            needed for rel, needed in self.dependencies_for(node_type)
            if rel.relationship_type == RelationshipType.REQUIRES
            and rel.strength == Strength.MANDATORY
        ]

    def failures_for(self, node_type: str) -> Tuple[FailureScenario, ...]:
        return self._failures_by_type.get(node_type, ())

    def get_anti_pattern(self, anti_pattern_id: str) -> Optional[AntiPattern]:
        return self._anti_pattern_index.get(anti_pattern_id)

    def anti_patterns_matching(self, spec: Union[InfraSpec, DiagramContext, None]) -> List[AntiPattern]:
        ctx = spec if isinstance(spec, DiagramContext) else build_context_from_spec(spec)
        return detect_anti_patterns(list(self._anti_patterns), ctx)

    def detect_patterns(self, spec: Union[InfraSpec, DiagramContext, None]) -> List[ArchitecturePattern]:
        """Named patterns whose required components are all present."""
        ctx = spec if isinstance(spec, DiagramContext) else build_context_from_spec(spec)
        counts = ctx.type_counts()
        return [
            p for p in self._patterns
            if p.required and all(counts.get(r.type, 0) >= r.min_count for r in p.required)
        ]

    def stats(self) -> Dict[str, int]:
        by_kind: Dict[str, int] = defaultdict(int)
        for rel in self._relationships:
            by_kind[rel.relationship_type.value] += 1
        return {
            "relationships": len(self._relationships),
            "anti_patterns": len(self._anti_patterns),
            "failures": len(self._failures),
            "patterns": len(self._patterns),
            **{f"relationships_{k}": v for k, v in by_kind.items()},
        }


# Global store instance
_global_store: Optional[KnowledgeGraphStore] = None
_store_lock = threading.Lock()


def load_knowledge_store(data_path: Optional[str] = None) -> KnowledgeGraphStore:
    """Load (or reload) the global store. Raises KnowledgeLoadError on failure."""
    global _global_store
    store = KnowledgeGraphStore(KnowledgeLoader(data_path).load())
    with _store_lock:
        _global_store = store
    return store


def get_knowledge_store() -> KnowledgeGraphStore:
    """Get or create the global knowledge store"""
    global _global_store
    if _global_store is None:
        with _store_lock:
            if _global_store is None:
                from infraflow.config import KNOWLEDGE_DATA_PATH
                logger.info("Creating global KnowledgeGraphStore")
                _global_store = KnowledgeGraphStore(KnowledgeLoader(KNOWLEDGE_DATA_PATH or None).load())
    return _global_store
