import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from infraflow.errors import KnowledgeLoadError
from infraflow.knowledge.antipatterns import REQUIRED_KEYS
from infraflow.knowledge.types import (
    AntiPattern,
    ArchitecturePattern,
    ComponentRelationship,
    Direction,
    FailureScenario,
    Impact,
    KnowledgeSource,
    PatternRequirement,
    RelationshipType,
    Severity,
    Strength,
)
from infraflow.spec.catalog import COMPONENTS

logger = logging.getLogger(__name__)


@dataclass
class KnowledgeCorpus:
    relationships: List[ComponentRelationship] = field(default_factory=list)
    anti_patterns: List[AntiPattern] = field(default_factory=list)
    failures: List[FailureScenario] = field(default_factory=list)
    patterns: List[ArchitecturePattern] = field(default_factory=list)


class KnowledgeLoader:
    """
    Loads the knowledge corpus from YAML files.

    Directory structure:
    data/
        relationships.yaml
        antipatterns.yaml
        failures.yaml
        patterns.yaml

    Any missing file, YAML syntax error or malformed entry raises
    KnowledgeLoadError. There is no partial corpus.
    """

    FILES = ("relationships.yaml", "antipatterns.yaml", "failures.yaml", "patterns.yaml")

    def __init__(self, data_path: Optional[str] = None):
        self.data_path = data_path or self._get_default_data_path()

    def _get_default_data_path(self) -> str:
        return os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")

    def load(self) -> KnowledgeCorpus:
        corpus = KnowledgeCorpus(
            relationships=[self._relationship(r) for r in self._read("relationships.yaml", "relationships")],
            anti_patterns=[self._anti_pattern(a) for a in self._read("antipatterns.yaml", "antipatterns")],
            failures=[self._failure(f) for f in self._read("failures.yaml", "failures")],
            patterns=[self._pattern(p) for p in self._read("patterns.yaml", "patterns")],
        )
        self._check_unique_ids(corpus)
        logger.info(
            "Loaded knowledge corpus from %s: %d relationships, %d anti-patterns, %d failures, %d patterns",
            self.data_path,
            len(corpus.relationships),
            len(corpus.anti_patterns),
            len(corpus.failures),
            len(corpus.patterns),
        )
        return corpus

    # ---- File access ----

    def _read(self, filename: str, key: str) -> List[Dict[str, Any]]:
        path = os.path.join(self.data_path, filename)
        if not os.path.exists(path):
            raise KnowledgeLoadError(path, "file not found")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise KnowledgeLoadError(path, str(e)) from e

        entries = (data or {}).get(key)
        if not isinstance(entries, list):
            raise KnowledgeLoadError(path, f"top-level '{key}' list missing")
        return entries

    # ---- Entry conversion ----

    def _relationship(self, raw: Dict[str, Any]) -> ComponentRelationship:
        try:
            rel = ComponentRelationship(
                id=raw["id"],
                source=self._known_type(raw["source"], raw["id"]),
                target=self._known_type(raw["target"], raw["id"]),
                relationship_type=RelationshipType(raw["type"]),
                strength=Strength(raw["strength"]),
                direction=Direction(raw.get("direction", "downstream")),
                reason=raw["reason"],
                reason_ko=raw["reason_ko"],
                confidence=float(raw.get("confidence", 0.8)),
                tags=tuple(raw.get("tags", [])),
                sources=tuple(KnowledgeSource(**s) for s in raw.get("sources", [])),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise KnowledgeLoadError(self.data_path, f"bad relationship {raw.get('id')}: {e}") from e
        return rel

    def _anti_pattern(self, raw: Dict[str, Any]) -> AntiPattern:
        try:
            signature = dict(raw["signature"])
            kind = signature["kind"]
            if kind not in REQUIRED_KEYS:
                raise ValueError(f"unknown signature kind '{kind}'")
            missing = [k for k in REQUIRED_KEYS[kind] if k not in signature]
            if missing:
                raise ValueError(f"signature '{kind}' missing {missing}")
            return AntiPattern(
                id=raw["id"],
                name=raw["name"],
                name_ko=raw["name_ko"],
                severity=Severity(raw["severity"]),
                signature=signature,
                problem_ko=raw["problem_ko"],
                impact_ko=raw["impact_ko"],
                solution_ko=raw["solution_ko"],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise KnowledgeLoadError(self.data_path, f"bad anti-pattern {raw.get('id')}: {e}") from e

    def _failure(self, raw: Dict[str, Any]) -> FailureScenario:
        try:
            return FailureScenario(
                id=raw["id"],
                component=self._known_type(raw["component"], raw["id"]),
                title=raw["title"],
                title_ko=raw["title_ko"],
                scenario_ko=raw["scenario_ko"],
                impact=Impact(raw["impact"]),
                likelihood=raw.get("likelihood", "medium"),
                affected_components=list(raw.get("affected_components", [])),
                prevention_ko=list(raw.get("prevention_ko", [])),
                mitigation_ko=list(raw.get("mitigation_ko", [])),
                estimated_mttr=str(raw.get("estimated_mttr", "")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise KnowledgeLoadError(self.data_path, f"bad failure scenario {raw.get('id')}: {e}") from e

    def _pattern(self, raw: Dict[str, Any]) -> ArchitecturePattern:
        try:
            return ArchitecturePattern(
                id=raw["id"],
                name=raw["name"],
                name_ko=raw["name_ko"],
                description_ko=raw.get("description_ko", ""),
                required=[
                    PatternRequirement(type=self._known_type(r["type"], raw["id"]), min_count=r.get("min_count", 1))
                    for r in raw.get("required", [])
                ],
                optional=list(raw.get("optional", [])),
                scalability=raw.get("scalability", "medium"),
                complexity=int(raw.get("complexity", 1)),
                evolves_to=list(raw.get("evolves_to", [])),
                evolves_from=list(raw.get("evolves_from", [])),
                tags=list(raw.get("tags", [])),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise KnowledgeLoadError(self.data_path, f"bad pattern {raw.get('id')}: {e}") from e

    # ---- Checks ----

    @staticmethod
    def _known_type(node_type: str, entry_id: str) -> str:
        if node_type not in COMPONENTS:
            raise ValueError(f"{entry_id} references unknown component type '{node_type}'")
        return node_type

    def _check_unique_ids(self, corpus: KnowledgeCorpus) -> None:
        for name, entries in (
            ("relationship", corpus.relationships),
            ("anti-pattern", corpus.anti_patterns),
            ("failure", corpus.failures),
            ("pattern", corpus.patterns),
        ):
            seen = set()
            for entry in entries:
                if entry.id in seen:
                    raise KnowledgeLoadError(self.data_path, f"duplicate {name} id '{entry.id}'")
                seen.add(entry.id)
