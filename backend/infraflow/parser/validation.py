"""
Knowledge validation for builder results.

Run after a mutation has produced its final spec. Looks at the affected
node types only:
- conflicts whose other endpoint is present        -> warning (conflict)
- anti-patterns the mutation introduced            -> warning (antipattern)
- mandatory requires whose target is absent        -> suggestion (mandatory)
- other requires / recommends / enhances absences  -> suggestion (recommended)
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from infraflow.knowledge.store import KnowledgeGraphStore
from infraflow.knowledge.types import RelationshipType, Severity, Strength
from infraflow.spec.catalog import label_for_type, label_ko_for_type
from infraflow.spec.model import InfraSpec

logger = logging.getLogger(__name__)

MIN_SUGGESTION_CONFIDENCE = 0.5

CONFLICT_SEVERITY = {
    Strength.MANDATORY: Severity.CRITICAL,
    Strength.STRONG: Severity.HIGH,
    Strength.WEAK: Severity.MEDIUM,
}

# only severe anti-patterns are worth interrupting an edit for
WARN_ANTI_PATTERN_SEVERITIES = (Severity.CRITICAL, Severity.HIGH)


@dataclass
class KnowledgeWarning:
    type: str  # conflict | antipattern
    severity: str
    message: str
    message_ko: str
    components: List[str] = field(default_factory=list)
    relationship_id: Optional[str] = None
    anti_pattern_id: Optional[str] = None

    def to_dict(self) -> Dict:
        data = {
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
            "messageKo": self.message_ko,
            "components": self.components,
        }
        if self.relationship_id:
            data["relationshipId"] = self.relationship_id
        if self.anti_pattern_id:
            data["antiPatternId"] = self.anti_pattern_id
        return data


@dataclass
class KnowledgeSuggestion:
    type: str  # mandatory | recommended
    missing_component: str
    source_component: str
    reason: str
    reason_ko: str
    relationship_id: str
    confidence: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "type": self.type,
            "missingComponent": self.missing_component,
            "sourceComponent": self.source_component,
            "reason": self.reason,
            "reasonKo": self.reason_ko,
            "relationshipId": self.relationship_id,
            "confidence": self.confidence,
        }


def _conflict_warnings(spec: InfraSpec, affected: Iterable[str], store: KnowledgeGraphStore) -> List[KnowledgeWarning]:
    present = spec.node_types()
    warnings: List[KnowledgeWarning] = []
    seen = set()
    for node_type in affected:
        for rel in store.conflicts_for(node_type):
            other = rel.other(node_type)
            if other not in present or rel.id in seen:
                continue
            seen.add(rel.id)
            warnings.append(KnowledgeWarning(
                type="conflict",
                severity=CONFLICT_SEVERITY[rel.strength].value,
                message=f"{label_for_type(rel.source)} conflicts with {label_for_type(rel.target)}: {rel.reason}",
                message_ko=(
                    f"{label_ko_for_type(rel.source)}와(과) {label_ko_for_type(rel.target)}은(는) "
                    f"함께 배치하면 위험합니다: {rel.reason_ko}"
                ),
                components=[rel.source, rel.target],
                relationship_id=rel.id,
            ))
    return warnings


def _anti_pattern_warnings(
    spec: InfraSpec, before: Optional[InfraSpec], store: KnowledgeGraphStore
) -> List[KnowledgeWarning]:
    existing = {ap.id for ap in store.anti_patterns_matching(before)} if before is not None else set()
    warnings = []
    for ap in store.anti_patterns_matching(spec):
        if ap.id in existing or ap.severity not in WARN_ANTI_PATTERN_SEVERITIES:
            continue
        warnings.append(KnowledgeWarning(
            type="antipattern",
            severity=ap.severity.value,
            message=f"{ap.name} detected",
            message_ko=f"{ap.name_ko}: {ap.problem_ko} 해결: {ap.solution_ko}",
            anti_pattern_id=ap.id,
        ))
    return warnings


def _suggestions(spec: InfraSpec, affected: Iterable[str], store: KnowledgeGraphStore) -> List[KnowledgeSuggestion]:
    present = spec.node_types()
    by_missing: Dict[str, KnowledgeSuggestion] = {}
    for node_type in affected:
        for rel, needed in store.dependencies_for(node_type):
            if needed in present or rel.confidence < MIN_SUGGESTION_CONFIDENCE:
                continue
            mandatory = (
                rel.relationship_type == RelationshipType.REQUIRES
                and rel.strength == Strength.MANDATORY
            )
            suggestion = KnowledgeSuggestion(
                type="mandatory" if mandatory else "recommended",
                missing_component=needed,
                source_component=node_type,
                reason=rel.reason,
                reason_ko=rel.reason_ko,
                relationship_id=rel.id,
                confidence=rel.confidence,
            )
            current = by_missing.get(needed)
            if current is None or (mandatory and current.type != "mandatory"):
                by_missing[needed] = suggestion
    return sorted(by_missing.values(), key=lambda s: (s.type != "mandatory", -s.confidence))


def validate_with_knowledge(
    spec: InfraSpec,
    affected_types: Iterable[str],
    store: KnowledgeGraphStore,
    before: Optional[InfraSpec] = None,
) -> Tuple[Optional[List[KnowledgeWarning]], Optional[List[KnowledgeSuggestion]]]:
    """(warnings, suggestions) for the final spec; None instead of empty lists."""
    affected = sorted(set(affected_types))
    warnings = _conflict_warnings(spec, affected, store) + _anti_pattern_warnings(spec, before, store)
    suggestions = _suggestions(spec, affected, store)
    if warnings or suggestions:
        logger.debug(
            "Knowledge validation for %s: %d warnings, %d suggestions",
            affected, len(warnings), len(suggestions),
        )
    return warnings or None, suggestions or None
