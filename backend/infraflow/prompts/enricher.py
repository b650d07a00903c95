"""
Knowledge Prompt Enricher

Cross-references a diagram's adjacency view with the knowledge graph and
renders the findings as a guidance block. The block is appended to the
intent-analysis system prompt on the next turn (see build_system_prompt).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from infraflow.knowledge.antipatterns import detect_anti_patterns
from infraflow.knowledge.types import (
    IMPACT_ORDER,
    AntiPattern,
    ComponentRelationship,
    Direction,
    FailureScenario,
    Impact,
    RelationshipType,
    Severity,
)
from infraflow.spec.context import DiagramContext, build_context_from_spec
from infraflow.spec.model import InfraSpec

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.5
OFFICIAL_CONFIDENCE_THRESHOLD = 0.85
MAX_RISKS = 5

SEVERITY_ICONS = {
    Severity.CRITICAL: "🔴",
    Severity.HIGH: "🟠",
    Severity.MEDIUM: "🟡",
    Severity.LOW: "🟡",
}
IMPACT_ICONS = {
    Impact.SERVICE_DOWN: "🔴",
    Impact.DATA_LOSS: "🟣",
    Impact.SECURITY_BREACH: "🔶",
    Impact.DEGRADED: "🟡",
}


@dataclass
class EnrichedContext:
    relationships: List[ComponentRelationship] = field(default_factory=list)
    conflicts: List[ComponentRelationship] = field(default_factory=list)
    violations: List[AntiPattern] = field(default_factory=list)
    suggestions: List[ComponentRelationship] = field(default_factory=list)
    risks: List[FailureScenario] = field(default_factory=list)

    def has_findings(self) -> bool:
        return bool(self.conflicts or self.violations or self.suggestions or self.risks)

    def to_dict(self) -> Dict:
        return {
            "relationships": [r.to_dict() for r in self.relationships],
            "conflicts": [r.to_dict() for r in self.conflicts],
            "violations": [v.to_dict() for v in self.violations],
            "suggestions": [s.to_dict() for s in self.suggestions],
            "risks": [r.to_dict() for r in self.risks],
        }


# ============================================================
# ENRICH
# ============================================================

def enrich_context(
    context: DiagramContext,
    relationships: Sequence[ComponentRelationship],
    spec: Optional[InfraSpec] = None,
    anti_patterns: Optional[Sequence[AntiPattern]] = None,
    failure_scenarios: Optional[Sequence[FailureScenario]] = None,
) -> EnrichedContext:
    """
    Analyze a diagram and return the knowledge relevant to it.

    Anti-patterns are matched against `spec` when given (the final state),
    otherwise against `context`.
    """
    present = context.types()
    usable = [r for r in relationships if r.confidence >= DEFAULT_MIN_CONFIDENCE]

    relevant = [
        r for r in usable
        if r.relationship_type != RelationshipType.CONFLICTS
        and r.source in present and r.target in present
    ]
    conflicts = [
        r for r in usable
        if r.relationship_type == RelationshipType.CONFLICTS
        and r.source in present and r.target in present
    ]

    violations: List[AntiPattern] = []
    if anti_patterns:
        view = build_context_from_spec(spec) if spec is not None else context
        violations = sorted(
            detect_anti_patterns(list(anti_patterns), view),
            key=lambda ap: -ap.severity.rank,
        )

    risks = sorted(
        (f for f in failure_scenarios or () if f.component in present),
        key=lambda f: IMPACT_ORDER[f.impact],
    )

    enriched = EnrichedContext(
        relationships=_dedup(relevant),
        conflicts=_dedup(conflicts),
        violations=violations,
        suggestions=_sort_suggestions(_dedup(_find_suggestions(present, usable))),
        risks=risks,
    )
    logger.debug(
        "Enriched context: %d relationships, %d conflicts, %d violations, %d suggestions, %d risks",
        len(enriched.relationships),
        len(enriched.conflicts),
        len(enriched.violations),
        len(enriched.suggestions),
        len(enriched.risks),
    )
    return enriched


def _find_suggestions(present, relationships) -> List[ComponentRelationship]:
    suggestions = []
    for rel in relationships:
        if rel.relationship_type not in (RelationshipType.REQUIRES, RelationshipType.RECOMMENDS):
            continue
        if rel.source in present and rel.target not in present:
            suggestions.append(rel)
        elif (
            rel.direction == Direction.BIDIRECTIONAL
            and rel.target in present
            and rel.source not in present
        ):
            suggestions.append(rel)
    return suggestions


def _sort_suggestions(suggestions: List[ComponentRelationship]) -> List[ComponentRelationship]:
    return sorted(
        suggestions,
        key=lambda r: (r.relationship_type != RelationshipType.REQUIRES, -r.confidence),
    )


def _dedup(entries: List[ComponentRelationship]) -> List[ComponentRelationship]:
    seen = set()
    result = []
    for entry in entries:
        if entry.id not in seen:
            seen.add(entry.id)
            result.append(entry)
    return result


# ============================================================
# RENDER
# ============================================================

def build_knowledge_prompt_section(
    enriched: EnrichedContext,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> str:
    """
    Render the guidance block. Empty string when there are no violations,
    suggestions or risks.
    """
    if not enriched.has_findings():
        return ""

    entries = [*enriched.relationships, *enriched.suggestions]
    official = [e for e in entries if e.confidence >= OFFICIAL_CONFIDENCE_THRESHOLD]
    verified = [e for e in entries if min_confidence <= e.confidence < OFFICIAL_CONFIDENCE_THRESHOLD]
    user_level = [e for e in entries if e.confidence < min_confidence]

    sections = ["## 인프라 지식 기반 가이드\n"]

    if official:
        sections.append("### 공식 표준 (반드시 준수)")
        sections.extend(f"- {e.reason_ko} [{e.primary_source_title}]" for e in official)
        sections.append("")

    if verified:
        sections.append("### 검증된 실무 가이드")
        sections.extend(f"- {e.reason_ko} (신뢰도: {round(e.confidence * 100)}%)" for e in verified)
        sections.append("")

    if user_level:
        sections.append("### 참고: 사용자 기여 (미검증)")
        sections.extend(f"- {e.reason_ko} ⚠️ 미검증" for e in user_level)
        sections.append("")

    violation_lines = _violation_lines(enriched)
    if violation_lines:
        sections.append("### ⛔ 주의사항 및 위반 감지")
        sections.extend(violation_lines)
        sections.append("")

    risk_lines = _risk_lines(enriched)
    if risk_lines:
        sections.append("### 💥 잠재적 장애 시나리오")
        sections.extend(risk_lines)
        sections.append("")

    sections.append("### 우선순위 규칙")
    sections.append("1. 공식 표준 출처의 가이드를 최우선으로 적용하세요.")
    sections.append("2. 검증된 실무 가이드는 공식 표준과 충돌하지 않는 범위에서 참고하세요.")
    sections.append("3. 미검증 사용자 기여 내용은 참고만 하고, 의사결정의 근거로 사용하지 마세요.")
    return "\n".join(sections)


def _violation_lines(enriched: EnrichedContext) -> List[str]:
    lines = []
    for ap in enriched.violations:
        lines.append(f"- {SEVERITY_ICONS[ap.severity]} [{ap.severity.value.upper()}] {ap.name_ko}: {ap.problem_ko}")
        lines.append(f"  해결: {ap.solution_ko}")
    for rel in enriched.conflicts:
        lines.append(f'- ⚠️ 충돌: "{rel.source}" ↔ "{rel.target}": {rel.reason_ko}')
    for rel in enriched.suggestions:
        if rel.relationship_type == RelationshipType.REQUIRES:
            lines.append(f'- 🔴 필수 누락: "{rel.source}"은(는) "{rel.target}"이(가) 필요합니다: {rel.reason_ko}')
    return lines


def _risk_lines(enriched: EnrichedContext) -> List[str]:
    lines = []
    for risk in enriched.risks[:MAX_RISKS]:
        lines.append(
            f"- {IMPACT_ICONS[risk.impact]} [{risk.impact.value}] {risk.title_ko} (MTTR: {risk.estimated_mttr})"
        )
        if risk.prevention_ko:
            lines.append(f"  예방: {risk.prevention_ko[0]}")
    return lines


def enrich_spec(spec: Optional[InfraSpec], store) -> EnrichedContext:
    """enrich_context over everything the knowledge store holds."""
    context = build_context_from_spec(spec)
    return enrich_context(
        context,
        store.relationships,
        spec=spec,
        anti_patterns=store.anti_patterns,
        failure_scenarios=store.failures,
    )
