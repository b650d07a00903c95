"""
Change Risk Assessor

Diffs two specs and scores the transition. Security-relevant removals and
anti-patterns the change introduces weigh most; the overall level is the
most severe factor.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from infraflow.knowledge.store import KnowledgeGraphStore, get_knowledge_store
from infraflow.spec.catalog import AUTH_TYPES, INTERNAL_ONLY_TYPES, SECURITY_TYPES
from infraflow.spec.model import InfraNode, InfraSpec

logger = logging.getLogger(__name__)

RISK_LEVELS = ("low", "medium", "high", "critical")
RISK_LEVEL_ORDER = {level: i for i, level in enumerate(RISK_LEVELS)}

MASSIVE_CHANGE_RATIO = 0.5
LARGE_CHANGE_RATIO = 0.3
MODERATE_CHANGE_COUNT = 5

RECOMMENDATIONS: Dict[str, Tuple[str, str]] = {
    "critical": ("review-required", "중대한 변경입니다. 반드시 검토 후 적용하세요."),
    "high": ("review-required", "보안 또는 가용성에 영향을 줄 수 있습니다. 검토를 권장합니다."),
    "medium": ("confirm", "변경 범위가 넓습니다. 확인 후 적용하세요."),
    "low": ("auto-apply", "안전한 변경입니다. 자동 적용 가능합니다."),
}


@dataclass
class RiskFactor:
    code: str
    level: str
    description_ko: str
    details: Optional[str] = None

    def to_dict(self) -> Dict:
        data = {"code": self.code, "level": self.level, "descriptionKo": self.description_ko}
        if self.details:
            data["details"] = self.details
        return data


@dataclass
class ChangeSummary:
    added_nodes: int = 0
    removed_nodes: int = 0
    modified_nodes: int = 0
    added_connections: int = 0
    removed_connections: int = 0

    @property
    def total_changes(self) -> int:
        return (
            self.added_nodes + self.removed_nodes + self.modified_nodes
            + self.added_connections + self.removed_connections
        )

    def to_dict(self) -> Dict:
        return {
            "addedNodes": self.added_nodes,
            "removedNodes": self.removed_nodes,
            "modifiedNodes": self.modified_nodes,
            "addedConnections": self.added_connections,
            "removedConnections": self.removed_connections,
            "totalChanges": self.total_changes,
        }


@dataclass
class ChangeRisk:
    level: str
    factors: List[RiskFactor] = field(default_factory=list)
    summary: ChangeSummary = field(default_factory=ChangeSummary)
    recommendation: str = "auto-apply"
    recommendation_ko: str = ""

    def to_dict(self) -> Dict:
        return {
            "level": self.level,
            "factors": [f.to_dict() for f in self.factors],
            "summary": self.summary.to_dict(),
            "recommendation": self.recommendation,
            "recommendationKo": self.recommendation_ko,
        }


def highest_level(factors: List[RiskFactor]) -> str:
    highest = "low"
    for f in factors:
        if RISK_LEVEL_ORDER[f.level] > RISK_LEVEL_ORDER[highest]:
            highest = f.level
    return highest


# ============================================================
# DIFF
# ============================================================

@dataclass
class SpecDiff:
    added: List[InfraNode]
    removed: List[InfraNode]
    modified: List[Tuple[InfraNode, InfraNode]]
    added_connections: Set[Tuple[str, str]]
    removed_connections: Set[Tuple[str, str]]


def diff_specs(before: InfraSpec, after: InfraSpec) -> SpecDiff:
    before_ids = before.node_ids()
    after_ids = after.node_ids()
    before_conns = {c.key for c in before.connections}
    after_conns = {c.key for c in after.connections}

    modified = []
    for node in after.nodes:
        old = before.get_node(node.id)
        if old is not None and (old.type != node.type or old.label != node.label):
            modified.append((old, node))

    return SpecDiff(
        added=[n for n in after.nodes if n.id not in before_ids],
        removed=[n for n in before.nodes if n.id not in after_ids],
        modified=modified,
        added_connections=after_conns - before_conns,
        removed_connections=before_conns - after_conns,
    )


# ============================================================
# FACTORS
# ============================================================

def _removal_factors(diff: SpecDiff) -> List[RiskFactor]:
    factors = []
    # a retyped node no longer provides its old type either
    lost = list(diff.removed) + [old for old, new in diff.modified if old.type != new.type]
    for node in lost:
        if node.type in SECURITY_TYPES:
            factors.append(RiskFactor(
                "SECURITY_NODE_REMOVED", "high",
                f"보안 노드가 제거되었습니다: {node.label} ({node.type})", node.type,
            ))
        elif node.type in AUTH_TYPES:
            factors.append(RiskFactor(
                "AUTH_NODE_REMOVED", "high",
                f"인증 노드가 제거되었습니다: {node.label} ({node.type})", node.type,
            ))
        elif node.type == "backup":
            factors.append(RiskFactor(
                "BACKUP_REMOVED", "high", f"백업 노드가 제거되었습니다: {node.label}", node.id,
            ))
        elif node in diff.removed:
            factors.append(RiskFactor(
                "NODE_REMOVED", "medium", f"노드가 제거되었습니다: {node.label} ({node.type})", node.type,
            ))
    return factors


def _scale_factors(diff: SpecDiff, before: InfraSpec) -> List[RiskFactor]:
    changed = len(diff.added) + len(diff.removed)
    counts = f"(추가: {len(diff.added)}, 제거: {len(diff.removed)})"
    if before.nodes:
        ratio = changed / len(before.nodes)
        if ratio > MASSIVE_CHANGE_RATIO:
            return [RiskFactor(
                "MASSIVE_CHANGE", "critical",
                f"노드의 {round(ratio * 100)}% 이상이 변경되었습니다 {counts}.",
            )]
        if ratio > LARGE_CHANGE_RATIO:
            return [RiskFactor(
                "LARGE_CHANGE", "high", f"노드의 {round(ratio * 100)}%가 변경되었습니다 {counts}.",
            )]
    if changed >= MODERATE_CHANGE_COUNT:
        return [RiskFactor("MODERATE_CHANGE", "medium", f"{changed}개의 노드가 변경되었습니다 {counts}.")]
    return []


def _anti_pattern_factors(before: InfraSpec, after: InfraSpec, store: KnowledgeGraphStore) -> List[RiskFactor]:
    existing = {ap.id for ap in store.anti_patterns_matching(before)}
    return [
        RiskFactor(
            "ANTIPATTERN_INTRODUCED", ap.severity.value,
            f"안티패턴이 도입되었습니다: {ap.name_ko} ({ap.id})", ap.id,
        )
        for ap in store.anti_patterns_matching(after)
        if ap.id not in existing
    ]


def _dependency_factors(before: InfraSpec, after: InfraSpec, store: KnowledgeGraphStore) -> List[RiskFactor]:
    before_types = before.node_types()
    after_types = after.node_types()
    factors = []
    for node_type in sorted(after_types):
        for needed in store.mandatory_dependencies_for(node_type):
            if needed in before_types and needed not in after_types:
                factors.append(RiskFactor(
                    "MANDATORY_DEP_BROKEN", "high",
                    f"필수 의존성이 깨졌습니다: {node_type}은(는) {needed}이(가) 필요합니다.",
                    f"{node_type} -> {needed}",
                ))
    return factors


def _redundancy_factors(before: InfraSpec, after: InfraSpec) -> List[RiskFactor]:
    before_counts = Counter(n.type for n in before.nodes)
    after_counts = Counter(n.type for n in after.nodes)
    return [
        RiskFactor(
            "REDUNDANCY_REMOVED", "medium",
            f"이중화가 제거되었습니다: {node_type}이(가) {count}개에서 1개로 줄었습니다 (단일 장애점 위험).",
            node_type,
        )
        for node_type, count in before_counts.items()
        if count >= 2 and after_counts.get(node_type, 0) == 1
    ]


def _exposure_factors(diff: SpecDiff, after: InfraSpec) -> List[RiskFactor]:
    factors = []
    for source, target in sorted(diff.added_connections):
        src, dst = after.get_node(source), after.get_node(target)
        if src is None or dst is None:
            continue
        for outside, inside in ((src, dst), (dst, src)):
            if outside.type == "internet" and inside.type in INTERNAL_ONLY_TYPES:
                factors.append(RiskFactor(
                    "INTERNET_EXPOSED", "critical",
                    f"내부 전용 컴포넌트가 인터넷에 직접 노출되었습니다: {inside.type}",
                    f"{source} -> {target}",
                ))
    return factors


def _security_added_factors(diff: SpecDiff) -> List[RiskFactor]:
    return [
        RiskFactor(
            "SECURITY_NODE_ADDED", "low",
            f"보안 컴포넌트가 추가되어 위험이 낮아집니다: {node.label} ({node.type})", node.type,
        )
        for node in diff.added
        if node.type in SECURITY_TYPES or node.type in AUTH_TYPES
    ]


def get_risk_factors(before: InfraSpec, after: InfraSpec,
                     store: Optional[KnowledgeGraphStore] = None) -> List[RiskFactor]:
    store = store or get_knowledge_store()
    diff = diff_specs(before, after)

    factors: List[RiskFactor] = []
    if before.nodes and not after.nodes:
        factors.append(RiskFactor(
            "ALL_NODES_REMOVED", "critical", "모든 노드가 제거되었습니다. 다이어그램이 비어 있습니다.",
        ))
    factors.extend(_removal_factors(diff))
    factors.extend(_scale_factors(diff, before))
    factors.extend(_anti_pattern_factors(before, after, store))
    factors.extend(_dependency_factors(before, after, store))
    factors.extend(_redundancy_factors(before, after))
    factors.extend(_exposure_factors(diff, after))
    factors.extend(_security_added_factors(diff))

    if not factors:
        factors.append(RiskFactor("NO_RISK", "low", "위험 요소가 감지되지 않았습니다."))
    return factors


def assess_change_risk(before: InfraSpec, after: InfraSpec,
                       store: Optional[KnowledgeGraphStore] = None) -> ChangeRisk:
    """
    Score the transition from `before` to `after`.

    The summary always carries literal counts, even when no factor fired.
    """
    diff = diff_specs(before, after)
    factors = get_risk_factors(before, after, store)
    level = highest_level(factors)
    recommendation, recommendation_ko = RECOMMENDATIONS[level]

    risk = ChangeRisk(
        level=level,
        factors=factors,
        summary=ChangeSummary(
            added_nodes=len(diff.added),
            removed_nodes=len(diff.removed),
            modified_nodes=len(diff.modified),
            added_connections=len(diff.added_connections),
            removed_connections=len(diff.removed_connections),
        ),
        recommendation=recommendation,
        recommendation_ko=recommendation_ko,
    )
    logger.debug("Change risk %s: %s", level, [f.code for f in factors])
    return risk
