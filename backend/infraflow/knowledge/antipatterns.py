"""
Anti-pattern matching over the adjacency view.

Signatures are plain dicts loaded from antipatterns.yaml. Each one is a
set of presence preconditions plus one structural `kind` check.
"""

import logging
from typing import Any, Callable, Dict, List

from infraflow.knowledge.types import AntiPattern
from infraflow.spec.context import DiagramContext

logger = logging.getLogger(__name__)


# ============================================================
# PRECONDITIONS
# ============================================================

def _preconditions_hold(sig: Dict[str, Any], ctx: DiagramContext) -> bool:
    present = ctx.types()

    if len(ctx.nodes) < sig.get("min_nodes", 0):
        return False
    if not all(t in present for t in sig.get("present_all", [])):
        return False
    present_any = sig.get("present_any")
    if present_any and not any(t in present for t in present_any):
        return False
    if any(t in present for t in sig.get("absent_all", [])):
        return False
    absent_flows = sig.get("absent_flow_types")
    if absent_flows and ctx.flow_types() & set(absent_flows):
        return False
    return True


# ============================================================
# STRUCTURAL CHECKS
# ============================================================

def _check_presence(sig: Dict[str, Any], ctx: DiagramContext) -> bool:
    return True


def _check_unguarded_path(sig: Dict[str, Any], ctx: DiagramContext) -> bool:
    return ctx.has_unguarded_path(sig["from"], sig["to"], sig.get("guards", []))


def _check_direct_link(sig: Dict[str, Any], ctx: DiagramContext) -> bool:
    return ctx.has_direct_link(sig["a"], sig["b"])


def _check_tier_placement(sig: Dict[str, Any], ctx: DiagramContext) -> bool:
    tiers = set(sig["tiers"])
    return any(n.tier in tiers for n in ctx.nodes_of_type(sig["types"]))


def _check_type_count(sig: Dict[str, Any], ctx: DiagramContext) -> bool:
    counts = ctx.type_counts()
    for node_type, rule in sig["counts"].items():
        n = counts.get(node_type, 0)
        if "eq" in rule and n != rule["eq"]:
            return False
        if "min" in rule and n < rule["min"]:
            return False
        if "max" in rule and n > rule["max"]:
            return False
    return True


def _check_single_tier(sig: Dict[str, Any], ctx: DiagramContext) -> bool:
    inner = [n for n in ctx.nodes if n.tier != "external"]
    if len(inner) < 2:
        return False
    return len({n.tier for n in inner}) == 1


def _check_fan_out(sig: Dict[str, Any], ctx: DiagramContext) -> bool:
    ignore = set(sig.get("ignore", []))
    limit = sig.get("max_backends", 1)
    for hub in ctx.nodes_of_type([sig["hub"]]):
        backends = [
            nid for nid in hub.connected_to
            if ctx.node(nid) is not None and ctx.node(nid).type not in ignore
        ]
        if len(backends) <= limit:
            return True
    return False


def _check_tier_subset(sig: Dict[str, Any], ctx: DiagramContext) -> bool:
    tiers_a = {n.tier for n in ctx.nodes_of_type(sig["types_a"])}
    tiers_b = {n.tier for n in ctx.nodes_of_type(sig["types_b"])}
    if not tiers_a or not tiers_b:
        return False
    return tiers_a <= tiers_b


SIGNATURE_CHECKS: Dict[str, Callable[[Dict[str, Any], DiagramContext], bool]] = {
    "presence": _check_presence,
    "unguarded_path": _check_unguarded_path,
    "direct_link": _check_direct_link,
    "tier_placement": _check_tier_placement,
    "type_count": _check_type_count,
    "single_tier": _check_single_tier,
    "fan_out": _check_fan_out,
    "tier_subset": _check_tier_subset,
}

# Keys each kind needs beyond the shared preconditions
REQUIRED_KEYS: Dict[str, List[str]] = {
    "presence": [],
    "unguarded_path": ["from", "to"],
    "direct_link": ["a", "b"],
    "tier_placement": ["types", "tiers"],
    "type_count": ["counts"],
    "single_tier": [],
    "fan_out": ["hub"],
    "tier_subset": ["types_a", "types_b"],
}


def matches(anti_pattern: AntiPattern, ctx: DiagramContext) -> bool:
    """True when the diagram exhibits the anti-pattern."""
    sig = anti_pattern.signature
    if not ctx.nodes:
        return False
    if not _preconditions_hold(sig, ctx):
        return False
    return SIGNATURE_CHECKS[sig["kind"]](sig, ctx)


def detect_anti_patterns(anti_patterns: List[AntiPattern], ctx: DiagramContext) -> List[AntiPattern]:
    found = [ap for ap in anti_patterns if matches(ap, ctx)]
    if found:
        logger.debug("Anti-patterns detected: %s", [ap.id for ap in found])
    return found
