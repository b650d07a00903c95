"""
Edge inference - where a node goes when the prompt doesn't say.

Default policy: nodes are ordered by (tier, request-path rank) along
external -> dmz -> internal -> data and each group links to the next one.
Side components (auth, backup, dlp, nac) hang off the deepest main node
that can reach them instead of sitting on the request path. Explicit
position hints (before/after/between/start/end) override the default.

Every edge goes through InfraSpec.with_connection, so an edge whose
endpoint is missing is dropped instead of emitted.
"""

from itertools import groupby
from typing import List, Optional, Sequence, Tuple

from infraflow.spec.catalog import AUTH_TYPES, tier_index
from infraflow.spec.model import InfraConnection, InfraNode, InfraSpec

DEFAULT_FLOW = "request"

# Position along a request path within one tier
PATH_RANK = {
    "user": 0,
    "internet": 1,
    "cdn": 2,
    "dns": 3,
    "router": 4,
    "sd-wan": 5,
    "firewall": 6,
    "ids-ips": 7,
    "waf": 8,
    "vpn-gateway": 9,
    "load-balancer": 10,
    "web-server": 11,
    "switch-l3": 12,
    "switch-l2": 13,
    "aws-vpc": 14,
    "azure-vnet": 14,
    "gcp-network": 14,
    "private-cloud": 14,
    "kubernetes": 15,
    "container": 16,
    "vm": 17,
    "app-server": 18,
    "cache": 20,
    "db-server": 21,
    "san-nas": 22,
    "object-storage": 23,
    "storage": 24,
}
DEFAULT_RANK = 30

SIDE_TYPES = frozenset(AUTH_TYPES | {"backup", "dlp", "nac", "zone"})

PathKey = Tuple[int, int]


def path_key(node: InfraNode) -> PathKey:
    return (tier_index(node.effective_tier), PATH_RANK.get(node.type, DEFAULT_RANK))


def is_side(node: InfraNode) -> bool:
    return node.type in SIDE_TYPES


def _edge(source: str, target: str, flow_type: Optional[str] = DEFAULT_FLOW) -> InfraConnection:
    return InfraConnection(source=source, target=target, flow_type=flow_type)


def _side_anchor(main: Sequence[InfraNode], side: InfraNode) -> Optional[InfraNode]:
    """Deepest main node whose tier is not beyond the side node's tier."""
    if not main:
        return None
    limit = tier_index(side.effective_tier)
    eligible = [n for n in main if tier_index(n.effective_tier) <= limit]
    if not eligible:
        return main[0]
    return sorted(eligible, key=path_key)[-1]


# ============================================================
# CREATE: chain a fresh node set
# ============================================================

def chain_connections(nodes: Sequence[InfraNode]) -> List[InfraConnection]:
    """Tier-ordered connections for a node set built from scratch."""
    main = sorted((n for n in nodes if not is_side(n)), key=path_key)
    side = [n for n in nodes if is_side(n)]

    connections: List[InfraConnection] = []
    groups = [list(g) for _, g in groupby(main, key=path_key)]
    for upstream, downstream in zip(groups, groups[1:]):
        for src in upstream:
            for dst in downstream:
                connections.append(_edge(src.id, dst.id))

    if not main:
        # nothing to hang side nodes off, keep them in a row
        for src, dst in zip(side, side[1:]):
            connections.append(_edge(src.id, dst.id))
        return connections

    for node in side:
        anchor = _side_anchor(main, node)
        if anchor is not None:
            connections.append(_edge(anchor.id, node.id))
    return connections


# ============================================================
# ADD: place one new node inside an existing spec
# ============================================================

def connect_by_tier(spec: InfraSpec, node_id: str) -> InfraSpec:
    """Wire an already appended node into its tier-adjacent neighbours."""
    node = spec.get_node(node_id)
    others = [n for n in spec.nodes if n.id != node_id]
    if node is None or not others:
        return spec

    main = [n for n in others if not is_side(n)]
    if is_side(node):
        anchor = _side_anchor(main or others, node)
        return spec.with_connection(_edge(anchor.id, node_id)) if anchor else spec

    peers = [n for n in main if n.type == node.type]
    for peer in peers:
        mirrored = _mirror_peer(spec, peer.id, node_id)
        if mirrored is not spec:
            return mirrored

    key = path_key(node)
    upstream = [n for n in main if path_key(n) < key]
    downstream = [n for n in main if path_key(n) > key]
    pred = max(reversed(upstream), key=path_key) if upstream else None
    succ = min(downstream, key=path_key) if downstream else None

    if pred and succ and spec.has_connection(pred.id, succ.id):
        return insert_between(spec, node_id, pred.id, succ.id)

    if pred:
        spec = spec.with_connection(_edge(pred.id, node_id))
    if succ and (pred is None or not _incoming(spec, succ.id)):
        spec = spec.with_connection(_edge(node_id, succ.id))
    return spec


def _incoming(spec: InfraSpec, node_id: str) -> List[InfraConnection]:
    return [c for c in spec.connections if c.target == node_id]


def _outgoing(spec: InfraSpec, node_id: str) -> List[InfraConnection]:
    return [c for c in spec.connections if c.source == node_id]


def _mirror_peer(spec: InfraSpec, peer_id: str, node_id: str) -> InfraSpec:
    """Give the new node the same neighbours as an existing node of its type."""
    result = spec
    for conn in _incoming(spec, peer_id):
        result = result.with_connection(_edge(conn.source, node_id, conn.flow_type))
    for conn in _outgoing(spec, peer_id):
        result = result.with_connection(_edge(node_id, conn.target, conn.flow_type))
    return result


# ============================================================
# POSITION HINTS
# ============================================================

def insert_after(spec: InfraSpec, node_id: str, ref_id: str) -> InfraSpec:
    node = spec.get_node(node_id)
    if node is not None and not is_side(node):
        for conn in _outgoing(spec, ref_id):
            if conn.target == node_id:
                continue
            spec = spec.without_connection(conn.source, conn.target)
            spec = spec.with_connection(_edge(node_id, conn.target, conn.flow_type))
    return spec.with_connection(_edge(ref_id, node_id))


def insert_before(spec: InfraSpec, node_id: str, ref_id: str) -> InfraSpec:
    for conn in _incoming(spec, ref_id):
        if conn.source == node_id:
            continue
        spec = spec.without_connection(conn.source, conn.target)
        spec = spec.with_connection(_edge(conn.source, node_id, conn.flow_type))
    return spec.with_connection(_edge(node_id, ref_id))


def insert_between(spec: InfraSpec, node_id: str, first_id: str, second_id: str) -> InfraSpec:
    flow = DEFAULT_FLOW
    for conn in spec.connections:
        if conn.source == first_id and conn.target == second_id:
            flow = conn.flow_type
    spec = spec.without_connection(first_id, second_id).without_connection(second_id, first_id)
    spec = spec.with_connection(_edge(first_id, node_id, flow))
    return spec.with_connection(_edge(node_id, second_id, flow))


def insert_at_start(spec: InfraSpec, node_id: str) -> InfraSpec:
    entries = [
        n for n in spec.nodes
        if n.id != node_id and not _incoming(spec, n.id)
    ]
    if not entries:
        entries = [n for n in spec.nodes if n.id != node_id][:1]
    for entry in entries:
        spec = spec.with_connection(_edge(node_id, entry.id))
    return spec


def insert_at_end(spec: InfraSpec, node_id: str) -> InfraSpec:
    sinks = [
        n for n in spec.nodes
        if n.id != node_id and not is_side(n) and not _outgoing(spec, n.id)
    ]
    if not sinks:
        sinks = [n for n in spec.nodes if n.id != node_id]
    if not sinks:
        return spec
    deepest = sorted(sinks, key=path_key)[-1]
    return spec.with_connection(_edge(deepest.id, node_id))
