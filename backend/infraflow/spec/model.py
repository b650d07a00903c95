"""
InfraSpec - the node/connection document describing one diagram.

Specs are persistent values: every with_*/without_* helper returns a new
InfraSpec and leaves the receiver untouched. Construction enforces the
structural invariants (unique node ids, no self loops, no dangling edges).
"""

import logging
from typing import Any, Dict, List, Literal, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from infraflow.errors import FailureKind
from infraflow.spec.catalog import COMPONENTS, label_for_type, tier_for_type

logger = logging.getLogger(__name__)

Tier = Literal["external", "dmz", "internal", "data"]
FlowType = Literal["request", "response", "sync", "async", "blocked", "encrypted"]


# ============================================================
# NODES / CONNECTIONS / ZONES
# ============================================================

class InfraNode(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    type: str
    label: str = ""
    tier: Optional[Tier] = None  # explicit override, otherwise derived from type
    zone: Optional[str] = None
    description: Optional[str] = None

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("node id must not be empty")
        return v

    @field_validator("type")
    @classmethod
    def _known_type(cls, v: str) -> str:
        if v not in COMPONENTS:
            raise ValueError(f"unknown node type '{v}'")
        return v

    @model_validator(mode="before")
    @classmethod
    def _default_label(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("label") and data.get("type"):
            data = {**data, "label": label_for_type(data["type"])}
        return data

    @property
    def effective_tier(self) -> str:
        return self.tier or tier_for_type(self.type)


class InfraConnection(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: str
    target: str
    flow_type: Optional[FlowType] = Field(default=None, alias="flowType")
    label: Optional[str] = None
    bidirectional: Optional[bool] = None

    @model_validator(mode="after")
    def _no_self_loop(self) -> "InfraConnection":
        if self.source == self.target:
            raise ValueError(f"connection {self.source} -> {self.target} is a self loop")
        return self

    @property
    def key(self) -> tuple:
        return (self.source, self.target)


class ZoneSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    type: Tier


# ============================================================
# SPEC
# ============================================================

class InfraSpec(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    nodes: List[InfraNode] = Field(default_factory=list)
    connections: List[InfraConnection] = Field(default_factory=list)
    zones: Optional[List[ZoneSpec]] = None

    @model_validator(mode="after")
    def _check_integrity(self) -> "InfraSpec":
        seen: Set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"duplicate node id '{node.id}'")
            seen.add(node.id)

        for conn in self.connections:
            if conn.source not in seen or conn.target not in seen:
                raise ValueError(
                    f"connection {conn.source} -> {conn.target} references a missing node"
                )
        return self

    # ---- Queries ----

    def node_ids(self) -> Set[str]:
        return {n.id for n in self.nodes}

    def node_types(self) -> Set[str]:
        return {n.type for n in self.nodes}

    def get_node(self, node_id: str) -> Optional[InfraNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_of_type(self, node_type: str) -> List[InfraNode]:
        return [n for n in self.nodes if n.type == node_type]

    def has_connection(self, source: str, target: str) -> bool:
        return any(c.source == source and c.target == target for c in self.connections)

    def next_node_id(self, node_type: str) -> str:
        """Smallest `{type}-{n}` not already used in this spec."""
        used = self.node_ids()
        n = 1
        while f"{node_type}-{n}" in used:
            n += 1
        return f"{node_type}-{n}"

    # ---- Copy-on-write updates ----

    def with_node(self, node: InfraNode) -> "InfraSpec":
        return self._replace(nodes=[*self.nodes, node])

    def without_node(self, node_id: str) -> "InfraSpec":
        """Remove a node together with every connection touching it."""
        return self._replace(
            nodes=[n for n in self.nodes if n.id != node_id],
            connections=[
                c for c in self.connections if c.source != node_id and c.target != node_id
            ],
        )

    def with_node_update(self, node_id: str, **changes: Any) -> "InfraSpec":
        nodes = [
            InfraNode(**{**n.model_dump(), **changes}) if n.id == node_id else n
            for n in self.nodes
        ]
        return self._replace(nodes=nodes)

    def with_connection(self, connection: InfraConnection) -> "InfraSpec":
        """
        Append a connection. Dangling or duplicate edges are dropped and the
        spec is returned unchanged.
        """
        ids = self.node_ids()
        if connection.source not in ids or connection.target not in ids:
            logger.debug(
                "%s: dropping connection %s -> %s",
                FailureKind.REFERENTIAL_INTEGRITY_RISK.value, connection.source, connection.target,
            )
            return self
        if self.has_connection(connection.source, connection.target):
            return self
        return self._replace(connections=[*self.connections, connection])

    def without_connection(self, source: str, target: str) -> "InfraSpec":
        return self._replace(
            connections=[
                c for c in self.connections if not (c.source == source and c.target == target)
            ]
        )

    def _replace(self, **fields: Any) -> "InfraSpec":
        data = {
            "nodes": self.nodes,
            "connections": self.connections,
            "zones": self.zones,
        }
        data.update(fields)
        return InfraSpec(**data)

    # ---- Serialization ----

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def empty(cls) -> "InfraSpec":
        return cls(nodes=[], connections=[])
