"""
Spec data model - InfraSpec documents and the component catalog.
"""

from infraflow.spec.catalog import (
    AUTH_TYPES,
    COMPONENTS,
    COMPUTE_TYPES,
    INTERNAL_ONLY_TYPES,
    NODE_TYPES,
    SECURITY_TYPES,
    TIER_ORDER,
    ComponentInfo,
    category_for_type,
    get_component,
    label_for_type,
    label_ko_for_type,
    tier_for_type,
    tier_index,
)
from infraflow.spec.model import InfraConnection, InfraNode, InfraSpec, ZoneSpec

__all__ = [
    "AUTH_TYPES",
    "COMPONENTS",
    "COMPUTE_TYPES",
    "INTERNAL_ONLY_TYPES",
    "NODE_TYPES",
    "SECURITY_TYPES",
    "TIER_ORDER",
    "ComponentInfo",
    "InfraConnection",
    "InfraNode",
    "InfraSpec",
    "ZoneSpec",
    "category_for_type",
    "get_component",
    "label_for_type",
    "label_ko_for_type",
    "tier_for_type",
    "tier_index",
]
