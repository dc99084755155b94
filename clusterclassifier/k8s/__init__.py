"""
Kubernetes-facing pieces: resource kind registry and inventory collaborators
"""

from .registry import ResourceKind, ResourceKindRegistry, BUILTIN_KINDS, COMMON_FIELD_SELECTORS
from .inventory import (
    ResourceInventoryProvider,
    ClusterVersionProvider,
    InventorySnapshot,
    StaticVersionProvider,
    from_kubernetes_object
)

__all__ = [
    'ResourceKind',
    'ResourceKindRegistry',
    'BUILTIN_KINDS',
    'COMMON_FIELD_SELECTORS',
    'ResourceInventoryProvider',
    'ClusterVersionProvider',
    'InventorySnapshot',
    'StaticVersionProvider',
    'from_kubernetes_object'
]
