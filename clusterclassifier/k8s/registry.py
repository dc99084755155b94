"""
Registry of resource kinds known to the classifier

Holds, per group/version/kind, whether the kind is namespaced and which
field selectors may be used in field filters. The registry is built
explicitly and handed to the evaluators; there is no process-wide scheme.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from ..errors import ClassifierValidationError
from ..utils.logger import get_logger

logger = get_logger("ResourceKindRegistry")

# Field selectors every kind supports
COMMON_FIELD_SELECTORS = frozenset({"metadata.name", "metadata.namespace"})


@dataclass(frozen=True)
class ResourceKind:
    """A resource kind and the field selectors it supports"""
    group: str
    version: str
    kind: str
    namespaced: bool = True
    field_selectors: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(
            self, "field_selectors",
            frozenset(self.field_selectors) | COMMON_FIELD_SELECTORS
        )

    @property
    def gvk(self) -> Tuple[str, str, str]:
        return (self.group, self.version, self.kind)

    @classmethod
    def from_dict(cls, data: Mapping) -> "ResourceKind":
        """
        Raises:
            ClassifierValidationError: if version or kind is missing
        """
        if not isinstance(data, Mapping) or not data.get("version") or not data.get("kind"):
            raise ClassifierValidationError(f"resource kind needs version and kind, got {data!r}")
        return cls(
            group=data.get("group", ""),
            version=data["version"],
            kind=data["kind"],
            namespaced=data.get("namespaced", True),
            field_selectors=frozenset(data.get("fieldSelectors") or ())
        )


# Field selectors the Kubernetes API server accepts beyond metadata.*
BUILTIN_KINDS: Tuple[ResourceKind, ...] = (
    ResourceKind("", "v1", "Pod", field_selectors=frozenset({
        "spec.nodeName",
        "spec.restartPolicy",
        "spec.schedulerName",
        "spec.serviceAccountName",
        "spec.hostNetwork",
        "status.phase",
        "status.podIP",
        "status.nominatedNodeName",
    })),
    ResourceKind("", "v1", "Node", namespaced=False, field_selectors=frozenset({"spec.unschedulable"})),
    ResourceKind("", "v1", "Namespace", namespaced=False, field_selectors=frozenset({"status.phase"})),
    ResourceKind("", "v1", "Secret", field_selectors=frozenset({"type"})),
    ResourceKind("", "v1", "Event", field_selectors=frozenset({
        "involvedObject.kind",
        "involvedObject.namespace",
        "involvedObject.name",
        "involvedObject.uid",
        "involvedObject.apiVersion",
        "involvedObject.resourceVersion",
        "involvedObject.fieldPath",
        "reason",
        "reportingComponent",
        "type",
    })),
    ResourceKind("", "v1", "ReplicationController", field_selectors=frozenset({"status.replicas"})),
    ResourceKind("", "v1", "ConfigMap"),
    ResourceKind("", "v1", "Service"),
    ResourceKind("", "v1", "ServiceAccount"),
    ResourceKind("", "v1", "PersistentVolume", namespaced=False),
    ResourceKind("", "v1", "PersistentVolumeClaim"),
    ResourceKind("apps", "v1", "Deployment"),
    ResourceKind("apps", "v1", "StatefulSet"),
    ResourceKind("apps", "v1", "DaemonSet"),
    ResourceKind("apps", "v1", "ReplicaSet", field_selectors=frozenset({"status.replicas"})),
    ResourceKind("batch", "v1", "Job", field_selectors=frozenset({"status.successful"})),
    ResourceKind("batch", "v1", "CronJob"),
    ResourceKind("apiextensions.k8s.io", "v1", "CustomResourceDefinition", namespaced=False),
)


class ResourceKindRegistry:
    """
    Explicit registry of supported resource kinds

    Kinds that are not registered (custom resources, typically) can still be
    used in constraints, but only the common metadata.* field selectors apply
    to them.
    """

    def __init__(self, kinds: Optional[Iterable[ResourceKind]] = None):
        self._kinds: Dict[Tuple[str, str, str], ResourceKind] = {}
        for kind in kinds or ():
            self.register(kind)

    @classmethod
    def with_builtin_kinds(cls) -> "ResourceKindRegistry":
        """Registry pre-loaded with the core Kubernetes kinds"""
        return cls(BUILTIN_KINDS)

    def register(self, kind: ResourceKind):
        """Register (or replace) a kind"""
        if kind.gvk in self._kinds:
            logger.debug(f"Replacing registered kind {kind.group}/{kind.version}/{kind.kind}")
        self._kinds[kind.gvk] = kind

    def lookup(self, group: str, version: str, kind: str) -> Optional[ResourceKind]:
        return self._kinds.get((group, version, kind))

    def supported_fields(self, group: str, version: str, kind: str) -> FrozenSet[str]:
        """Field selectors allowed in field filters for this kind"""
        registered = self.lookup(group, version, kind)
        if registered is None:
            return COMMON_FIELD_SELECTORS
        return registered.field_selectors

    def kinds(self) -> List[ResourceKind]:
        return sorted(self._kinds.values(), key=lambda k: k.gvk)

    def __contains__(self, gvk) -> bool:
        return tuple(gvk) in self._kinds

    def __len__(self):
        return len(self._kinds)
