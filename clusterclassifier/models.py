"""
Data model shared by the classifier evaluation and arbitration code

Classifier specs are immutable and validated when constructed, so every
value reaching the evaluators is already well formed.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ClassifierValidationError

# Labels attached to every ClassifierReport
REPORT_CLASSIFIER_NAME_LABEL = "clusterclassifier.io/classifier-name"
REPORT_CLUSTER_NAME_LABEL = "clusterclassifier.io/cluster-name"
REPORT_CLUSTER_TYPE_LABEL = "clusterclassifier.io/cluster-type"


class Operation(str, Enum):
    """Comparison used by label and field filters"""
    EQUAL = "Equal"
    DIFFERENT = "Different"


class KubernetesComparison(str, Enum):
    """How the cluster version is compared with the requested one"""
    EQUAL = "Equal"
    NOT_EQUAL = "NotEqual"
    GREATER_THAN = "GreaterThan"
    LESS_THAN = "LessThan"
    GREATER_THAN_OR_EQUAL_TO = "GreaterThanOrEqualTo"
    LESS_THAN_OR_EQUAL_TO = "LessThanOrEqualTo"


class FeatureStatus(str, Enum):
    """Provisioning state of a classifier on a cluster"""
    PROVISIONING = "Provisioning"
    PROVISIONED = "Provisioned"
    FAILED = "Failed"
    REMOVING = "Removing"
    REMOVED = "Removed"


class ClusterType(str, Enum):
    CAPI = "Capi"
    SVELTOS = "Sveltos"


def _coerce_enum(enum_cls, value, what: str):
    """Turn a raw string into an enum member or fail validation"""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ClassifierValidationError(
            f"invalid {what} {value!r}, expected one of: {allowed}"
        ) from None


def _coerce_count(value, what: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ClassifierValidationError(f"{what} must be an integer, got {value!r}")
    if value < 0:
        raise ClassifierValidationError(f"{what} must be >= 0, got {value}")
    return value


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse a Kubernetes timestamp

    Accepts datetimes (PyYAML already converts unquoted timestamps) and
    RFC 3339 strings. Naive values are taken as UTC so timestamps always
    compare with each other.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ClassifierValidationError(f"invalid timestamp {value!r}") from None
    else:
        raise ClassifierValidationError(f"invalid timestamp {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def split_api_version(api_version: str) -> Tuple[str, str]:
    """Split "apps/v1" into ("apps", "v1") and "v1" into ("", "v1")"""
    if "/" in api_version:
        group, version = api_version.split("/", 1)
        return group, version
    return "", api_version


# ── Classifier spec ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class ClassifierLabel:
    """Label a classifier wants on every matching cluster"""
    key: str
    value: str

    def __post_init__(self):
        if not self.key:
            raise ClassifierValidationError("classifier label key must not be empty")
        object.__setattr__(self, "value", "" if self.value is None else str(self.value))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClassifierLabel":
        return cls(key=data.get("key", ""), value=data.get("value", ""))

    def to_dict(self) -> dict:
        return {"key": self.key, "value": self.value}


@dataclass(frozen=True)
class LabelFilter:
    """Filter on a resource label"""
    key: str
    operation: Operation
    value: str

    def __post_init__(self):
        if not self.key:
            raise ClassifierValidationError("label filter key must not be empty")
        object.__setattr__(self, "operation", _coerce_enum(Operation, self.operation, "operation"))
        object.__setattr__(self, "value", "" if self.value is None else str(self.value))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LabelFilter":
        return cls(
            key=data.get("key", ""),
            operation=data.get("operation", ""),
            value=data.get("value", "")
        )

    def to_dict(self) -> dict:
        return {"key": self.key, "operation": self.operation.value, "value": self.value}


@dataclass(frozen=True)
class FieldFilter:
    """Filter on a structured resource field (field selector path)"""
    field: str
    operation: Operation
    value: str

    def __post_init__(self):
        if not self.field:
            raise ClassifierValidationError("field filter field must not be empty")
        object.__setattr__(self, "operation", _coerce_enum(Operation, self.operation, "operation"))
        object.__setattr__(self, "value", "" if self.value is None else str(self.value))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldFilter":
        return cls(
            field=data.get("field", ""),
            operation=data.get("operation", ""),
            value=data.get("value", "")
        )

    def to_dict(self) -> dict:
        return {"field": self.field, "operation": self.operation.value, "value": self.value}


@dataclass(frozen=True)
class DeployedResourceConstraint:
    """
    Resources of one group/version/kind that must be present on a cluster

    All label filters, field filters and the optional script are ANDed.
    The number of surviving resources must fall within
    [min_count, max_count]; min_count defaults to 1 and max_count to
    unbounded.
    """
    group: str
    version: str
    kind: str
    namespace: str = ""  # empty: cluster scoped
    label_filters: Tuple[LabelFilter, ...] = ()
    field_filters: Tuple[FieldFilter, ...] = ()
    min_count: Optional[int] = None
    max_count: Optional[int] = None
    script: str = ""

    def __post_init__(self):
        if not self.kind:
            raise ClassifierValidationError("resource constraint kind must not be empty")
        if not self.version:
            raise ClassifierValidationError("resource constraint version must not be empty")

        object.__setattr__(self, "group", self.group or "")
        object.__setattr__(self, "namespace", self.namespace or "")
        object.__setattr__(self, "script", self.script or "")
        object.__setattr__(self, "label_filters", tuple(
            f if isinstance(f, LabelFilter) else LabelFilter.from_dict(f)
            for f in (self.label_filters or ())
        ))
        object.__setattr__(self, "field_filters", tuple(
            f if isinstance(f, FieldFilter) else FieldFilter.from_dict(f)
            for f in (self.field_filters or ())
        ))

        min_count = _coerce_count(self.min_count, "minCount")
        max_count = _coerce_count(self.max_count, "maxCount")
        if min_count is not None and max_count is not None and max_count < min_count:
            raise ClassifierValidationError(
                f"maxCount ({max_count}) must be >= minCount ({min_count})"
            )

    @property
    def effective_min_count(self) -> int:
        return 1 if self.min_count is None else self.min_count

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def describe(self) -> str:
        """Short human readable identity used in failure messages"""
        scope = self.namespace or "<cluster>"
        return f"{self.api_version}/{self.kind} in {scope}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeployedResourceConstraint":
        return cls(
            group=data.get("group", ""),
            version=data.get("version", ""),
            kind=data.get("kind", ""),
            namespace=data.get("namespace", ""),
            label_filters=tuple(LabelFilter.from_dict(f) for f in data.get("labelFilters") or ()),
            field_filters=tuple(FieldFilter.from_dict(f) for f in data.get("fieldFilters") or ()),
            min_count=data.get("minCount"),
            max_count=data.get("maxCount"),
            script=data.get("script", "")
        )

    def to_dict(self) -> dict:
        data = {
            "group": self.group,
            "version": self.version,
            "kind": self.kind,
            "namespace": self.namespace,
            "labelFilters": [f.to_dict() for f in self.label_filters],
            "fieldFilters": [f.to_dict() for f in self.field_filters],
            "script": self.script,
        }
        if self.min_count is not None:
            data["minCount"] = self.min_count
        if self.max_count is not None:
            data["maxCount"] = self.max_count
        return data


@dataclass(frozen=True)
class KubernetesVersionConstraint:
    """Required cluster version"""
    version: str
    comparison: KubernetesComparison

    def __post_init__(self):
        if not self.version:
            raise ClassifierValidationError("version constraint version must not be empty")
        object.__setattr__(
            self, "comparison",
            _coerce_enum(KubernetesComparison, self.comparison, "comparison")
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KubernetesVersionConstraint":
        return cls(version=str(data.get("version", "")), comparison=data.get("comparison", ""))

    def to_dict(self) -> dict:
        return {"version": self.version, "comparison": self.comparison.value}


@dataclass(frozen=True)
class Classifier:
    """
    Named set of constraints plus the labels to put on matching clusters
    """
    name: str
    labels: Tuple[ClassifierLabel, ...] = ()
    resource_constraints: Tuple[DeployedResourceConstraint, ...] = ()
    version_constraints: Tuple[KubernetesVersionConstraint, ...] = ()
    creation_timestamp: Optional[datetime] = None
    deletion_timestamp: Optional[datetime] = None

    def __post_init__(self):
        if not self.name:
            raise ClassifierValidationError("classifier name must not be empty")

        object.__setattr__(self, "labels", tuple(
            label if isinstance(label, ClassifierLabel) else ClassifierLabel.from_dict(label)
            for label in (self.labels or ())
        ))
        object.__setattr__(self, "resource_constraints", tuple(
            c if isinstance(c, DeployedResourceConstraint) else DeployedResourceConstraint.from_dict(c)
            for c in (self.resource_constraints or ())
        ))
        object.__setattr__(self, "version_constraints", tuple(
            c if isinstance(c, KubernetesVersionConstraint) else KubernetesVersionConstraint.from_dict(c)
            for c in (self.version_constraints or ())
        ))
        object.__setattr__(self, "creation_timestamp", parse_timestamp(self.creation_timestamp))
        object.__setattr__(self, "deletion_timestamp", parse_timestamp(self.deletion_timestamp))

        seen = set()
        for label in self.labels:
            if label.key in seen:
                raise ClassifierValidationError(
                    f"classifier {self.name}: label key {label.key!r} listed more than once"
                )
            seen.add(label.key)

    @property
    def label_map(self) -> Dict[str, str]:
        return {label.key: label.value for label in self.labels}

    @property
    def is_deleted(self) -> bool:
        return self.deletion_timestamp is not None

    def spec_dict(self) -> dict:
        """Spec in manifest shape; this is what the content hash covers"""
        return {
            "deployedResourceConstraints": [c.to_dict() for c in self.resource_constraints],
            "kubernetesVersionConstraints": [c.to_dict() for c in self.version_constraints],
            "classifierLabels": [label.to_dict() for label in self.labels],
        }

    @classmethod
    def from_dict(cls, manifest: Mapping[str, Any]) -> "Classifier":
        """
        Build a Classifier from its manifest

        Args:
            manifest: Dict with metadata and spec (camelCase keys)

        Returns:
            Validated Classifier
        """
        metadata = manifest.get("metadata") or {}
        spec = manifest.get("spec") or {}
        return cls(
            name=metadata.get("name", ""),
            labels=tuple(ClassifierLabel.from_dict(d) for d in spec.get("classifierLabels") or ()),
            resource_constraints=tuple(
                DeployedResourceConstraint.from_dict(d)
                for d in spec.get("deployedResourceConstraints") or ()
            ),
            version_constraints=tuple(
                KubernetesVersionConstraint.from_dict(d)
                for d in spec.get("kubernetesVersionConstraints") or ()
            ),
            creation_timestamp=metadata.get("creationTimestamp"),
            deletion_timestamp=metadata.get("deletionTimestamp")
        )

    def to_dict(self) -> dict:
        """Manifest form (metadata + spec)"""
        metadata: Dict[str, Any] = {"name": self.name}
        if self.creation_timestamp is not None:
            metadata["creationTimestamp"] = _format_timestamp(self.creation_timestamp)
        if self.deletion_timestamp is not None:
            metadata["deletionTimestamp"] = _format_timestamp(self.deletion_timestamp)
        return {"kind": "Classifier", "metadata": metadata, "spec": self.spec_dict()}


# ── Cluster inventory ────────────────────────────────────────────────────

@dataclass(frozen=True)
class ClusterRef:
    """
    A managed cluster

    Identity is (namespace, name, cluster_type); labels are the labels the
    cluster carries right now and are not part of equality.
    """
    namespace: str
    name: str
    cluster_type: ClusterType = ClusterType.CAPI
    labels: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        if not self.name:
            raise ClassifierValidationError("cluster name must not be empty")
        object.__setattr__(self, "cluster_type", _coerce_enum(ClusterType, self.cluster_type, "cluster type"))
        object.__setattr__(self, "labels", dict(self.labels or {}))

    @property
    def key(self) -> str:
        """Identity string, e.g. "capi:default--x"; keys inventory and per-cluster results"""
        return f"{self.cluster_type.value.lower()}:{self.namespace}--{self.name}"

    def sort_key(self) -> Tuple[str, str, str]:
        return (self.cluster_type.value, self.namespace, self.name)

    def to_dict(self) -> dict:
        return {
            "namespace": self.namespace,
            "name": self.name,
            "clusterType": self.cluster_type.value,
        }

    def __str__(self):
        return self.key


@dataclass(frozen=True)
class Resource:
    """One object from a cluster's resource inventory"""
    api_version: str
    kind: str
    name: str
    namespace: str = ""
    labels: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)
    obj: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False, repr=False)

    @property
    def group(self) -> str:
        return split_api_version(self.api_version)[0]

    @property
    def version(self) -> str:
        return split_api_version(self.api_version)[1]

    def field_value(self, path: str) -> Any:
        """Look up a dotted field path (e.g. status.phase); None if absent"""
        if path == "metadata.name":
            return self.name
        if path == "metadata.namespace":
            return self.namespace

        current: Any = self.obj
        for part in path.split("."):
            if not isinstance(current, Mapping) or part not in current:
                return None
            current = current[part]
        return current

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> "Resource":
        """Build from a manifest dict (apiVersion/kind/metadata/...)"""
        metadata = obj.get("metadata") or {}
        return cls(
            api_version=obj.get("apiVersion", ""),
            kind=obj.get("kind", ""),
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace") or "",
            labels={str(k): str(v) for k, v in (metadata.get("labels") or {}).items()},
            obj=dict(obj)
        )

    def __str__(self):
        if self.namespace:
            return f"{self.kind} {self.namespace}/{self.name}"
        return f"{self.kind} {self.name}"


# ── Evaluation outputs ───────────────────────────────────────────────────

@dataclass(frozen=True)
class UnmanagedLabel:
    """A label a classifier wants but another classifier owns"""
    key: str
    failure_message: str

    def to_dict(self) -> dict:
        return {"key": self.key, "failureMessage": self.failure_message}


@dataclass(frozen=True)
class ClusterMatchRecord:
    """Outcome of one classifier on one cluster"""
    cluster: ClusterRef
    matched: bool
    managed_labels: Tuple[str, ...] = ()
    unmanaged_labels: Tuple[UnmanagedLabel, ...] = ()
    failure_messages: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "clusterRef": self.cluster.to_dict(),
            "matched": self.matched,
            "managedLabels": list(self.managed_labels),
            "unManagedLabels": [u.to_dict() for u in self.unmanaged_labels],
            "failureMessages": list(self.failure_messages),
        }


@dataclass(frozen=True)
class ClusterInfo:
    """What a classifier has (or should have) applied on a cluster"""
    cluster: ClusterRef
    hash: str
    status: FeatureStatus
    failure_message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "cluster": self.cluster.to_dict(),
            "hash": self.hash,
            "status": self.status.value,
            "failureMessage": self.failure_message,
        }


@dataclass(frozen=True)
class ClassifierReport:
    """
    Audit record binding a classifier to a cluster
    """
    classifier_name: str
    cluster: ClusterRef
    matched: bool
    hash: str
    status: FeatureStatus
    failure_message: Optional[str] = None

    @property
    def name(self) -> str:
        return report_name(self.classifier_name, self.cluster)

    @property
    def labels(self) -> Dict[str, str]:
        return report_labels(self.classifier_name, self.cluster)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "labels": dict(sorted(self.labels.items())),
            "classifierName": self.classifier_name,
            "cluster": self.cluster.to_dict(),
            "match": self.matched,
            "hash": self.hash,
            "status": self.status.value,
            "failureMessage": self.failure_message,
        }


def report_name(classifier_name: str, cluster: ClusterRef) -> str:
    """
    Name of the ClassifierReport for (classifier, cluster)

    The cluster namespace is not part of the name, so names are unique only
    among clusters of one namespace; ClusterRef.key is the full identity.
    """
    return f"{cluster.cluster_type.value.lower()}--{classifier_name}--{cluster.name}"


def report_labels(classifier_name: str, cluster: ClusterRef) -> Dict[str, str]:
    return {
        REPORT_CLASSIFIER_NAME_LABEL: classifier_name,
        REPORT_CLUSTER_NAME_LABEL: cluster.name,
        REPORT_CLUSTER_TYPE_LABEL: cluster.cluster_type.value.lower(),
    }
