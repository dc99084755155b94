"""
Event sources: selecting resources rather than counting them

An EventSource uses the same kind/namespace/label/script selection as a
deployed resource constraint. Instead of a bounded count it reports which
resources currently match, optionally collecting them.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Tuple

from ..errors import ClassifierValidationError, PredicateEvaluationError, UnsupportedFieldError
from ..models import DeployedResourceConstraint, LabelFilter, Resource
from ..utils.logger import get_logger
from .constraints import ConstraintEvaluator

logger = get_logger("EventSourceMatcher")


@dataclass(frozen=True)
class EventSource:
    """Resources of interest on a cluster"""
    name: str
    group: str
    version: str
    kind: str
    namespace: str = ""
    label_filters: Tuple[LabelFilter, ...] = ()
    script: str = ""
    collect_resources: bool = False

    def __post_init__(self):
        if not self.name:
            raise ClassifierValidationError("event source name must not be empty")
        # Same validation rules as a resource constraint
        object.__setattr__(self, "label_filters", self.as_constraint().label_filters)

    def as_constraint(self) -> DeployedResourceConstraint:
        """Selection part of this source, with no count bounds"""
        return DeployedResourceConstraint(
            group=self.group,
            version=self.version,
            kind=self.kind,
            namespace=self.namespace,
            label_filters=self.label_filters,
            min_count=0,
            script=self.script
        )

    @classmethod
    def from_dict(cls, manifest: Mapping[str, Any]) -> "EventSource":
        metadata = manifest.get("metadata") or {}
        spec = manifest.get("spec") or {}
        return cls(
            name=metadata.get("name", ""),
            group=spec.get("group", ""),
            version=spec.get("version", ""),
            kind=spec.get("kind", ""),
            namespace=spec.get("namespace", ""),
            label_filters=tuple(LabelFilter.from_dict(f) for f in spec.get("labelFilters") or ()),
            script=spec.get("script", ""),
            collect_resources=bool(spec.get("collectResources", False))
        )


@dataclass(frozen=True)
class EventMatch:
    """Resources matching an event source on one cluster"""
    source_name: str
    count: int
    resources: Tuple[Resource, ...] = ()  # filled only when collect_resources is set
    error: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.error is None and self.count > 0


class EventSourceMatcher:
    """
    Finds the resources an EventSource selects
    """

    def __init__(self, constraint_evaluator: Optional[ConstraintEvaluator] = None):
        self.constraint_evaluator = constraint_evaluator or ConstraintEvaluator()

    def match(self, source: EventSource, resources: Iterable[Resource]) -> EventMatch:
        """
        Args:
            source: Event source to evaluate
            resources: Cluster inventory

        Returns:
            EventMatch; script failures fail closed with the error attached
        """
        try:
            survivors = self.constraint_evaluator.matching_resources(source.as_constraint(), resources)
        except (UnsupportedFieldError, PredicateEvaluationError) as e:
            logger.warning(f"⚠️  Event source {source.name} failed closed: {e}")
            return EventMatch(source_name=source.name, count=0, error=str(e))

        ordered = tuple(sorted(survivors, key=lambda r: (r.namespace, r.name)))
        logger.info(f"Event source {source.name}: {len(ordered)} matching {source.kind}")

        return EventMatch(
            source_name=source.name,
            count=len(ordered),
            resources=ordered if source.collect_resources else ()
        )
