"""
Deployed resource constraint evaluation

A constraint is satisfied when the number of resources surviving every
filter (kind/namespace scope, labels, fields, script) lies within
[min_count, max_count].
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..errors import PredicateEvaluationError, UnsupportedFieldError
from ..k8s.registry import ResourceKindRegistry
from ..models import DeployedResourceConstraint, Resource
from ..utils.logger import get_logger
from .filters import check_field_filters, select
from .script import ScriptEvaluator, ScriptPredicate

logger = get_logger("ConstraintEvaluator")


@dataclass(frozen=True)
class ConstraintResult:
    """
    Outcome of one resource constraint on one cluster
    """
    constraint: DeployedResourceConstraint
    satisfied: bool
    count: int             # Resources that survived every filter
    error: Optional[str] = None

    def describe(self) -> str:
        if self.error:
            return f"{self.constraint.describe()}: {self.error}"
        max_count = self.constraint.max_count
        bounds = f"[{self.constraint.effective_min_count}, {'inf' if max_count is None else max_count}]"
        return f"{self.constraint.describe()}: {self.count} matching, expected {bounds}"


def in_scope(constraint: DeployedResourceConstraint, resource: Resource) -> bool:
    """Same group/version/kind, and same namespace (empty: cluster scoped)"""
    return (
        resource.group == constraint.group
        and resource.version == constraint.version
        and resource.kind == constraint.kind
        and resource.namespace == constraint.namespace
    )


def within_bounds(count: int, min_count: int, max_count: Optional[int]) -> bool:
    if count < min_count:
        return False
    if max_count is not None and count > max_count:
        return False
    return True


class ConstraintEvaluator:
    """
    Evaluates a DeployedResourceConstraint against a resource inventory

    Steps:
        1. keep resources in the constraint's kind and namespace scope
        2. apply label filters (ANDed)
        3. apply field filters (ANDed), supported field selectors only
        4. run the script, if any, once per survivor
        5. check the survivor count against the bounds
    """

    def __init__(
        self,
        registry: Optional[ResourceKindRegistry] = None,
        script_evaluator: Optional[ScriptEvaluator] = None
    ):
        """
        Args:
            registry: Resource kinds and their field selectors
                      (builtin Kubernetes kinds if None)
            script_evaluator: External script runtime, needed only by
                              constraints carrying a script
        """
        self.registry = registry or ResourceKindRegistry.with_builtin_kinds()
        self.script = ScriptPredicate(script_evaluator)

    def matching_resources(
        self,
        constraint: DeployedResourceConstraint,
        inventory: Iterable[Resource]
    ) -> List[Resource]:
        """
        Resources satisfying every filter of the constraint

        Raises:
            UnsupportedFieldError: a field filter uses an unsupported field
            PredicateEvaluationError: the script evaluator failed
        """
        supported = self.registry.supported_fields(constraint.group, constraint.version, constraint.kind)
        check_field_filters(constraint.field_filters, supported, constraint.kind)

        kind = self.registry.lookup(constraint.group, constraint.version, constraint.kind)
        if kind is not None and not kind.namespaced and constraint.namespace:
            logger.warning(f"{constraint.kind} is cluster scoped but constraint "
                           f"sets namespace {constraint.namespace!r}: nothing will match")

        candidates = [r for r in inventory if in_scope(constraint, r)]
        survivors = select(candidates, constraint.label_filters, constraint.field_filters)

        if constraint.script:
            survivors = [r for r in survivors if self.script.matches(constraint.script, r)]

        logger.debug(f"{constraint.describe()}: {len(candidates)} in scope, "
                     f"{len(survivors)} after filters")
        return survivors

    def evaluate(
        self,
        constraint: DeployedResourceConstraint,
        inventory: Iterable[Resource]
    ) -> ConstraintResult:
        """
        Decide whether constraint is satisfied by inventory

        Never raises for evaluation failures: unsupported fields and script
        errors make the constraint fail closed with the error attached.

        Args:
            constraint: Constraint to check
            inventory: Resources of the cluster (may contain other kinds)

        Returns:
            ConstraintResult
        """
        try:
            survivors = self.matching_resources(constraint, inventory)
        except (UnsupportedFieldError, PredicateEvaluationError) as e:
            logger.warning(f"⚠️  {constraint.describe()} failed closed: {e}")
            return ConstraintResult(constraint=constraint, satisfied=False, count=0, error=str(e))

        count = len(survivors)
        satisfied = within_bounds(count, constraint.effective_min_count, constraint.max_count)

        return ConstraintResult(constraint=constraint, satisfied=satisfied, count=count)
