"""
Classification of one cluster by a set of classifiers

A classifier matches a cluster only if every resource constraint and
every version constraint is satisfied; no constraints of a kind means
that kind is satisfied.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..errors import InventoryError
from ..k8s.inventory import ClusterVersionProvider, ResourceInventoryProvider
from ..models import Classifier, ClusterRef, DeployedResourceConstraint, Resource
from ..utils.logger import get_logger
from .constraints import ConstraintEvaluator, ConstraintResult
from .version import VersionComparator, VersionResult

logger = get_logger("ClassificationAggregator")


@dataclass(frozen=True)
class ClassificationResult:
    """Verdict of one classifier on one cluster"""
    classifier: Classifier
    cluster: ClusterRef
    matched: bool
    resource_results: Tuple[ConstraintResult, ...] = ()
    version_results: Tuple[VersionResult, ...] = ()
    failures: Tuple[str, ...] = ()  # evaluation errors, not plain mismatches

    @property
    def classifier_name(self) -> str:
        return self.classifier.name


class _ClusterView:
    """
    Inventory and version of a single cluster, read once per pass

    Every classifier evaluated through the same view sees the same data,
    and repeated lookups of one kind/namespace hit the provider once.
    """

    def __init__(
        self,
        cluster: ClusterRef,
        inventory: ResourceInventoryProvider,
        versions: Optional[ClusterVersionProvider]
    ):
        self.cluster = cluster
        self.inventory = inventory
        self.versions = versions
        self._resources: Dict[Tuple[str, str, str, str], List[Resource]] = {}
        self._version: Optional[str] = None
        self._version_error: Optional[str] = None
        self._version_loaded = False

    def resources(self, constraint: DeployedResourceConstraint) -> List[Resource]:
        """
        Raises:
            InventoryError: if the provider failed
        """
        key = (constraint.group, constraint.version, constraint.kind, constraint.namespace)
        if key not in self._resources:
            try:
                self._resources[key] = list(self.inventory.list_resources(
                    self.cluster, constraint.group, constraint.version,
                    constraint.kind, constraint.namespace
                ))
            except Exception as e:
                raise InventoryError(
                    f"listing {constraint.describe()} on {self.cluster.key} failed: {e}"
                ) from e
        return self._resources[key]

    def version(self) -> str:
        """
        Raises:
            InventoryError: if the version is not available
        """
        if not self._version_loaded:
            self._version_loaded = True
            if self.versions is None:
                self._version_error = "no cluster version provider configured"
            else:
                try:
                    self._version = self.versions.get_version(self.cluster)
                except Exception as e:
                    self._version_error = f"reading version of {self.cluster.key} failed: {e}"
        if self._version_error is not None:
            raise InventoryError(self._version_error)
        return self._version


class ClassificationAggregator:
    """
    ANDs all constraints of a classifier for one cluster
    """

    def __init__(
        self,
        inventory: ResourceInventoryProvider,
        versions: Optional[ClusterVersionProvider] = None,
        constraint_evaluator: Optional[ConstraintEvaluator] = None,
        version_comparator: Optional[VersionComparator] = None
    ):
        """
        Args:
            inventory: Resource inventory collaborator
            versions: Cluster version collaborator (needed only when
                      classifiers carry version constraints)
            constraint_evaluator: Evaluator for resource constraints
            version_comparator: Evaluator for version constraints
        """
        self.inventory = inventory
        self.versions = versions
        self.constraint_evaluator = constraint_evaluator or ConstraintEvaluator()
        self.version_comparator = version_comparator or VersionComparator()

    def classify(self, classifier: Classifier, cluster: ClusterRef) -> ClassificationResult:
        """Evaluate a single classifier on cluster"""
        view = _ClusterView(cluster, self.inventory, self.versions)
        return self._classify(classifier, view)

    def classify_all(
        self,
        classifiers: Sequence[Classifier],
        cluster: ClusterRef
    ) -> List[ClassificationResult]:
        """
        Evaluate every classifier on cluster against one shared view

        Args:
            classifiers: Classifiers to evaluate
            cluster: Target cluster

        Returns:
            One ClassificationResult per classifier, in input order
        """
        view = _ClusterView(cluster, self.inventory, self.versions)
        results = [self._classify(classifier, view) for classifier in classifiers]

        matched = [r.classifier_name for r in results if r.matched]
        logger.info(f"Cluster {cluster.key}: {len(matched)}/{len(results)} classifiers match "
                    f"{matched}")
        return results

    def _classify(self, classifier: Classifier, view: _ClusterView) -> ClassificationResult:
        failures: List[str] = []

        # ── Resource constraints ─────────────────────────────────────
        resource_results: List[ConstraintResult] = []
        for constraint in classifier.resource_constraints:
            try:
                inventory = view.resources(constraint)
            except InventoryError as e:
                logger.warning(f"⚠️  {classifier.name} on {view.cluster.key}: {e}")
                result = ConstraintResult(constraint=constraint, satisfied=False, count=0, error=str(e))
            else:
                result = self.constraint_evaluator.evaluate(constraint, inventory)
            if result.error:
                failures.append(result.describe())
            resource_results.append(result)

        # ── Version constraints ──────────────────────────────────────
        version_results: List[VersionResult] = []
        if classifier.version_constraints:
            try:
                cluster_version = view.version()
            except InventoryError as e:
                logger.warning(f"⚠️  {classifier.name} on {view.cluster.key}: {e}")
                failures.append(str(e))
                version_results = [
                    VersionResult(satisfied=False, cluster_version="", error=str(e))
                    for _ in classifier.version_constraints
                ]
            else:
                for constraint in classifier.version_constraints:
                    result = self.version_comparator.evaluate(constraint, cluster_version)
                    if result.error:
                        failures.append(
                            f"version {constraint.comparison.value} {constraint.version}: {result.error}"
                        )
                    version_results.append(result)

        matched = (
            all(r.satisfied for r in resource_results)
            and all(r.satisfied for r in version_results)
        )

        logger.debug(f"{classifier.name} on {view.cluster.key}: matched={matched} "
                     f"({len(resource_results)} resource, {len(version_results)} version constraints)")

        return ClassificationResult(
            classifier=classifier,
            cluster=view.cluster,
            matched=matched,
            resource_results=tuple(resource_results),
            version_results=tuple(version_results),
            failures=tuple(failures)
        )
