"""
Classification Orchestrator
Runs one complete evaluation pass: every classifier on every cluster,
label arbitration per cluster, then status reporting.

Architecture:
- Clusters are independent and evaluated in parallel (thread pool)
- Within a cluster, all classifiers are evaluated before arbitration starts
- Results are ordered by cluster and classifier name, never by completion
  order, so an unchanged pass produces identical output
"""

import json
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
from concurrent.futures import ThreadPoolExecutor, as_completed

from .arbitration.labels import ArbitrationResult, ClassifierOrdering, LabelArbitrationEngine, ORDERINGS
from .arbitration.status import StatusReport, StatusReporter
from .evaluation.aggregator import ClassificationAggregator, ClassificationResult
from .evaluation.constraints import ConstraintEvaluator
from .evaluation.script import ScriptEvaluator
from .k8s.inventory import ClusterVersionProvider, ResourceInventoryProvider
from .k8s.registry import ResourceKindRegistry
from .metrics.collector import EvaluationMetrics
from .models import Classifier, ClusterRef
from .utils.config_loader import ConfigLoader
from .utils.logger import configure, get_logger

logger = get_logger("Orchestrator")


@dataclass(frozen=True)
class PassResult:
    """Output of one evaluation pass"""
    classifications: Tuple[ClassificationResult, ...] = ()
    arbitrations: Dict[str, ArbitrationResult] = field(default_factory=dict)  # cluster key -> result
    status: StatusReport = field(default_factory=StatusReport)

    @property
    def statuses(self):
        return self.status.statuses

    @property
    def reports(self):
        return self.status.reports

    def classification(self, classifier_name: str, cluster_key: str) -> Optional[ClassificationResult]:
        for result in self.classifications:
            if result.classifier_name == classifier_name and result.cluster.key == cluster_key:
                return result
        return None

    def to_dict(self) -> dict:
        return {
            "arbitrations": [self.arbitrations[key].to_dict() for key in self.arbitrations],
            **self.status.to_dict(),
        }

    def to_json(self) -> str:
        """Canonical JSON; byte-identical for identical inputs"""
        return json.dumps(self.to_dict(), sort_keys=True, indent=2)


class ClassificationOrchestrator:
    """
    Evaluates classifiers against clusters and arbitrates their labels
    """

    def __init__(
        self,
        inventory: ResourceInventoryProvider,
        versions: Optional[ClusterVersionProvider] = None,
        script_evaluator: Optional[ScriptEvaluator] = None,
        registry: Optional[ResourceKindRegistry] = None,
        ordering: Optional[ClassifierOrdering] = None,
        max_workers: int = 4,
        metrics: Optional[EvaluationMetrics] = None
    ):
        """
        Args:
            inventory: Resource inventory collaborator
            versions: Cluster version collaborator
            script_evaluator: Script runtime for constraints with a script
            registry: Resource kinds (builtin Kubernetes kinds if None)
            ordering: Classifier ordering for arbitration
            max_workers: Clusters evaluated concurrently
            metrics: Optional Prometheus metrics
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        self.aggregator = ClassificationAggregator(
            inventory=inventory,
            versions=versions,
            constraint_evaluator=ConstraintEvaluator(registry=registry, script_evaluator=script_evaluator)
        )
        self.arbitration = LabelArbitrationEngine(ordering=ordering)
        self.reporter = StatusReporter()
        self.max_workers = max_workers
        self.metrics = metrics

        logger.info(f"Classification orchestrator initialized (max_workers={max_workers})")

    @classmethod
    def from_config(
        cls,
        config: ConfigLoader,
        inventory: ResourceInventoryProvider,
        versions: Optional[ClusterVersionProvider] = None,
        script_evaluator: Optional[ScriptEvaluator] = None,
        metrics: Optional[EvaluationMetrics] = None
    ) -> "ClassificationOrchestrator":
        """Build an orchestrator from engine.yaml settings (also applies its logging section)"""
        configure(level=config.engine.logging.level, log_file=config.engine.logging.file)
        return cls(
            inventory=inventory,
            versions=versions,
            script_evaluator=script_evaluator,
            registry=config.build_registry(),
            ordering=ORDERINGS[config.engine.ordering],
            max_workers=config.engine.max_workers,
            metrics=metrics
        )

    def evaluate_cluster(
        self,
        classifiers: Sequence[Classifier],
        cluster: ClusterRef
    ) -> Tuple[List[ClassificationResult], ArbitrationResult]:
        """
        Classify one cluster and arbitrate its labels

        Classifiers being deleted are evaluated but never take part in
        arbitration, so the keys they held become available.

        Returns:
            (classification results, arbitration result)
        """
        try:
            results = self.aggregator.classify_all(classifiers, cluster)
        except Exception as e:
            logger.error(f"❌ Evaluation of cluster {cluster.key} failed: {e}")
            results = [
                ClassificationResult(
                    classifier=classifier,
                    cluster=cluster,
                    matched=False,
                    failures=(f"evaluation of cluster {cluster.key} failed: {e}",)
                )
                for classifier in classifiers
            ]

        matching = [r.classifier for r in results if r.matched and not r.classifier.is_deleted]
        arbitration = self.arbitration.arbitrate(cluster, matching)
        return results, arbitration

    def run_pass(
        self,
        classifiers: Sequence[Classifier],
        clusters: Sequence[ClusterRef]
    ) -> PassResult:
        """
        Run a full evaluation pass

        Args:
            classifiers: Every classifier to evaluate
            clusters: Every managed cluster

        Returns:
            PassResult
        """
        self._check_unique([c.name for c in classifiers], "classifier")
        self._check_unique([c.key for c in clusters], "cluster")

        logger.info(f"Starting pass: {len(classifiers)} classifiers x {len(clusters)} clusters")
        start_time = time.time()

        per_cluster: Dict[str, Tuple[List[ClassificationResult], ArbitrationResult]] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self.evaluate_cluster, classifiers, cluster): cluster
                for cluster in clusters
            }
            for future in as_completed(futures):
                cluster = futures[future]
                per_cluster[cluster.key] = future.result()

        # ── Deterministic assembly ────────────────────────────────────
        classifications: List[ClassificationResult] = []
        arbitrations: Dict[str, ArbitrationResult] = {}
        for cluster in sorted(clusters, key=lambda c: c.sort_key()):
            results, arbitration = per_cluster[cluster.key]
            classifications.extend(sorted(results, key=lambda r: r.classifier_name))
            arbitrations[cluster.key] = arbitration

        status = self.reporter.report(classifications, arbitrations)

        duration = time.time() - start_time
        if self.metrics is not None:
            for result in classifications:
                self.metrics.observe_classification(result)
            for arbitration in arbitrations.values():
                self.metrics.observe_arbitration(arbitration)
            self.metrics.pass_duration.observe(duration)

        matched = sum(1 for r in classifications if r.matched)
        logger.info(f"✅ Pass completed in {duration * 1000:.0f}ms: "
                    f"{matched}/{len(classifications)} (classifier, cluster) pairs match")

        return PassResult(
            classifications=tuple(classifications),
            arbitrations=arbitrations,
            status=status
        )

    @staticmethod
    def _check_unique(names: List[str], what: str):
        seen, duplicates = set(), set()
        for name in names:
            if name in seen:
                duplicates.add(name)
            seen.add(name)
        if duplicates:
            raise ValueError(f"duplicate {what} identities in pass input: {sorted(duplicates)}")
