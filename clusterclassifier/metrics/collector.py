"""
Prometheus metrics for classification passes

Metrics are registered on the CollectorRegistry passed in (a fresh one if
none), never on the process-wide default registry. Exposing them is up to
the caller.
"""

from typing import Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

from ..arbitration.labels import ArbitrationResult
from ..evaluation.aggregator import ClassificationResult


class EvaluationMetrics:
    """Counters and gauges describing classification passes"""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()

        self.evaluations = Counter(
            'classifier_evaluations_total',
            'Classifier evaluations per cluster',
            ['classifier', 'result'],
            registry=self.registry
        )

        self.constraint_failures = Counter(
            'classifier_constraint_failures_total',
            'Constraints that failed closed because of an evaluation error',
            ['classifier'],
            registry=self.registry
        )

        self.label_conflicts = Gauge(
            'classifier_label_conflicts',
            'Label requests denied because another classifier owns the key',
            ['cluster'],
            registry=self.registry
        )

        self.managed_labels = Gauge(
            'classifier_managed_labels',
            'Label keys with an owner on the cluster',
            ['cluster'],
            registry=self.registry
        )

        self.pass_duration = Histogram(
            'classifier_pass_duration_seconds',
            'Duration of a full classification pass',
            registry=self.registry
        )

    def observe_classification(self, result: ClassificationResult):
        outcome = "match" if result.matched else ("error" if result.failures else "nomatch")
        self.evaluations.labels(classifier=result.classifier_name, result=outcome).inc()
        if result.failures:
            self.constraint_failures.labels(classifier=result.classifier_name).inc(len(result.failures))

    def observe_arbitration(self, arbitration: ArbitrationResult):
        cluster = arbitration.cluster.key
        self.label_conflicts.labels(cluster=cluster).set(arbitration.conflicts)
        self.managed_labels.labels(cluster=cluster).set(len(arbitration.owners))

    def sample(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Current value of a sample (handy in tests and debugging)"""
        return self.registry.get_sample_value(name, labels or {})
