"""
Test classification of clusters (AND of all constraints)
"""

from clusterclassifier.evaluation.aggregator import ClassificationAggregator
from clusterclassifier.k8s.inventory import InventorySnapshot, StaticVersionProvider
from clusterclassifier.models import (
    Classifier,
    ClassifierLabel,
    DeployedResourceConstraint,
    KubernetesVersionConstraint
)


class CountingInventory:
    """Wraps a snapshot and counts provider calls"""

    def __init__(self, snapshot):
        self.snapshot = snapshot
        self.calls = 0

    def list_resources(self, cluster, group, version, kind, namespace=""):
        self.calls += 1
        return self.snapshot.list_resources(cluster, group, version, kind, namespace)


class BrokenInventory:
    def list_resources(self, cluster, group, version, kind, namespace=""):
        raise ConnectionError("apiserver unreachable")


def _dns_constraint():
    return DeployedResourceConstraint(group="apps", version="v1", kind="Deployment", namespace="kube-system")


def _classifier(name="dns", resource_constraints=(), version_constraints=()):
    return Classifier(
        name=name,
        labels=(ClassifierLabel("env", "prod"),),
        resource_constraints=resource_constraints,
        version_constraints=version_constraints
    )


def test_no_constraints_matches(cluster_x):
    """Absence of constraints is vacuously true"""
    aggregator = ClassificationAggregator(inventory=InventorySnapshot())

    result = aggregator.classify(_classifier(), cluster_x)

    assert result.matched is True
    assert result.failures == ()


def test_resource_and_version_constraints_are_anded(cluster_x, resource_factory):
    snapshot = InventorySnapshot({cluster_x.key: [resource_factory(name="coredns", namespace="kube-system")]})
    classifier = _classifier(
        resource_constraints=(_dns_constraint(),),
        version_constraints=(KubernetesVersionConstraint("v1.25.0", "GreaterThanOrEqualTo"),)
    )

    new_enough = ClassificationAggregator(snapshot, StaticVersionProvider({cluster_x.key: "v1.27.1"}))
    too_old = ClassificationAggregator(snapshot, StaticVersionProvider({cluster_x.key: "v1.24.9"}))

    assert new_enough.classify(classifier, cluster_x).matched is True

    result = too_old.classify(classifier, cluster_x)
    assert result.matched is False
    assert result.resource_results[0].satisfied is True
    assert result.version_results[0].satisfied is False
    assert result.failures == ()


def test_one_failing_constraint_means_no_match(cluster_x, resource_factory):
    snapshot = InventorySnapshot({cluster_x.key: [resource_factory(name="coredns", namespace="kube-system")]})
    classifier = _classifier(resource_constraints=(
        _dns_constraint(),
        DeployedResourceConstraint(group="apps", version="v1", kind="StatefulSet", namespace="kube-system"),
    ))

    result = ClassificationAggregator(snapshot).classify(classifier, cluster_x)

    assert result.matched is False
    assert [r.satisfied for r in result.resource_results] == [True, False]


def test_inventory_failure_fails_closed(cluster_x):
    classifier = _classifier(resource_constraints=(_dns_constraint(),))

    result = ClassificationAggregator(BrokenInventory()).classify(classifier, cluster_x)

    assert result.matched is False
    assert len(result.failures) == 1
    assert "apiserver unreachable" in result.failures[0]


def test_missing_version_fails_closed(cluster_x):
    classifier = _classifier(version_constraints=(KubernetesVersionConstraint("v1.25.0", "GreaterThan"),))

    without_provider = ClassificationAggregator(InventorySnapshot()).classify(classifier, cluster_x)
    unknown_cluster = ClassificationAggregator(InventorySnapshot(), StaticVersionProvider({})).classify(
        classifier, cluster_x
    )

    assert without_provider.matched is False
    assert "no cluster version provider" in without_provider.failures[0]
    assert unknown_cluster.matched is False
    assert cluster_x.key in unknown_cluster.failures[0]


def test_unparseable_cluster_version_recorded(cluster_x):
    classifier = _classifier(version_constraints=(KubernetesVersionConstraint("v1.25.0", "GreaterThan"),))
    aggregator = ClassificationAggregator(InventorySnapshot(), StaticVersionProvider({cluster_x.key: "unknown"}))

    result = aggregator.classify(classifier, cluster_x)

    assert result.matched is False
    assert "unknown" in result.failures[0]


def test_classify_all_reads_inventory_once_per_kind(cluster_x, resource_factory):
    inventory = CountingInventory(
        InventorySnapshot({cluster_x.key: [resource_factory(name="coredns", namespace="kube-system")]})
    )
    classifiers = [
        _classifier("a", resource_constraints=(_dns_constraint(),)),
        _classifier("b", resource_constraints=(_dns_constraint(),)),
        _classifier("c"),
    ]

    results = ClassificationAggregator(inventory).classify_all(classifiers, cluster_x)

    assert [r.classifier_name for r in results] == ["a", "b", "c"]
    assert all(r.matched for r in results)
    assert inventory.calls == 1
