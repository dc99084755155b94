"""
Test deployed resource constraint evaluation
"""

import pytest

from clusterclassifier.errors import ClassifierValidationError
from clusterclassifier.evaluation.constraints import ConstraintEvaluator
from clusterclassifier.k8s.registry import ResourceKind, ResourceKindRegistry
from clusterclassifier.models import DeployedResourceConstraint, FieldFilter, LabelFilter


@pytest.fixture
def deployments(resource_factory):
    def build(count, namespace="default", labels=None):
        return [resource_factory(name=f"app-{i}", namespace=namespace, labels=labels) for i in range(count)]
    return build


def _constraint(**kwargs):
    base = dict(group="apps", version="v1", kind="Deployment", namespace="default")
    base.update(kwargs)
    return DeployedResourceConstraint(**base)


@pytest.mark.parametrize("count,expected", [(1, False), (2, True), (3, True), (4, True), (5, False)])
def test_count_bounds(count, expected, deployments):
    """MinCount=2, MaxCount=4"""
    evaluator = ConstraintEvaluator()
    constraint = _constraint(min_count=2, max_count=4)

    result = evaluator.evaluate(constraint, deployments(count))

    assert result.count == count
    assert result.satisfied is expected


def test_default_min_count_is_one(deployments):
    """No bounds and nothing matching: not satisfied"""
    evaluator = ConstraintEvaluator()
    constraint = _constraint()

    assert evaluator.evaluate(constraint, []).satisfied is False
    assert evaluator.evaluate(constraint, deployments(1)).satisfied is True
    assert evaluator.evaluate(constraint, deployments(50)).satisfied is True


def test_min_count_zero_allows_absence(deployments):
    evaluator = ConstraintEvaluator()
    constraint = _constraint(min_count=0, max_count=0)

    assert evaluator.evaluate(constraint, []).satisfied is True
    assert evaluator.evaluate(constraint, deployments(1)).satisfied is False


def test_kind_and_namespace_scope(deployments, resource_factory):
    evaluator = ConstraintEvaluator()
    inventory = (
        deployments(2, namespace="kube-system")
        + deployments(3, namespace="default")
        + [resource_factory(kind="StatefulSet", name="db", namespace="kube-system")]
    )

    result = evaluator.evaluate(_constraint(namespace="kube-system"), inventory)

    assert result.count == 2


def test_empty_namespace_is_cluster_scoped(resource_factory):
    evaluator = ConstraintEvaluator()
    inventory = [
        resource_factory(kind="Node", name="node-1", namespace="", api_version="v1"),
        resource_factory(kind="Node", name="node-2", namespace="", api_version="v1"),
        resource_factory(kind="Node", name="odd", namespace="default", api_version="v1"),
    ]
    constraint = DeployedResourceConstraint(group="", version="v1", kind="Node", min_count=2, max_count=2)

    result = evaluator.evaluate(constraint, inventory)

    assert result.satisfied is True
    assert result.count == 2


def test_label_and_field_filters(resource_factory):
    evaluator = ConstraintEvaluator()
    inventory = [
        resource_factory(name="coredns", namespace="kube-system", labels={"k8s-app": "kube-dns"}),
        resource_factory(name="metrics", namespace="kube-system", labels={"k8s-app": "metrics"}),
    ]
    constraint = _constraint(
        namespace="kube-system",
        label_filters=(LabelFilter("k8s-app", "Equal", "kube-dns"),),
        field_filters=(FieldFilter("metadata.name", "Equal", "coredns"),)
    )

    result = evaluator.evaluate(constraint, inventory)

    assert result.satisfied is True
    assert result.count == 1


def test_unsupported_field_fails_closed(deployments):
    evaluator = ConstraintEvaluator()
    constraint = _constraint(field_filters=(FieldFilter("spec.replicas", "Equal", "1"),))

    result = evaluator.evaluate(constraint, deployments(3))

    print(f"\n✅ {result.describe()}")
    assert result.satisfied is False
    assert "spec.replicas" in result.error


def test_registered_custom_kind_fields(resource_factory):
    registry = ResourceKindRegistry.with_builtin_kinds()
    registry.register(ResourceKind("cert-manager.io", "v1", "Certificate",
                                   field_selectors=frozenset({"spec.secretName"})))
    evaluator = ConstraintEvaluator(registry=registry)
    inventory = [
        resource_factory(kind="Certificate", name="tls", api_version="cert-manager.io/v1",
                         spec={"secretName": "tls-secret"})
    ]
    constraint = DeployedResourceConstraint(
        group="cert-manager.io", version="v1", kind="Certificate", namespace="default",
        field_filters=(FieldFilter("spec.secretName", "Equal", "tls-secret"),)
    )

    assert evaluator.evaluate(constraint, inventory).satisfied is True


def test_script_filters_candidates(deployments, script_evaluator_factory):
    scripts = script_evaluator_factory({"even": lambda r: {"matching": int(r.name.split("-")[1]) % 2 == 0}})
    evaluator = ConstraintEvaluator(script_evaluator=scripts)
    constraint = _constraint(script="even", min_count=3, max_count=3)

    result = evaluator.evaluate(constraint, deployments(6))

    assert result.count == 3
    assert result.satisfied is True
    assert len(scripts.calls) == 6


def test_script_runs_only_on_filtered_candidates(deployments, resource_factory, script_evaluator_factory):
    scripts = script_evaluator_factory({"all": lambda r: True})
    evaluator = ConstraintEvaluator(script_evaluator=scripts)
    inventory = deployments(2, labels={"app": "web"}) + [resource_factory(name="other")]
    constraint = _constraint(script="all", label_filters=(LabelFilter("app", "Equal", "web"),))

    evaluator.evaluate(constraint, inventory)

    assert sorted(name for _, name in scripts.calls) == ["app-0", "app-1"]


def test_script_error_fails_closed(deployments, script_evaluator_factory):
    scripts = script_evaluator_factory(fail_with=TimeoutError("script timed out"))
    evaluator = ConstraintEvaluator(script_evaluator=scripts)

    result = evaluator.evaluate(_constraint(script="anything"), deployments(2))

    assert result.satisfied is False
    assert "timed out" in result.error


def test_script_bad_result_shape_fails_closed(deployments, script_evaluator_factory):
    scripts = script_evaluator_factory({"shape": lambda r: {"match": True}})
    evaluator = ConstraintEvaluator(script_evaluator=scripts)

    result = evaluator.evaluate(_constraint(script="shape"), deployments(1))

    assert result.satisfied is False
    assert "matching" in result.error


def test_script_without_evaluator_fails_closed(deployments):
    evaluator = ConstraintEvaluator()

    result = evaluator.evaluate(_constraint(script="return true"), deployments(1))

    assert result.satisfied is False
    assert "no script evaluator" in result.error


def test_constraint_validation():
    with pytest.raises(ClassifierValidationError):
        _constraint(min_count=5, max_count=2)
    with pytest.raises(ClassifierValidationError):
        _constraint(min_count=-1)
    with pytest.raises(ClassifierValidationError):
        _constraint(kind="")
    with pytest.raises(ClassifierValidationError):
        _constraint(label_filters=(LabelFilter("app", "Like", "web"),))


def test_constraint_from_dict():
    constraint = DeployedResourceConstraint.from_dict({
        "group": "apps",
        "version": "v1",
        "kind": "Deployment",
        "namespace": "kube-system",
        "labelFilters": [{"key": "k8s-app", "operation": "Equal", "value": "kube-dns"}],
        "fieldFilters": [{"field": "metadata.name", "operation": "Different", "value": "x"}],
        "minCount": 1,
        "maxCount": 2,
    })

    assert constraint.label_filters[0].key == "k8s-app"
    assert constraint.field_filters[0].operation.value == "Different"
    assert constraint.max_count == 2
    assert constraint.to_dict()["minCount"] == 1
