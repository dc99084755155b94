"""
Test label and field filter matching
"""

import pytest

from clusterclassifier.errors import UnsupportedFieldError
from clusterclassifier.evaluation.filters import (
    check_field_filters,
    field_selector_value,
    match_field_filter,
    match_label_filter,
    select
)
from clusterclassifier.k8s.registry import ResourceKindRegistry
from clusterclassifier.models import FieldFilter, LabelFilter, Resource


def _pod(name="web", labels=None, phase="Running", host_network=False):
    return Resource.from_dict({
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": name, "namespace": "default", "labels": labels or {}},
        "spec": {"hostNetwork": host_network, "nodeName": "node-1"},
        "status": {"phase": phase},
    })


def test_label_equal_and_different():
    pod = _pod(labels={"app": "web"})

    assert match_label_filter(pod, LabelFilter("app", "Equal", "web"))
    assert not match_label_filter(pod, LabelFilter("app", "Equal", "db"))
    assert match_label_filter(pod, LabelFilter("app", "Different", "db"))
    assert not match_label_filter(pod, LabelFilter("app", "Different", "web"))


def test_missing_label_counts_as_different():
    pod = _pod(labels={})

    assert not match_label_filter(pod, LabelFilter("app", "Equal", "web"))
    assert not match_label_filter(pod, LabelFilter("app", "Equal", ""))
    assert match_label_filter(pod, LabelFilter("app", "Different", "web"))


def test_field_filters():
    pod = _pod(phase="Pending", host_network=True)

    assert match_field_filter(pod, FieldFilter("status.phase", "Equal", "Pending"))
    assert match_field_filter(pod, FieldFilter("status.phase", "Different", "Running"))
    assert match_field_filter(pod, FieldFilter("metadata.name", "Equal", "web"))
    assert match_field_filter(pod, FieldFilter("metadata.namespace", "Equal", "default"))
    assert match_field_filter(pod, FieldFilter("spec.hostNetwork", "Equal", "true"))
    # Absent field reads as the empty string
    assert match_field_filter(pod, FieldFilter("status.podIP", "Equal", ""))


def test_field_selector_value():
    assert field_selector_value(None) == ""
    assert field_selector_value(True) == "true"
    assert field_selector_value(False) == "false"
    assert field_selector_value(3) == "3"


def test_select_ands_all_filters():
    pods = [
        _pod("a", labels={"app": "web", "tier": "front"}, phase="Running"),
        _pod("b", labels={"app": "web", "tier": "back"}, phase="Running"),
        _pod("c", labels={"app": "web", "tier": "front"}, phase="Failed"),
    ]

    selected = select(
        pods,
        label_filters=[LabelFilter("app", "Equal", "web"), LabelFilter("tier", "Equal", "front")],
        field_filters=[FieldFilter("status.phase", "Equal", "Running")]
    )

    assert [p.name for p in selected] == ["a"]


def test_unsupported_field_is_rejected():
    registry = ResourceKindRegistry.with_builtin_kinds()
    supported = registry.supported_fields("apps", "v1", "Deployment")

    with pytest.raises(UnsupportedFieldError) as excinfo:
        check_field_filters([FieldFilter("spec.replicas", "Equal", "3")], supported, "Deployment")

    assert "spec.replicas" in str(excinfo.value)
    assert excinfo.value.kind == "Deployment"


def test_pod_field_selectors_supported():
    registry = ResourceKindRegistry.with_builtin_kinds()
    supported = registry.supported_fields("", "v1", "Pod")

    check_field_filters([
        FieldFilter("status.phase", "Equal", "Running"),
        FieldFilter("spec.nodeName", "Different", "node-2"),
        FieldFilter("metadata.name", "Equal", "web"),
    ], supported, "Pod")
