"""
Shared test helpers
"""

import pytest

from clusterclassifier.models import ClusterRef, Resource


def make_resource(kind="Deployment", name="app", namespace="default", labels=None,
                  api_version="apps/v1", **fields):
    """Build a Resource from a few attributes; extra kwargs become top-level fields"""
    obj = {
        "apiVersion": api_version,
        "kind": kind,
        "metadata": {"name": name, "labels": dict(labels or {})},
    }
    if namespace:
        obj["metadata"]["namespace"] = namespace
    obj.update(fields)
    return Resource.from_dict(obj)


class FakeScriptEvaluator:
    """Script runtime stand-in: the script text is a Python predicate name"""

    def __init__(self, predicates=None, fail_with=None):
        self.predicates = predicates or {}
        self.fail_with = fail_with
        self.calls = []

    def evaluate(self, script, resource):
        self.calls.append((script, resource.name))
        if self.fail_with is not None:
            raise self.fail_with
        return self.predicates[script](resource)


@pytest.fixture
def resource_factory():
    return make_resource


@pytest.fixture
def script_evaluator_factory():
    return FakeScriptEvaluator


@pytest.fixture
def cluster_x():
    return ClusterRef(namespace="default", name="x")


@pytest.fixture
def cluster_y():
    return ClusterRef(namespace="default", name="y")
