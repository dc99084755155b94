"""
Test version parsing and comparison
"""

import pytest

from clusterclassifier.errors import VersionParseError
from clusterclassifier.evaluation.version import (
    VersionComparator,
    compare_versions,
    parse_version
)
from clusterclassifier.models import KubernetesComparison, KubernetesVersionConstraint


def test_parse_version():
    """Test normalization of version strings"""
    assert parse_version("v1.27.3") == (1, 27, 3)
    assert parse_version("1.28") == (1, 28, 0)
    assert parse_version("v2") == (2, 0, 0)
    assert parse_version("v1.27.3+k3s1") == (1, 27, 3)
    assert parse_version("v1.26.7-eks-2d98532") == (1, 26, 7)
    assert parse_version("release-1.29.0") == (1, 29, 0)


@pytest.mark.parametrize("version", ["", "latest", "v1.x", "1.2.3.4", "vv", "v1.02.3"])
def test_parse_version_rejects_garbage(version):
    with pytest.raises(VersionParseError):
        parse_version(version)


def test_numeric_not_lexicographic():
    """1.9 is older than 1.10, which a string comparison gets wrong"""
    assert compare_versions("v1.9.0", "v1.10.0", KubernetesComparison.LESS_THAN)
    assert not compare_versions("v1.9.0", "v1.10.0", KubernetesComparison.GREATER_THAN)
    assert compare_versions("1.10.0", "v1.9.12", "GreaterThan")


@pytest.mark.parametrize("comparison,expected", [
    ("Equal", False),
    ("NotEqual", True),
    ("GreaterThan", True),
    ("LessThan", False),
    ("GreaterThanOrEqualTo", True),
    ("LessThanOrEqualTo", False),
])
def test_all_comparisons(comparison, expected):
    assert compare_versions("v1.27.3", "v1.27.0", comparison) is expected


def test_equal_ignores_prefix_and_missing_patch():
    assert compare_versions("v1.27", "1.27.0", "Equal")
    assert compare_versions("1.27.0", "v1.27.0", "LessThanOrEqualTo")


def test_prerelease_and_build_parts_ignored():
    """Only major.minor.patch is compared, unlike semver precedence"""
    assert compare_versions("v1.27.0-rc.1", "v1.27.0", "Equal")
    assert compare_versions("v1.26.7-eks-2d98532", "v1.26.7", "GreaterThanOrEqualTo")
    assert not compare_versions("v1.27.0-alpha", "v1.27.0", "LessThan")
    assert parse_version("v1.28.2+k3s1") == parse_version("1.28.2")


def test_comparator_fails_closed():
    """Unparseable cluster version makes the constraint non-matching, no exception"""
    comparator = VersionComparator()
    constraint = KubernetesVersionConstraint(version="v1.25.0", comparison="GreaterThan")

    result = comparator.evaluate(constraint, "not-a-version")

    assert result.satisfied is False
    assert "not-a-version" in result.error


def test_comparator_bad_target_fails_closed():
    comparator = VersionComparator()
    constraint = KubernetesVersionConstraint(version="stable", comparison="Equal")

    result = comparator.evaluate(constraint, "v1.27.0")

    assert result.satisfied is False
    assert result.error is not None


def test_comparator_satisfied():
    comparator = VersionComparator()
    constraint = KubernetesVersionConstraint(version="v1.25.0", comparison="GreaterThanOrEqualTo")

    result = comparator.evaluate(constraint, "v1.27.3")

    print(f"\n✅ {result.cluster_version} >= {constraint.version}: {result.satisfied}")
    assert result.satisfied is True
    assert result.error is None


if __name__ == "__main__":
    test_parse_version()
    test_numeric_not_lexicographic()
    test_comparator_fails_closed()
    print("\n✅ All version tests passed!")
