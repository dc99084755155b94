"""
Cluster version comparison
Versions are parsed with semver and compared as (major, minor, patch)
integer tuples; pre-release and build parts do not take part
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

import semver

from ..errors import VersionParseError
from ..models import KubernetesComparison, KubernetesVersionConstraint
from ..utils.logger import get_logger

logger = get_logger("VersionComparator")

# Non-numeric prefix such as "v" or "release-"
_PREFIX_RE = re.compile(r"^[^0-9]*")

_COMPARATORS = {
    KubernetesComparison.EQUAL: lambda a, b: a == b,
    KubernetesComparison.NOT_EQUAL: lambda a, b: a != b,
    KubernetesComparison.GREATER_THAN: lambda a, b: a > b,
    KubernetesComparison.LESS_THAN: lambda a, b: a < b,
    KubernetesComparison.GREATER_THAN_OR_EQUAL_TO: lambda a, b: a >= b,
    KubernetesComparison.LESS_THAN_OR_EQUAL_TO: lambda a, b: a <= b,
}


def parse_version(version: str) -> Tuple[int, int, int]:
    """
    Parse a version string into (major, minor, patch)

    "v1.27.3" -> (1, 27, 3), "1.28" -> (1, 28, 0), "v1.27.3+k3s1" -> (1, 27, 3)

    Raises:
        VersionParseError: if no numeric version can be read
    """
    if not isinstance(version, str):
        raise VersionParseError(repr(version))

    text = _PREFIX_RE.sub("", version.strip(), count=1)
    try:
        parsed = semver.Version.parse(text, optional_minor_and_patch=True)
    except ValueError:
        raise VersionParseError(version) from None

    return (parsed.major, parsed.minor, parsed.patch)


def compare_versions(cluster_version: str, target_version: str, comparison) -> bool:
    """
    Compare cluster version against target version

    Raises:
        VersionParseError: if either version is unparseable
    """
    comparison = KubernetesComparison(comparison)
    current = parse_version(cluster_version)
    target = parse_version(target_version)
    return _COMPARATORS[comparison](current, target)


@dataclass(frozen=True)
class VersionResult:
    """Outcome of one version constraint"""
    satisfied: bool
    cluster_version: str
    error: Optional[str] = None


class VersionComparator:
    """
    Evaluates KubernetesVersionConstraints

    Unparseable versions never raise out of evaluate(): the constraint
    fails closed and the error is carried in the result.
    """

    def evaluate(self, constraint: KubernetesVersionConstraint, cluster_version: str) -> VersionResult:
        try:
            satisfied = compare_versions(cluster_version, constraint.version, constraint.comparison)
        except VersionParseError as e:
            logger.warning(f"Version constraint {constraint.comparison.value} {constraint.version} "
                           f"failed closed: {e}")
            return VersionResult(satisfied=False, cluster_version=cluster_version, error=str(e))

        logger.debug(f"Version {cluster_version} {constraint.comparison.value} "
                     f"{constraint.version}: {satisfied}")
        return VersionResult(satisfied=satisfied, cluster_version=cluster_version)
