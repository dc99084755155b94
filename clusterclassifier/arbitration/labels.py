"""
Label ownership arbitration
Assigns every requested label key on a cluster to exactly one classifier
"""

import functools
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..models import Classifier, ClusterMatchRecord, ClusterRef, UnmanagedLabel
from ..utils.logger import get_logger

logger = get_logger("LabelArbitration")

# Sort key over classifiers; the classifier name is always appended as the
# last tiebreaker, so any key yields a total order
ClassifierOrdering = Callable[[Classifier], Any]


def by_creation_then_name(classifier: Classifier) -> Tuple:
    """Oldest classifier first; classifiers without a timestamp go last"""
    if classifier.creation_timestamp is None:
        return (1,)
    return (0, classifier.creation_timestamp)


def by_name(classifier: Classifier) -> str:
    return classifier.name


def from_comparator(compare: Callable[[Classifier, Classifier], int]) -> ClassifierOrdering:
    """Build an ordering from a cmp-style function (negative: first argument wins)"""
    return functools.cmp_to_key(compare)


ORDERINGS: Dict[str, ClassifierOrdering] = {
    "creation": by_creation_then_name,
    "name": by_name,
}


def unmanaged_reason(owner: str) -> str:
    return f"owned by {owner}"


@dataclass(frozen=True)
class ArbitrationResult:
    """
    Label ownership on one cluster for one pass
    """
    cluster: ClusterRef
    order: Tuple[str, ...]                  # classifier names, arbitration order
    owners: Dict[str, str] = field(default_factory=dict)            # label key -> owner
    records: Dict[str, ClusterMatchRecord] = field(default_factory=dict)  # classifier -> record
    desired_labels: Dict[str, str] = field(default_factory=dict)    # label key -> owner's value

    @property
    def conflicts(self) -> int:
        """Number of (classifier, key) requests denied"""
        return sum(len(r.unmanaged_labels) for r in self.records.values())

    def to_dict(self) -> dict:
        return {
            "cluster": self.cluster.to_dict(),
            "order": list(self.order),
            "owners": dict(sorted(self.owners.items())),
            "desiredLabels": dict(sorted(self.desired_labels.items())),
        }


class LabelArbitrationEngine:
    """
    First-come label ownership over a deterministic classifier order

    For one cluster, classifiers are ordered with the injected ordering;
    scanning in that order, the first classifier requesting a key owns it
    and every later requester gets the key as unmanaged. Nothing carries
    over between passes: ownership follows only the current inputs.
    """

    def __init__(self, ordering: Optional[ClassifierOrdering] = None):
        """
        Args:
            ordering: Sort key over classifiers (creation timestamp, then
                      name, if None)
        """
        self.ordering = ordering or by_creation_then_name

    def order(self, classifiers: Sequence[Classifier]) -> List[Classifier]:
        """Classifiers in arbitration order (total, input order independent)"""
        names = [c.name for c in classifiers]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate classifier names in arbitration input: {duplicates}")

        return sorted(classifiers, key=lambda c: (self.ordering(c), c.name))

    def arbitrate(self, cluster: ClusterRef, classifiers: Sequence[Classifier]) -> ArbitrationResult:
        """
        Assign label keys on cluster among the classifiers matching it

        Must be called with the complete matching set for the cluster.

        Args:
            cluster: Cluster the labels go on
            classifiers: Every classifier currently matching cluster

        Returns:
            ArbitrationResult with one matched record per classifier
        """
        ordered = self.order(classifiers)

        owners: Dict[str, str] = {}
        desired: Dict[str, str] = {}
        managed: Dict[str, List[str]] = {c.name: [] for c in ordered}
        unmanaged: Dict[str, List[UnmanagedLabel]] = {c.name: [] for c in ordered}

        for classifier in ordered:
            for label in sorted(classifier.labels, key=lambda l: l.key):
                owner = owners.get(label.key)
                if owner is None:
                    owners[label.key] = classifier.name
                    desired[label.key] = label.value
                    managed[classifier.name].append(label.key)
                else:
                    unmanaged[classifier.name].append(
                        UnmanagedLabel(key=label.key, failure_message=unmanaged_reason(owner))
                    )
                    logger.info(f"Label {label.key} on {cluster.key}: {classifier.name} "
                                f"denied, owned by {owner}")

        records = {
            c.name: ClusterMatchRecord(
                cluster=cluster,
                matched=True,
                managed_labels=tuple(managed[c.name]),
                unmanaged_labels=tuple(unmanaged[c.name])
            )
            for c in ordered
        }

        result = ArbitrationResult(
            cluster=cluster,
            order=tuple(c.name for c in ordered),
            owners=owners,
            records=records,
            desired_labels=desired
        )

        if ordered:
            logger.info(f"✅ Arbitrated {len(owners)} label keys on {cluster.key} among "
                        f"{len(ordered)} classifiers ({result.conflicts} conflicts)")
        return result
