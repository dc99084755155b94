"""
Status reporting
Turns classification and arbitration results into per-classifier status
and per-(classifier, cluster) reports. Pure transformation, no I/O.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..evaluation.aggregator import ClassificationResult
from ..models import (
    Classifier,
    ClassifierReport,
    ClusterInfo,
    ClusterMatchRecord,
    FeatureStatus
)
from ..utils.logger import get_logger
from .labels import ArbitrationResult

logger = get_logger("StatusReporter")


def classifier_hash(classifier: Classifier) -> str:
    """SHA-256 of the classifier spec in canonical JSON"""
    payload = json.dumps(classifier.spec_dict(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ClassifierStatus:
    """Status of one classifier across all evaluated clusters"""
    name: str
    match_records: Tuple[ClusterMatchRecord, ...] = ()
    cluster_info: Tuple[ClusterInfo, ...] = ()

    @property
    def matching_cluster_statuses(self) -> Tuple[ClusterMatchRecord, ...]:
        return tuple(r for r in self.match_records if r.matched)

    def record_for(self, cluster_key: str) -> Optional[ClusterMatchRecord]:
        for record in self.match_records:
            if record.cluster.key == cluster_key:
                return record
        return None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "matchRecords": [r.to_dict() for r in self.match_records],
            "clusterInfo": [i.to_dict() for i in self.cluster_info],
        }


@dataclass(frozen=True)
class StatusReport:
    """Everything a pass produces for downstream persistence"""
    statuses: Tuple[ClassifierStatus, ...] = ()
    reports: Tuple[ClassifierReport, ...] = ()

    def status_for(self, classifier_name: str) -> Optional[ClassifierStatus]:
        for status in self.statuses:
            if status.name == classifier_name:
                return status
        return None

    def to_dict(self) -> dict:
        return {
            "statuses": [s.to_dict() for s in self.statuses],
            "reports": [r.to_dict() for r in self.reports],
        }


class StatusReporter:
    """
    Builds ClusterMatchRecords, ClusterInfo and ClassifierReports

    Status of a (classifier, cluster) pair:
        - Removing / Removed: classifier is being deleted and the cluster
          still carries / no longer carries its label values
        - Failed: evaluation recorded errors
        - Provisioned: every managed label already has its value on the
          cluster (or there is nothing to apply)
        - Provisioning: managed labels still have to be applied
    """

    def build_record(
        self,
        classification: ClassificationResult,
        arbitration: Optional[ArbitrationResult]
    ) -> ClusterMatchRecord:
        """Record of one pair, merging the arbitration outcome when matched"""
        arbitrated = None
        if arbitration is not None:
            arbitrated = arbitration.records.get(classification.classifier_name)

        if classification.matched and arbitrated is not None:
            return ClusterMatchRecord(
                cluster=classification.cluster,
                matched=True,
                managed_labels=arbitrated.managed_labels,
                unmanaged_labels=arbitrated.unmanaged_labels,
                failure_messages=classification.failures
            )

        # Not arbitrated (no match, or classifier being deleted): no labels held
        return ClusterMatchRecord(
            cluster=classification.cluster,
            matched=classification.matched,
            failure_messages=classification.failures
        )

    def feature_status(
        self,
        classification: ClassificationResult,
        record: ClusterMatchRecord,
        arbitration: Optional[ArbitrationResult]
    ) -> Tuple[FeatureStatus, Optional[str]]:
        """Status and failure message for one pair"""
        classifier = classification.classifier
        current = classification.cluster.labels

        if classifier.is_deleted:
            desired = arbitration.desired_labels if arbitration is not None else {}
            leftover = [
                label.key for label in classifier.labels
                if current.get(label.key) == label.value and desired.get(label.key) != label.value
            ]
            return (FeatureStatus.REMOVING if leftover else FeatureStatus.REMOVED), None

        if classification.failures:
            return FeatureStatus.FAILED, "; ".join(classification.failures)

        wanted = classifier.label_map
        pending = [key for key in record.managed_labels if current.get(key) != wanted[key]]
        if pending:
            return FeatureStatus.PROVISIONING, None
        return FeatureStatus.PROVISIONED, None

    def report(
        self,
        classifications: Sequence[ClassificationResult],
        arbitrations: Mapping[str, ArbitrationResult]
    ) -> StatusReport:
        """
        Build the status report of a pass

        Args:
            classifications: One result per evaluated (classifier, cluster)
            arbitrations: ArbitrationResult per cluster key

        Returns:
            StatusReport with statuses sorted by classifier name and
            records/reports sorted by cluster
        """
        records: Dict[str, List[ClusterMatchRecord]] = {}
        infos: Dict[str, List[ClusterInfo]] = {}
        reports: List[ClassifierReport] = []
        hashes: Dict[str, str] = {}

        ordered = sorted(classifications, key=lambda c: (c.classifier_name, c.cluster.sort_key()))

        for classification in ordered:
            name = classification.classifier_name
            if name not in hashes:
                hashes[name] = classifier_hash(classification.classifier)

            arbitration = arbitrations.get(classification.cluster.key)
            record = self.build_record(classification, arbitration)
            status, failure_message = self.feature_status(classification, record, arbitration)

            records.setdefault(name, []).append(record)
            infos.setdefault(name, []).append(ClusterInfo(
                cluster=classification.cluster,
                hash=hashes[name],
                status=status,
                failure_message=failure_message
            ))
            reports.append(ClassifierReport(
                classifier_name=name,
                cluster=classification.cluster,
                matched=record.matched,
                hash=hashes[name],
                status=status,
                failure_message=failure_message
            ))

        statuses = tuple(
            ClassifierStatus(name=name, match_records=tuple(records[name]), cluster_info=tuple(infos[name]))
            for name in sorted(records)
        )

        failed = sum(1 for r in reports if r.status == FeatureStatus.FAILED)
        logger.info(f"Status report: {len(statuses)} classifiers, {len(reports)} reports, {failed} failed")

        return StatusReport(statuses=statuses, reports=tuple(reports))
