"""
Cluster classifier
Constraint-based classification of Kubernetes clusters and arbitration of
the labels classifiers attach to them
"""

from .models import (
    Operation,
    KubernetesComparison,
    FeatureStatus,
    ClusterType,
    ClassifierLabel,
    LabelFilter,
    FieldFilter,
    DeployedResourceConstraint,
    KubernetesVersionConstraint,
    Classifier,
    ClusterRef,
    Resource,
    UnmanagedLabel,
    ClusterMatchRecord,
    ClusterInfo,
    ClassifierReport
)
from .orchestrator import ClassificationOrchestrator, PassResult

__version__ = "0.1.0"

__all__ = [
    'Operation',
    'KubernetesComparison',
    'FeatureStatus',
    'ClusterType',
    'ClassifierLabel',
    'LabelFilter',
    'FieldFilter',
    'DeployedResourceConstraint',
    'KubernetesVersionConstraint',
    'Classifier',
    'ClusterRef',
    'Resource',
    'UnmanagedLabel',
    'ClusterMatchRecord',
    'ClusterInfo',
    'ClassifierReport',
    'ClassificationOrchestrator',
    'PassResult'
]
