"""
Label arbitration and status reporting
"""

from .labels import (
    LabelArbitrationEngine,
    ArbitrationResult,
    ClassifierOrdering,
    ORDERINGS,
    by_creation_then_name,
    by_name,
    from_comparator
)
from .status import StatusReporter, StatusReport, ClassifierStatus, classifier_hash

__all__ = [
    'LabelArbitrationEngine',
    'ArbitrationResult',
    'ClassifierOrdering',
    'ORDERINGS',
    'by_creation_then_name',
    'by_name',
    'from_comparator',
    'StatusReporter',
    'StatusReport',
    'ClassifierStatus',
    'classifier_hash'
]
