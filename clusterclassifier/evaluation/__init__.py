"""
Classifier evaluation
Constraint matching, version comparison and per-cluster aggregation
"""

from .version import VersionComparator, VersionResult, parse_version, compare_versions
from .script import ScriptEvaluator, ScriptPredicate
from .constraints import ConstraintEvaluator, ConstraintResult
from .aggregator import ClassificationAggregator, ClassificationResult
from .events import EventSource, EventMatch, EventSourceMatcher

__all__ = [
    'VersionComparator',
    'VersionResult',
    'parse_version',
    'compare_versions',
    'ScriptEvaluator',
    'ScriptPredicate',
    'ConstraintEvaluator',
    'ConstraintResult',
    'ClassificationAggregator',
    'ClassificationResult',
    'EventSource',
    'EventMatch',
    'EventSourceMatcher'
]
