"""
Classifier metrics
Prometheus counters and gauges for classification passes
"""

from .collector import EvaluationMetrics

__all__ = ['EvaluationMetrics']
