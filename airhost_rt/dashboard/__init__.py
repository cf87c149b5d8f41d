"""
Dashboard metrics aggregation.
"""
from .aggregator import MetricsAggregator

__all__ = ["MetricsAggregator"]
