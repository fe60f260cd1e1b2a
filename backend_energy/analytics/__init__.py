"""
Energy analytics engine.

Pure computation over hold-to-earn logs: validator, aggregator, rate
estimator, rate-history buckets and the pipeline that combines them.
The cache controller (analytics.cache_controller) adds KV and indexer I/O.
"""

from backend_energy.analytics.aggregator import aggregate_logs
from backend_energy.analytics.analytics_pipeline import compute_energy_analytics, empty_analytics
from backend_energy.analytics.rates import estimate_rates
from backend_energy.analytics.validator import filter_valid_logs

__all__ = [
    "aggregate_logs",
    "compute_energy_analytics",
    "empty_analytics",
    "estimate_rates",
    "filter_valid_logs",
]
