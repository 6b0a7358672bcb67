"""
Monitoring Module

Prometheus metrics for the cache layer.
"""

from pipeline_cache.infrastructure.monitoring.cache_metrics import CacheMetrics, get_cache_metrics

__all__ = ["CacheMetrics", "get_cache_metrics"]
