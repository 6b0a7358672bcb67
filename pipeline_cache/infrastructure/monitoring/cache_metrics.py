#!/usr/bin/env python3
"""
Cache Metrics with Prometheus Integration

Prometheus implementation of the CacheTelemetry protocol:
- Hit/miss counters per feature
- Operation duration histogram by operation and outcome
- Entry size histogram by compression flag
- Compression ratio and serialization duration histograms by serializer
- Invalidation and deserialization-failure counters per feature

Architectural Decision: prometheus-client for industry-standard metrics
- Compatible with Grafana dashboards
- Histogram buckets for latency and size percentiles
- Metrics registered on an injectable registry so tests stay isolated
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from pipeline_cache.core.config.constants import (
    COMPRESSION_RATIO_BUCKETS,
    ENTRY_SIZE_BUCKETS_BYTES,
    OPERATION_DURATION_BUCKETS_MS,
)
from pipeline_cache.core.logging.logger import get_logger

logger = get_logger(__name__)

METRIC_PREFIX = "pipeline_cache"


class CacheMetrics:
    """
    Centralized cache metrics.

    STAGE-M: Cache metrics collection

    Usage:
        metrics = CacheMetrics()

        metrics.record_hit("todos")
        metrics.record_operation_duration("get", 1.7, success=True)

        output = metrics.get_prometheus_metrics()

    Tests pass their own CollectorRegistry; production code goes through
    get_cache_metrics() so the default registry is only written to once.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self._registry = registry

        # Counters
        self._hits = Counter(
            f"{METRIC_PREFIX}_hits_total",
            "Total cache hits",
            ["feature"],
            registry=registry,
        )
        self._misses = Counter(
            f"{METRIC_PREFIX}_misses_total",
            "Total cache misses",
            ["feature"],
            registry=registry,
        )
        self._invalidations = Counter(
            f"{METRIC_PREFIX}_invalidations_total",
            "Total cache entries invalidated",
            ["feature"],
            registry=registry,
        )
        self._deserialization_failures = Counter(
            f"{METRIC_PREFIX}_deserialization_failures_total",
            "Cached entries that could not be deserialized",
            ["feature"],
            registry=registry,
        )

        # Histograms
        self._operation_duration = Histogram(
            f"{METRIC_PREFIX}_operation_duration_ms",
            "Duration of cache operations in milliseconds",
            ["operation", "success"],
            buckets=OPERATION_DURATION_BUCKETS_MS,
            registry=registry,
        )
        self._entry_size = Histogram(
            f"{METRIC_PREFIX}_entry_size_bytes",
            "Size of cached entries in bytes",
            ["compressed"],
            buckets=ENTRY_SIZE_BUCKETS_BYTES,
            registry=registry,
        )
        self._serialization_duration = Histogram(
            f"{METRIC_PREFIX}_serialization_duration_ms",
            "Duration of serialization/deserialization in milliseconds",
            ["operation", "serializer"],
            buckets=OPERATION_DURATION_BUCKETS_MS,
            registry=registry,
        )
        self._compression_ratio = Histogram(
            f"{METRIC_PREFIX}_compression_ratio",
            "Compression ratio (original size / compressed size)",
            ["serializer"],
            buckets=COMPRESSION_RATIO_BUCKETS,
            registry=registry,
        )

        logger.info("Cache metrics initialized", stage="M.0")

    # =========================================================================
    # Hit/Miss
    # =========================================================================

    def record_hit(self, feature: str) -> None:
        self._hits.labels(feature=feature).inc()

    def record_miss(self, feature: str) -> None:
        self._misses.labels(feature=feature).inc()

    # =========================================================================
    # Durations and Sizes
    # =========================================================================

    def record_operation_duration(self, operation: str, duration_ms: float, success: bool = True) -> None:
        self._operation_duration.labels(
            operation=operation, success=str(success).lower()
        ).observe(duration_ms)

    def record_entry_size(self, size_bytes: int, compressed: bool = False) -> None:
        self._entry_size.labels(compressed=str(compressed).lower()).observe(size_bytes)

    def record_serialization_duration(self, operation: str, duration_ms: float, serializer: str) -> None:
        """operation is "serialize" or "deserialize"."""
        self._serialization_duration.labels(operation=operation, serializer=serializer).observe(duration_ms)

    def record_compression_ratio(self, original_size: int, compressed_size: int, serializer: str) -> None:
        """Record original/compressed; ignored when either size is not positive."""
        if original_size <= 0 or compressed_size <= 0:
            return
        self._compression_ratio.labels(serializer=serializer).observe(original_size / compressed_size)

    # =========================================================================
    # Invalidation and Failures
    # =========================================================================

    def record_invalidation(self, feature: str, count: int = 1) -> None:
        if count > 0:
            self._invalidations.labels(feature=feature).inc(count)

    def record_deserialization_failure(self, feature: str) -> None:
        self._deserialization_failures.labels(feature=feature).inc()

    # =========================================================================
    # Export
    # =========================================================================

    def get_prometheus_metrics(self) -> bytes:
        """Prometheus text format of every cache metric."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        return CONTENT_TYPE_LATEST


# Global metrics instance
_metrics: CacheMetrics | None = None


def get_cache_metrics() -> CacheMetrics:
    """Get global cache metrics (registered on the default registry)."""
    global _metrics
    if _metrics is None:
        _metrics = CacheMetrics()
    return _metrics
