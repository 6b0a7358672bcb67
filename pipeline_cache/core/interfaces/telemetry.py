"""
Cache Telemetry Protocol

The cache service reports every hit, miss, duration and size through this
protocol. The production implementation is the Prometheus-backed
CacheMetrics; tests inject a recording double and assert on what it saw.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class CacheTelemetry(Protocol):
    """Sink for cache observations. Implementations must never raise."""

    def record_hit(self, feature: str) -> None:
        ...

    def record_miss(self, feature: str) -> None:
        ...

    def record_operation_duration(self, operation: str, duration_ms: float, success: bool) -> None:
        """Record a get/set/remove/remove_by_feature duration in milliseconds."""
        ...

    def record_entry_size(self, size_bytes: int, compressed: bool) -> None:
        """Record the stored size of an entry (marker byte excluded)."""
        ...

    def record_compression_ratio(
        self, original_size: int, compressed_size: int, serializer: str
    ) -> None:
        ...

    def record_serialization_duration(
        self, operation: str, duration_ms: float, serializer: str
    ) -> None:
        """operation is "serialize" or "deserialize"."""
        ...

    def record_invalidation(self, feature: str, count: int) -> None:
        """Record that count entries of a feature were invalidated."""
        ...

    def record_deserialization_failure(self, feature: str) -> None:
        ...
