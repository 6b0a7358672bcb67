"""
Core Interfaces

Protocols the cache service depends on, so stores and telemetry sinks can be
swapped without touching service code.
"""

from pipeline_cache.core.interfaces.cache import InMemoryCacheStore, KeyValueStore, TagSetStore
from pipeline_cache.core.interfaces.telemetry import CacheTelemetry

__all__ = [
    "CacheTelemetry",
    "InMemoryCacheStore",
    "KeyValueStore",
    "TagSetStore",
]
