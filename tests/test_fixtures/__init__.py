"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .cache_factory import CacheTestFactory, FakeClock, FlakyCacheStore, RecordingTelemetry
from .request_factory import RequestFactory, TodoDto

__all__ = [
    "CacheTestFactory",
    "FakeClock",
    "FlakyCacheStore",
    "RecordingTelemetry",
    "RequestFactory",
    "TodoDto",
]
