"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys

import pytest
from prometheus_client import CollectorRegistry

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from pipeline_cache.caching.versioning import CacheVersionResolver  # noqa: E402
from pipeline_cache.core.config import settings as settings_module  # noqa: E402
from pipeline_cache.core.interfaces.cache import InMemoryCacheStore  # noqa: E402
from pipeline_cache.infrastructure.monitoring.cache_metrics import CacheMetrics  # noqa: E402
from tests.test_fixtures import CacheTestFactory, FakeClock, RecordingTelemetry  # noqa: E402

# ============================================================================
# Pytest Configuration
# ============================================================================

# pytest-asyncio is automatically loaded via pyproject.toml configuration


@pytest.fixture(autouse=True)
def reset_settings_singleton():
    """Drop the cached global Settings so one test's overrides never leak into another."""
    settings_module._settings = None
    yield
    settings_module._settings = None


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def settings():
    """Default settings, isolated from any .env file."""
    return CacheTestFactory.settings()


@pytest.fixture
def settings_provider(settings):
    """Zero-argument provider returning the settings fixture."""
    return lambda: settings


# ============================================================================
# Store and Telemetry Fixtures
# ============================================================================


@pytest.fixture
def fake_clock():
    """Manually advanced clock driving store TTLs."""
    return FakeClock()


@pytest.fixture
def memory_store(fake_clock):
    """In-memory store (KeyValueStore + TagSetStore) on the fake clock."""
    return InMemoryCacheStore(clock=fake_clock)


@pytest.fixture
def telemetry():
    """Recording CacheTelemetry double."""
    return RecordingTelemetry()


@pytest.fixture
def metrics_registry():
    """Isolated Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def cache_metrics(metrics_registry):
    """Prometheus CacheMetrics bound to the isolated registry."""
    return CacheMetrics(registry=metrics_registry)


# ============================================================================
# Cache Service Fixtures
# ============================================================================


@pytest.fixture
def cache_service(memory_store, telemetry):
    """Cache service with tag sets enabled."""
    return CacheTestFactory.cache_service(store=memory_store, telemetry=telemetry)


@pytest.fixture
def degraded_cache_service(memory_store, telemetry):
    """Cache service whose store offers no tag-set support."""
    return CacheTestFactory.cache_service(
        store=memory_store, telemetry=telemetry, with_tag_sets=False
    )


@pytest.fixture
def version_resolver(settings_provider):
    """Version resolver over the default settings (global version v1)."""
    return CacheVersionResolver(settings_provider=settings_provider)
