"""
Unit Tests for DistributedCacheService

Tests versioned reads/writes, tag-set bookkeeping, feature invalidation,
corrupted-entry recovery, degraded mode and telemetry reporting against the
in-memory store.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pipeline_cache.caching.entry import CacheEntry
from pipeline_cache.caching.keys import CacheKey
from pipeline_cache.core.config.constants import COMPRESSION_MARKER
from pipeline_cache.core.exceptions import (
    CacheConnectionError,
    CacheKeyError,
    InvalidCacheKeyError,
)
from pipeline_cache.core.interfaces.cache import InMemoryCacheStore
from pipeline_cache.infrastructure.cache import cache_service as cache_service_module
from pipeline_cache.infrastructure.cache.cache_service import DistributedCacheService
from pipeline_cache.infrastructure.cache.serializers import (
    JsonCacheSerializer,
    MessagePackCacheSerializer,
)
from tests.test_fixtures import CacheTestFactory, RecordingTelemetry, TodoDto

TODO_1 = CacheKey("todos", "1")


@pytest.mark.unit
class TestReadWrite:
    """get/set behavior."""

    @pytest.mark.asyncio
    async def test_example_scenario(self, cache_service):
        """Test set, get, feature invalidation, then a miss."""
        await cache_service.set(TODO_1, CacheEntry.create(42), version="v1")

        entry = await cache_service.get(TODO_1, version="v1", value_type=int)
        assert entry.value == 42
        assert entry.has_value is True

        assert await cache_service.remove_by_feature("todos") == 1
        assert await cache_service.get(TODO_1, version="v1", value_type=int) is None

    @pytest.mark.asyncio
    async def test_miss_is_idempotent(self, cache_service, memory_store, telemetry):
        """Test that repeated misses return None and write nothing."""
        assert await cache_service.get(TODO_1, "v1") is None
        assert await cache_service.get(TODO_1, "v1") is None

        assert telemetry.misses == ["todos", "todos"]
        assert telemetry.hits == []
        assert await memory_store.exists("v1:todos:1", "tag:todos") == 0

    @pytest.mark.asyncio
    async def test_set_writes_versioned_wire_key_and_tag_set(self, cache_service, memory_store):
        """Test the Redis layout produced by set."""
        await cache_service.set(TODO_1, CacheEntry.create("a"), ttl=60, version="v1")

        assert await memory_store.get("v1:todos:1") is not None
        assert await memory_store.smembers("tag:todos") == {"v1:todos:1"}
        assert await memory_store.ttl("v1:todos:1") == 60

    @pytest.mark.asyncio
    async def test_tag_set_outlives_entry_by_margin(self, cache_service, memory_store, fake_clock):
        """Test that the tag set TTL is the entry TTL plus five minutes."""
        await cache_service.set(TODO_1, CacheEntry.create("a"), ttl=60, version="v1")

        assert await memory_store.ttl("tag:todos") == 360

        fake_clock.advance(61)
        assert await memory_store.get("v1:todos:1") is None
        assert await memory_store.smembers("tag:todos") == {"v1:todos:1"}

        fake_clock.advance(300)
        assert await memory_store.smembers("tag:todos") == set()

    @pytest.mark.asyncio
    async def test_shorter_write_keeps_tag_set_ttl(self, cache_service, memory_store, fake_clock):
        """Test that the tag set outlives its longest-lived member."""
        long_key = CacheKey("todos", "long")
        await cache_service.set(long_key, CacheEntry.create(1), ttl=3600, version="v1")
        await cache_service.set(CacheKey("todos", "short"), CacheEntry.create(2), ttl=60, version="v1")

        assert await memory_store.ttl("tag:todos") == 3900

        fake_clock.advance(400)
        await cache_service.remove_by_feature("todos")

        assert await cache_service.get(long_key, "v1") is None
        assert await memory_store.exists("v1:todos:long", "tag:todos") == 0

    @pytest.mark.asyncio
    async def test_longer_write_extends_tag_set_ttl(self, cache_service, memory_store):
        """Test that a longer-lived member pushes the tag set expiry out."""
        await cache_service.set(TODO_1, CacheEntry.create(1), ttl=60, version="v1")
        await cache_service.set(CacheKey("todos", "2"), CacheEntry.create(2), ttl=3600, version="v1")

        assert await memory_store.ttl("tag:todos") == 3900

    @pytest.mark.asyncio
    async def test_unversioned_key(self, cache_service, memory_store):
        """Test that version None writes {feature}:{value}."""
        await cache_service.set(TODO_1, CacheEntry.create(1))

        assert await memory_store.get("todos:1") is not None
        assert (await cache_service.get(TODO_1)).value == 1

    @pytest.mark.asyncio
    async def test_versions_are_isolated(self, cache_service):
        """Test that an entry is only visible under the version it was written with."""
        await cache_service.set(TODO_1, CacheEntry.create("old"), version="v1")

        assert await cache_service.get(TODO_1, version="v2") is None

        await cache_service.set(TODO_1, CacheEntry.create("new"), version="v2")
        assert (await cache_service.get(TODO_1, version="v1")).value == "old"
        assert (await cache_service.get(TODO_1, version="v2")).value == "new"

    @pytest.mark.asyncio
    async def test_pydantic_values_come_back_typed(self, cache_service):
        """Test that value_type rebuilds models."""
        todo = TodoDto(id=1, title="Write tests")
        await cache_service.set(TODO_1, CacheEntry.create(todo), version="v1")

        entry = await cache_service.get(TODO_1, version="v1", value_type=TodoDto)

        assert isinstance(entry.value, TodoDto)
        assert entry.value == todo

    @pytest.mark.asyncio
    async def test_empty_entry_is_returned_but_counted_as_miss(self, cache_service, telemetry):
        """Test that an empty entry differs from a store miss but is not a hit."""
        await cache_service.set(TODO_1, CacheEntry.empty(), version="v1")

        entry = await cache_service.get(TODO_1, version="v1", value_type=TodoDto)

        assert entry is not None
        assert entry.has_value is False
        assert telemetry.hits == []
        assert telemetry.misses == ["todos"]

    @pytest.mark.asyncio
    async def test_default_ttl_from_settings(self, memory_store):
        """Test that ttl None uses CACHE_DEFAULT_TTL."""
        service = CacheTestFactory.cache_service(store=memory_store, CACHE_DEFAULT_TTL=120)

        await service.set(TODO_1, CacheEntry.create(1), version="v1")

        assert await memory_store.ttl("v1:todos:1") == 120
        assert await memory_store.ttl("tag:todos") == 420

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ttl", [0, -10])
    async def test_non_positive_ttl_is_rejected(self, cache_service, memory_store, ttl):
        """Test that a non-positive TTL never reaches the store."""
        with pytest.raises(ValueError):
            await cache_service.set(TODO_1, CacheEntry.create(1), ttl=ttl, version="v1")

        assert await memory_store.exists("v1:todos:1") == 0

    @pytest.mark.asyncio
    async def test_msgpack_serializer(self, memory_store):
        """Test the service over MessagePack."""
        service = CacheTestFactory.cache_service(
            store=memory_store, serializer=MessagePackCacheSerializer()
        )
        await service.set(TODO_1, CacheEntry.create({"n": [1, 2, 3]}), version="v1")

        assert (await service.get(TODO_1, "v1")).value == {"n": [1, 2, 3]}
        assert service.serializer_name == "msgpack"


@pytest.mark.unit
class TestCompression:
    """Compression selection and reporting."""

    @pytest.mark.asyncio
    async def test_explicit_compression(self, cache_service, memory_store, telemetry):
        """Test that use_compression=True compresses large payloads."""
        value = "x" * 5000
        await cache_service.set(TODO_1, CacheEntry.create(value), version="v1", use_compression=True)

        blob = await memory_store.get("v1:todos:1")
        assert blob[0] == COMPRESSION_MARKER
        assert telemetry.entry_sizes == [(len(blob) - 1, True)]
        assert len(telemetry.compression_ratios) == 1
        assert telemetry.compression_ratios[0][2] == "json"

        assert (await cache_service.get(TODO_1, "v1", value_type=str)).value == value

    @pytest.mark.asyncio
    async def test_global_compression_setting(self, memory_store):
        """Test that CACHE_ENABLE_COMPRESSION applies when the caller does not choose."""
        service = CacheTestFactory.cache_service(
            store=memory_store,
            CACHE_ENABLE_COMPRESSION=True,
            CACHE_COMPRESSION_THRESHOLD_BYTES=16,
        )
        await service.set(TODO_1, CacheEntry.create("y" * 100), version="v1")

        assert (await memory_store.get("v1:todos:1"))[0] == COMPRESSION_MARKER

    @pytest.mark.asyncio
    async def test_caller_can_disable_global_compression(self, memory_store, telemetry):
        """Test that use_compression=False wins over the setting."""
        service = CacheTestFactory.cache_service(
            store=memory_store, telemetry=telemetry, CACHE_ENABLE_COMPRESSION=True
        )
        await service.set(TODO_1, CacheEntry.create("y" * 5000), version="v1", use_compression=False)

        assert (await memory_store.get("v1:todos:1"))[0] != COMPRESSION_MARKER
        assert telemetry.compression_ratios == []


@pytest.mark.unit
class TestCorruptedEntries:
    """Unreadable entries are deleted and reported as misses."""

    @pytest.mark.asyncio
    async def test_corrupted_blob_self_heals(self, cache_service, memory_store, telemetry):
        """Test that garbage is deleted, untagged and counted."""
        await memory_store.set("v1:todos:1", b"\x09garbage")
        await memory_store.sadd("tag:todos", "v1:todos:1", "v1:todos:2")

        assert await cache_service.get(TODO_1, "v1") is None

        assert await memory_store.get("v1:todos:1") is None
        assert await memory_store.smembers("tag:todos") == {"v1:todos:2"}
        assert telemetry.misses == ["todos"]
        assert telemetry.deserialization_failures == ["todos"]
        assert telemetry.durations[-1][0] == "get"
        assert telemetry.durations[-1][2] is True

    @pytest.mark.asyncio
    async def test_incompatible_type_is_treated_as_corrupted(self, cache_service, memory_store):
        """Test that an entry of another shape is discarded."""
        await cache_service.set(TODO_1, CacheEntry.create("just a string"), version="v1")

        assert await cache_service.get(TODO_1, "v1", value_type=TodoDto) is None
        assert await memory_store.get("v1:todos:1") is None

    @pytest.mark.asyncio
    async def test_object_that_is_not_an_entry_self_heals(self, cache_service, memory_store, telemetry):
        """Test that a foreign JSON object is not read as an empty entry."""
        await memory_store.set("v1:todos:1", b'\x00{"foo": 1}')
        await memory_store.sadd("tag:todos", "v1:todos:1")

        assert await cache_service.get(TODO_1, "v1", value_type=int) is None

        assert await memory_store.get("v1:todos:1") is None
        assert await memory_store.smembers("tag:todos") == set()
        assert telemetry.deserialization_failures == ["todos"]

    @pytest.mark.asyncio
    async def test_value_of_another_type_is_not_coerced(self, cache_service, memory_store, telemetry):
        """Test that a cached "42" does not read back as the int 42."""
        await cache_service.set(TODO_1, CacheEntry.create("42"), version="v1")

        assert await cache_service.get(TODO_1, "v1", value_type=int) is None
        assert await memory_store.get("v1:todos:1") is None
        assert telemetry.deserialization_failures == ["todos"]

    @pytest.mark.asyncio
    async def test_degraded_mode_still_deletes(self, degraded_cache_service, memory_store):
        """Test recovery without tag-set support."""
        await memory_store.set("v1:todos:1", b"\x00{not json")

        assert await degraded_cache_service.get(TODO_1, "v1") is None
        assert await memory_store.get("v1:todos:1") is None


@pytest.mark.unit
class TestInvalidation:
    """remove / remove_by_feature."""

    @pytest.mark.asyncio
    async def test_remove_deletes_entry_and_tag_member(self, cache_service, memory_store, telemetry):
        """Test single-key removal."""
        await cache_service.set(TODO_1, CacheEntry.create(1), version="v1")
        await cache_service.set(TODO_1.with_value("2"), CacheEntry.create(2), version="v1")

        await cache_service.remove(TODO_1, "v1")

        assert await cache_service.get(TODO_1, "v1") is None
        assert await memory_store.smembers("tag:todos") == {"v1:todos:2"}
        assert telemetry.invalidations == [("todos", 1)]

    @pytest.mark.asyncio
    async def test_remove_missing_key_is_harmless(self, cache_service):
        """Test that removing an absent entry does not raise."""
        await cache_service.remove(TODO_1, "v1")

    @pytest.mark.asyncio
    async def test_remove_by_feature_covers_every_version(self, cache_service, memory_store, telemetry):
        """Test that every entry of the feature goes, other features stay."""
        await cache_service.set(TODO_1, CacheEntry.create(1), version="v1")
        await cache_service.set(CacheKey("todos", "2"), CacheEntry.create(2), version="v2")
        await cache_service.set(CacheKey("todos", "list"), CacheEntry.create([1, 2]))
        await cache_service.set(CacheKey("users", "1"), CacheEntry.create("ann"), version="v1")

        removed = await cache_service.remove_by_feature("todos")

        assert removed == 3
        assert await memory_store.exists("v1:todos:1", "v2:todos:2", "todos:list", "tag:todos") == 0
        assert (await cache_service.get(CacheKey("users", "1"), "v1")).value == "ann"
        assert telemetry.invalidations == [("todos", 3)]

    @pytest.mark.asyncio
    async def test_remove_by_feature_issues_single_delete(self):
        """Test that members and tag set leave in one DEL."""
        store = CacheTestFactory.failing_store()
        service = CacheTestFactory.cache_service(store=store)
        for value in ("1", "2", "3"):
            await service.set(CacheKey("todos", value), CacheEntry.create(value), version="v1")
        store.calls.clear()

        assert await service.remove_by_feature("todos") == 3
        assert store.calls == ["smembers", "delete"]

    @pytest.mark.asyncio
    async def test_remove_by_feature_without_entries(self, cache_service, telemetry):
        """Test that an unknown feature removes nothing."""
        assert await cache_service.remove_by_feature("todos") == 0
        assert telemetry.invalidations == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("feature", ["", "  "])
    async def test_remove_by_feature_rejects_blank_feature(self, cache_service, feature):
        """Test argument validation."""
        with pytest.raises(InvalidCacheKeyError):
            await cache_service.remove_by_feature(feature)

    @pytest.mark.asyncio
    async def test_srem_failure_after_delete_is_tolerated(self, telemetry):
        """Test that tag cleanup errors do not fail remove."""
        store = CacheTestFactory.failing_store("srem")
        service = CacheTestFactory.cache_service(store=store, telemetry=telemetry)
        await service.set(TODO_1, CacheEntry.create(1), version="v1")

        await service.remove(TODO_1, "v1")

        assert await store.get("v1:todos:1") is None
        assert ("remove", True) in [(op, ok) for op, _, ok in telemetry.durations]


@pytest.mark.unit
class TestDegradedMode:
    """Service over a store without tag-set support."""

    @pytest.mark.asyncio
    async def test_set_skips_tag_set(self, degraded_cache_service, memory_store):
        """Test that no tag set is written."""
        await degraded_cache_service.set(TODO_1, CacheEntry.create(1), version="v1")

        assert await memory_store.get("v1:todos:1") is not None
        assert await memory_store.exists("tag:todos") == 0
        assert degraded_cache_service.supports_feature_invalidation is False

    @pytest.mark.asyncio
    async def test_remove_by_feature_returns_zero(self, degraded_cache_service, memory_store):
        """Test that feature invalidation is a logged no-op."""
        await degraded_cache_service.set(TODO_1, CacheEntry.create(1), version="v1")

        assert await degraded_cache_service.remove_by_feature("todos") == 0
        assert await memory_store.get("v1:todos:1") is not None

    @pytest.mark.asyncio
    async def test_remove_still_works(self, degraded_cache_service):
        """Test single-key removal in degraded mode."""
        await degraded_cache_service.set(TODO_1, CacheEntry.create(1), version="v1")
        await degraded_cache_service.remove(TODO_1, "v1")

        assert await degraded_cache_service.get(TODO_1, "v1") is None


@pytest.mark.unit
class TestStoreFailures:
    """Store errors propagate and are recorded as failed operations."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "command,operation",
        [
            ("get", "get"),
            ("set", "set"),
            ("sadd", "set"),
            ("ttl", "set"),
            ("delete", "remove"),
            ("smembers", "invalidate"),
        ],
    )
    async def test_errors_propagate(self, telemetry, command, operation):
        """Test that CacheConnectionError reaches the caller."""
        store = CacheTestFactory.failing_store(command)
        service = CacheTestFactory.cache_service(store=store, telemetry=telemetry)

        with pytest.raises(CacheConnectionError):
            if operation == "get":
                await service.get(TODO_1, "v1")
            elif operation == "set":
                await service.set(TODO_1, CacheEntry.create(1), version="v1")
            elif operation == "remove":
                await service.remove(TODO_1, "v1")
            else:
                await service.remove_by_feature("todos")

        assert telemetry.operations(success=False) == [operation]

    @pytest.mark.asyncio
    async def test_command_errors_propagate_as_key_errors(self):
        """Test that non-connectivity failures are not swallowed either."""
        store = CacheTestFactory.failing_store("get", error=CacheKeyError("WRONGTYPE"))
        service = CacheTestFactory.cache_service(store=store)

        with pytest.raises(CacheKeyError):
            await service.get(TODO_1, "v1")


@pytest.mark.unit
class TestTelemetry:
    """Telemetry reporting."""

    @pytest.mark.asyncio
    async def test_successful_operations_are_timed(self, cache_service, telemetry):
        """Test that every operation reports a duration tagged with success."""
        await cache_service.set(TODO_1, CacheEntry.create(1), version="v1")
        await cache_service.get(TODO_1, "v1")
        await cache_service.remove(TODO_1, "v1")
        await cache_service.remove_by_feature("todos")

        assert telemetry.operations(success=True) == ["set", "get", "remove", "invalidate"]
        assert all(duration >= 0 for _, duration, _ in telemetry.durations)

    @pytest.mark.asyncio
    async def test_serialization_is_timed(self, cache_service, telemetry):
        """Test serialize/deserialize timings per serializer."""
        await cache_service.set(TODO_1, CacheEntry.create(1), version="v1")
        await cache_service.get(TODO_1, "v1")

        assert [(op, name) for op, _, name in telemetry.serialization_durations] == [
            ("serialize", "json"),
            ("deserialize", "json"),
        ]

    @pytest.mark.asyncio
    async def test_entry_size_excludes_marker(self, cache_service, memory_store, telemetry):
        """Test entry size reporting."""
        await cache_service.set(TODO_1, CacheEntry.create(1), version="v1")

        blob = await memory_store.get("v1:todos:1")
        assert telemetry.entry_sizes == [(len(blob) - 1, False)]


@pytest.mark.unit
class TestHealthCheck:
    """health_check."""

    @pytest.mark.asyncio
    async def test_healthy(self, cache_service, memory_store):
        """Test a connected store with tag sets."""
        await memory_store.connect()

        health = await cache_service.health_check()

        assert health["status"] == "healthy"
        assert health["serializer"] == "json"
        assert health["tag_sets_enabled"] is True
        assert health["store"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_unhealthy_store_degrades_service(self, cache_service):
        """Test that store problems are reported."""
        assert (await cache_service.health_check())["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_missing_tag_sets_degrade_service(self, degraded_cache_service, memory_store):
        """Test that degraded mode is visible in health."""
        await memory_store.connect()
        assert (await degraded_cache_service.health_check())["status"] == "degraded"


@pytest.mark.unit
class TestServiceWiring:
    """Module-level singleton helpers."""

    @pytest.fixture(autouse=True)
    def reset_singleton(self, monkeypatch):
        monkeypatch.setattr(cache_service_module, "_cache_service", None)

    def test_get_cache_service_builds_from_settings(self, monkeypatch):
        """Test that the shared Redis client backs both stores."""
        redis_client = MagicMock()
        monkeypatch.setenv("CACHE_SERIALIZER", "msgpack")

        with (
            patch.object(cache_service_module, "get_redis_client", return_value=redis_client),
            patch.object(cache_service_module, "get_cache_metrics", return_value=RecordingTelemetry()),
        ):
            service = cache_service_module.get_cache_service()

        assert isinstance(service, DistributedCacheService)
        assert service.serializer_name == "msgpack"
        assert service.supports_feature_invalidation is True
        assert cache_service_module.get_cache_service() is service

    @pytest.mark.asyncio
    async def test_init_and_close(self):
        """Test connect/dispose of the global service."""
        store = InMemoryCacheStore()
        with (
            patch.object(cache_service_module, "init_redis", AsyncMock(return_value=store)) as init_mock,
            patch.object(cache_service_module, "close_redis", AsyncMock()) as close_mock,
            patch.object(cache_service_module, "get_redis_client", return_value=store),
            patch.object(cache_service_module, "get_cache_metrics", return_value=RecordingTelemetry()),
        ):
            service = await cache_service_module.init_cache()
            assert isinstance(service, DistributedCacheService)
            init_mock.assert_awaited_once()

            await cache_service_module.close_cache()
            close_mock.assert_awaited_once()

        assert cache_service_module._cache_service is None

    def test_default_serializer_is_json(self):
        """Test the default wiring."""
        with (
            patch.object(cache_service_module, "get_redis_client", return_value=InMemoryCacheStore()),
            patch.object(cache_service_module, "get_cache_metrics", return_value=RecordingTelemetry()),
        ):
            service = cache_service_module.get_cache_service()

        assert isinstance(service._serializer, JsonCacheSerializer)
