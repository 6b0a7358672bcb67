#!/usr/bin/env python3
"""
Distributed Cache Service

Architecture:
    DistributedCacheService (Public API)
        ├── KeyValueStore (entry blobs, with TTL)
        ├── TagSetStore (feature tag sets, optional)
        ├── CacheSerializer (JSON or MessagePack, optional zlib)
        └── CacheTelemetry (Prometheus CacheMetrics in production)

Redis layout:
    {version}:{feature}:{value}   entry blob, expires after the entry TTL
    tag:{feature}                 set of every wire key written for the feature,
                                  expires 5 minutes after its longest-lived member

Feature invalidation reads the tag set once and deletes its members together
with the set in a single DEL. The keyspace is never scanned.

Degraded mode: when the store has no set commands (no TagSetStore), writes
and removals skip tag bookkeeping and remove_by_feature() only logs a
warning. Entries of that feature then live until their TTL expires.
"""

import time
from collections.abc import Callable
from typing import Any

from pipeline_cache.caching.entry import CacheEntry
from pipeline_cache.caching.keys import CacheKey, build_tag_set_key, build_wire_key
from pipeline_cache.core.config.constants import TAG_SET_TTL_MARGIN_SECONDS, Stage
from pipeline_cache.core.config.settings import Settings, get_settings
from pipeline_cache.core.exceptions.cache import (
    CacheError,
    CacheSerializationError,
    InvalidCacheKeyError,
)
from pipeline_cache.core.interfaces.cache import KeyValueStore, TagSetStore
from pipeline_cache.core.interfaces.telemetry import CacheTelemetry
from pipeline_cache.core.logging.logger import get_logger, log_stage
from pipeline_cache.infrastructure.cache.redis_client import (
    close_redis,
    get_redis_client,
    init_redis,
)
from pipeline_cache.infrastructure.cache.serializers import CacheSerializer, create_serializer
from pipeline_cache.infrastructure.monitoring.cache_metrics import get_cache_metrics

logger = get_logger(__name__)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class DistributedCacheService:
    """
    Versioned, tag-indexed cache over a remote key-value store.

    STAGE-CACHE: Cache service operations

    Usage:
        service = DistributedCacheService(store=redis_client, tag_store=redis_client,
                                          serializer=JsonCacheSerializer(),
                                          telemetry=CacheMetrics())

        key = CacheKey("todos", "42")
        await service.set(key, CacheEntry.create(todo), ttl=60, version="v1")
        entry = await service.get(key, version="v1", value_type=TodoDto)
        removed = await service.remove_by_feature("todos")

    Every operation records its duration (tagged with success) to telemetry.
    Store failures propagate as CacheError subclasses; a corrupted entry is
    the one failure handled here (it is deleted and reported as a miss).
    """

    def __init__(
        self,
        store: KeyValueStore,
        serializer: CacheSerializer,
        telemetry: CacheTelemetry,
        tag_store: TagSetStore | None = None,
        settings_provider: Callable[[], Settings] = get_settings,
    ):
        self._store = store
        self._tag_store = tag_store
        self._serializer = serializer
        self._telemetry = telemetry
        self._settings_provider = settings_provider

        log_stage(
            logger,
            Stage.CACHE_INIT,
            "Distributed cache service initialized",
            serializer=serializer.name,
            tag_sets_enabled=tag_store is not None,
        )
        if tag_store is None:
            log_stage(
                logger,
                Stage.CACHE_INIT,
                "Store has no set support; feature invalidation is disabled",
                level="warning",
            )

    @property
    def supports_feature_invalidation(self) -> bool:
        return self._tag_store is not None

    @property
    def serializer_name(self) -> str:
        return self._serializer.name

    def _record_duration(self, operation: str, start: float, success: bool) -> None:
        self._telemetry.record_operation_duration(operation, _elapsed_ms(start), success)

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    async def get(
        self, key: CacheKey, version: str | None = None, value_type: Any = Any
    ) -> CacheEntry | None:
        """
        Read an entry.

        STAGE-CACHE.GET

        Args:
            key: Entry key
            version: Version prefix (None = unversioned wire key)
            value_type: Type the cached value is validated into

        Returns:
            CacheEntry[value_type], or None on a store miss or a corrupted entry

        Raises:
            CacheConnectionError / CacheKeyError: If the store fails
        """
        wire_key = build_wire_key(key, version)
        start = time.perf_counter()
        success = False

        try:
            blob = await self._store.get(wire_key)

            if blob is None:
                self._telemetry.record_miss(key.feature)
                log_stage(logger, Stage.CACHE_GET, "Cache miss", level="debug", key=wire_key)
                success = True
                return None

            deserialize_start = time.perf_counter()
            try:
                entry = self._serializer.deserialize(blob, CacheEntry[value_type])
            except CacheSerializationError as e:
                await self._discard_corrupted(key, wire_key, e)
                success = True
                return None

            self._telemetry.record_serialization_duration(
                "deserialize", _elapsed_ms(deserialize_start), self._serializer.name
            )
            # An empty entry is recomputed by the read path, so it counts as a miss
            if entry.has_value:
                self._telemetry.record_hit(key.feature)
            else:
                self._telemetry.record_miss(key.feature)
            log_stage(
                logger,
                Stage.CACHE_GET,
                "Cache hit",
                level="debug",
                key=wire_key,
                has_value=entry.has_value,
            )
            success = True
            return entry
        finally:
            self._record_duration("get", start, success)

    async def _discard_corrupted(self, key: CacheKey, wire_key: str, error: CacheSerializationError) -> None:
        """Delete an unreadable entry and drop it from its tag set."""
        log_stage(
            logger,
            Stage.CACHE_CORRUPTED,
            "Cache deserialization failed, removing corrupted entry",
            level="warning",
            key=wire_key,
            error=error.message,
            details=error.details,
        )
        await self._store.delete(wire_key)
        if self._tag_store is not None:
            await self._tag_store.srem(build_tag_set_key(key.feature), wire_key)

        self._telemetry.record_miss(key.feature)
        self._telemetry.record_deserialization_failure(key.feature)

    # -------------------------------------------------------------------------
    # Write
    # -------------------------------------------------------------------------

    async def set(
        self,
        key: CacheKey,
        entry: CacheEntry,
        ttl: int | None = None,
        version: str | None = None,
        use_compression: bool | None = None,
    ) -> None:
        """
        Write an entry and register it in its feature's tag set.

        STAGE-CACHE.SET

        Args:
            key: Entry key
            entry: Entry to store
            ttl: Lifetime in seconds (None = CACHE_DEFAULT_TTL)
            version: Version prefix (None = unversioned wire key)
            use_compression: Compression override (None = CACHE_ENABLE_COMPRESSION)

        Raises:
            ValueError: If ttl is not positive
            CacheSerializationError: If the entry cannot be encoded
            CacheConnectionError / CacheKeyError: If the store fails
        """
        cache_settings = self._settings_provider().cache
        ttl = cache_settings.CACHE_DEFAULT_TTL if ttl is None else ttl
        if ttl <= 0:
            raise ValueError(f"Cache TTL must be greater than zero, got {ttl}")
        compress = cache_settings.CACHE_ENABLE_COMPRESSION if use_compression is None else use_compression

        wire_key = build_wire_key(key, version)
        start = time.perf_counter()
        success = False

        try:
            serialize_start = time.perf_counter()
            result = self._serializer.serialize(
                entry, compress, cache_settings.CACHE_COMPRESSION_THRESHOLD_BYTES
            )
            self._telemetry.record_serialization_duration(
                "serialize", _elapsed_ms(serialize_start), self._serializer.name
            )
            if result.is_compressed:
                self._telemetry.record_compression_ratio(
                    result.original_size, result.final_size, self._serializer.name
                )

            await self._store.set(wire_key, result.data, ttl)

            if self._tag_store is not None:
                tag_key = build_tag_set_key(key.feature)
                await self._tag_store.sadd(tag_key, wire_key)
                await self._extend_tag_set_ttl(tag_key, ttl + TAG_SET_TTL_MARGIN_SECONDS)

            self._telemetry.record_entry_size(result.final_size, result.is_compressed)
            log_stage(
                logger,
                Stage.CACHE_SET,
                "Cache entry stored",
                level="debug",
                key=wire_key,
                ttl=ttl,
                size=result.final_size,
                compressed=result.is_compressed,
            )
            success = True
        finally:
            self._record_duration("set", start, success)

    async def _extend_tag_set_ttl(self, tag_key: str, tag_ttl: int) -> None:
        """Raise the tag set's TTL to tag_ttl; never shorten it."""
        # TTL is -1 for a set without expiry (fresh SADD), -2 if missing
        remaining = await self._tag_store.ttl(tag_key)
        if remaining < tag_ttl:
            await self._tag_store.expire(tag_key, tag_ttl)

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    async def remove(self, key: CacheKey, version: str | None = None) -> None:
        """
        Remove one entry.

        STAGE-CACHE.REMOVE

        The tag-set cleanup after the delete is best effort: a failure there
        is logged and the stale member is dropped by the next feature
        invalidation or the set's own expiry.

        Raises:
            CacheConnectionError / CacheKeyError: If the delete itself fails
        """
        wire_key = build_wire_key(key, version)
        start = time.perf_counter()
        success = False

        try:
            await self._store.delete(wire_key)

            if self._tag_store is not None:
                try:
                    await self._tag_store.srem(build_tag_set_key(key.feature), wire_key)
                except CacheError as e:
                    log_stage(
                        logger,
                        Stage.CACHE_REMOVE,
                        "Failed to remove key from feature tag set",
                        level="warning",
                        key=wire_key,
                        error=e.message,
                    )

            self._telemetry.record_invalidation(key.feature, 1)
            log_stage(logger, Stage.CACHE_REMOVE, "Cache entry removed", level="debug", key=wire_key)
            success = True
        finally:
            self._record_duration("remove", start, success)

    async def remove_by_feature(self, feature: str) -> int:
        """
        Remove every entry of a feature through its tag set.

        STAGE-CACHE.INVALIDATE

        One SMEMBERS, then one DEL of every member plus the tag set itself.
        Covers every version of the feature, since the set holds wire keys.

        Returns:
            Number of wire keys found in the tag set (0 in degraded mode)

        Raises:
            InvalidCacheKeyError: If feature is empty
            CacheConnectionError / CacheKeyError: If the store fails
        """
        if not feature or not feature.strip():
            raise InvalidCacheKeyError("Feature to invalidate must not be empty")

        start = time.perf_counter()
        success = False

        try:
            if self._tag_store is None:
                log_stage(
                    logger,
                    Stage.CACHE_INVALIDATE,
                    "Cannot invalidate feature without tag-set support; entries expire by TTL",
                    level="warning",
                    feature=feature,
                )
                success = True
                return 0

            tag_key = build_tag_set_key(feature)
            members = await self._tag_store.smembers(tag_key)

            if not members:
                log_stage(logger, Stage.CACHE_INVALIDATE, "No cached entries for feature", level="debug", feature=feature)
                success = True
                return 0

            await self._store.delete(*sorted(members), tag_key)

            count = len(members)
            self._telemetry.record_invalidation(feature, count)
            log_stage(logger, Stage.CACHE_INVALIDATE, "Feature invalidated", feature=feature, count=count)
            success = True
            return count
        finally:
            self._record_duration("invalidate", start, success)

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    async def health_check(self) -> dict[str, Any]:
        """
        Report service and store health.

        Returns:
            Dict with overall status, serializer, tag-set support and store health
        """
        health = {
            "status": "healthy",
            "serializer": self._serializer.name,
            "tag_sets_enabled": self._tag_store is not None,
            "store": None,
        }

        store_health_check = getattr(self._store, "health_check", None)
        if store_health_check is None:
            health["store"] = {"status": "unknown"}
            return health

        store_health = await store_health_check()
        health["store"] = store_health
        if store_health.get("status") != "healthy":
            health["status"] = "degraded"
        elif self._tag_store is None:
            health["status"] = "degraded"

        return health


# =============================================================================
# GLOBAL INSTANCE (SINGLETON PATTERN)
# =============================================================================

_cache_service: DistributedCacheService | None = None


def get_cache_service() -> DistributedCacheService:
    """
    Get the global cache service (singleton).

    Built from settings: serializer from CACHE_SERIALIZER, Prometheus
    metrics, and the shared RedisClient as both entry and tag-set store.
    """
    global _cache_service

    if _cache_service is None:
        settings = get_settings()
        redis_client = get_redis_client()
        _cache_service = DistributedCacheService(
            store=redis_client,
            tag_store=redis_client,
            serializer=create_serializer(settings.cache.CACHE_SERIALIZER),
            telemetry=get_cache_metrics(),
        )

    return _cache_service


async def init_cache() -> DistributedCacheService:
    """
    Connect Redis and build the global cache service.

    Raises:
        CacheConnectionError: If Redis cannot be reached
    """
    await init_redis()
    return get_cache_service()


async def close_cache() -> None:
    """Disconnect Redis and drop the global cache service."""
    global _cache_service

    await close_redis()
    _cache_service = None
