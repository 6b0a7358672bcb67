#!/usr/bin/env python3
"""
Read-Path Caching Behavior

Serves cacheable requests from the distributed cache and makes sure only one
task per wire key recomputes a missing entry.

Flow (request carries a CachePolicy):
    1. Resolve version, GET                      hit -> return cached value
    2. Miss -> acquire the wire key's lock
    3. GET again under the lock                  hit -> return (someone else filled it)
    4. Still a miss -> run the handler
    5. Response is_success -> SET with the policy's TTL/compression
       anything else       -> not cached
    6. Release the lock, return the response

Requests without a cache_policy pass straight through.

A stored entry with has_value False is treated as a miss and recomputed.
Store failures (CacheConnectionError / CacheKeyError) propagate to the caller.
"""

from typing import Any

from pipeline_cache.application.behaviors.base import NextHandler, signals_success
from pipeline_cache.application.behaviors.locks import KeyedLockTable
from pipeline_cache.caching.entry import CacheEntry
from pipeline_cache.caching.keys import build_wire_key
from pipeline_cache.caching.policies import CachePolicy, get_cache_policy
from pipeline_cache.caching.versioning import CacheVersionResolver
from pipeline_cache.core.config.constants import Stage
from pipeline_cache.core.logging.logger import get_logger, log_stage
from pipeline_cache.infrastructure.cache.cache_service import DistributedCacheService

logger = get_logger(__name__)


class CachingBehavior:
    """
    Read-through cache with stampede protection.

    STAGE-PIPELINE.READ_PATH

    Args:
        cache_service: Distributed cache service
        response_type: Type cached responses are validated back into
            (e.g. Result[TodoDto]); Any returns the raw decoded payload
        version_resolver: Resolves the wire key version (default: settings-backed)
        lock_table: Per-key locks; share one table between behaviors that
            cache the same keys
    """

    def __init__(
        self,
        cache_service: DistributedCacheService,
        response_type: Any = Any,
        version_resolver: CacheVersionResolver | None = None,
        lock_table: KeyedLockTable | None = None,
    ):
        self._cache = cache_service
        self._response_type = response_type
        self._resolver = version_resolver or CacheVersionResolver()
        self._locks = lock_table if lock_table is not None else KeyedLockTable()

    async def handle(self, request: Any, next_handler: NextHandler) -> Any:
        policy = get_cache_policy(request)
        if policy is None:
            return await next_handler()

        version = self._resolver.resolve(policy)
        wire_key = build_wire_key(policy.key, version)

        # Fast path: no lock on a hit
        cached = await self._cache.get(policy.key, version, self._response_type)
        if cached is not None and cached.has_value:
            log_stage(logger, Stage.READ_PATH, "Served from cache", level="debug", key=wire_key)
            return cached.value

        async with self._locks.get(wire_key):
            cached = await self._cache.get(policy.key, version, self._response_type)
            if cached is not None and cached.has_value:
                log_stage(
                    logger,
                    Stage.READ_PATH,
                    "Served from cache after waiting for recomputation",
                    level="debug",
                    key=wire_key,
                )
                return cached.value

            response = await next_handler()
            await self._store_if_successful(policy, version, wire_key, response)
            return response

    async def _store_if_successful(
        self, policy: CachePolicy, version: str, wire_key: str, response: Any
    ) -> None:
        if not signals_success(response):
            log_stage(
                logger,
                Stage.READ_PATH,
                "Response not cached: handler did not succeed",
                level="debug",
                key=wire_key,
            )
            return

        await self._cache.set(
            policy.key,
            CacheEntry.create(response),
            ttl=policy.ttl,
            version=version,
            use_compression=policy.use_compression,
        )
        log_stage(logger, Stage.READ_PATH, "Response cached", level="debug", key=wire_key, ttl=policy.ttl)
