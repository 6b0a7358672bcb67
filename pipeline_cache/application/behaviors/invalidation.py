#!/usr/bin/env python3
"""
Write-Path Invalidation Behavior

Runs the mutating handler first; once it has succeeded, removes the cache
entries the request declared through its invalidation_policy:

    keys      -> version resolved per key, then remove()
    features  -> remove_by_feature() (tag-set based, every version)

Invalidation is best effort. The mutation has already been applied, so a
failing target is logged at warning level and the remaining targets are
still attempted; the handler's response is always returned unchanged.
"""

from typing import Any

from pipeline_cache.application.behaviors.base import NextHandler, signals_success
from pipeline_cache.caching.keys import build_wire_key
from pipeline_cache.caching.policies import InvalidationPolicy, get_invalidation_policy
from pipeline_cache.caching.versioning import CacheVersionResolver
from pipeline_cache.core.config.constants import Stage
from pipeline_cache.core.exceptions.cache import CacheError
from pipeline_cache.core.logging.logger import get_logger, log_stage
from pipeline_cache.infrastructure.cache.cache_service import DistributedCacheService

logger = get_logger(__name__)


class CacheInvalidationBehavior:
    """
    Invalidates cache entries after a successful write.

    STAGE-PIPELINE.WRITE_PATH
    """

    def __init__(
        self,
        cache_service: DistributedCacheService,
        version_resolver: CacheVersionResolver | None = None,
    ):
        self._cache = cache_service
        self._resolver = version_resolver or CacheVersionResolver()

    async def handle(self, request: Any, next_handler: NextHandler) -> Any:
        response = await next_handler()

        policy = get_invalidation_policy(request)
        if policy is None or policy.is_empty:
            return response

        if not signals_success(response):
            log_stage(
                logger,
                Stage.WRITE_PATH,
                "Skipping cache invalidation: handler did not succeed",
                level="debug",
                request=type(request).__name__,
            )
            return response

        await self._invalidate(policy)
        return response

    async def _invalidate(self, policy: InvalidationPolicy) -> None:
        for key in policy.keys:
            version = self._resolver.resolve_for_key(key)
            try:
                await self._cache.remove(key, version)
                log_stage(
                    logger,
                    Stage.WRITE_PATH,
                    "Invalidated cache key",
                    level="debug",
                    key=build_wire_key(key, version),
                )
            except CacheError as e:
                log_stage(
                    logger,
                    Stage.WRITE_PATH,
                    "Failed to invalidate cache key",
                    level="warning",
                    feature=key.feature,
                    value=key.value,
                    version=version,
                    error=e.message,
                    error_type=type(e).__name__,
                )

        for feature in policy.features:
            try:
                count = await self._cache.remove_by_feature(feature)
                log_stage(
                    logger,
                    Stage.WRITE_PATH,
                    "Invalidated feature",
                    level="debug",
                    feature=feature,
                    count=count,
                )
            except CacheError as e:
                log_stage(
                    logger,
                    Stage.WRITE_PATH,
                    "Failed to invalidate feature",
                    level="warning",
                    feature=feature,
                    error=e.message,
                    error_type=type(e).__name__,
                )
