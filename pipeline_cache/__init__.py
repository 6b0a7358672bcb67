"""
pipeline-cache

Distributed read-through / write-invalidate cache for request pipelines,
backed by Redis.

Usage:
    from pipeline_cache import (
        CacheInvalidationBehavior, CachingBehavior, Pipeline, init_cache,
    )

    service = await init_cache()
    pipeline = Pipeline([
        CachingBehavior(service, response_type=Result[TodoDto]),
        CacheInvalidationBehavior(service),
    ])
    response = await pipeline.send(GetTodoById(todo_id=42), handle_get_todo)
"""

from pipeline_cache.application.behaviors import (
    CacheInvalidationBehavior,
    CachingBehavior,
    Pipeline,
)
from pipeline_cache.caching import (
    CacheEntry,
    CacheKey,
    CachePolicy,
    CacheVersionResolver,
    InvalidationPolicy,
)
from pipeline_cache.core.result import ErrorType, Result, ResultError
from pipeline_cache.infrastructure.cache import (
    DistributedCacheService,
    close_cache,
    get_cache_service,
    init_cache,
)

__version__ = "1.0.0"

__all__ = [
    "CacheEntry",
    "CacheInvalidationBehavior",
    "CacheKey",
    "CachePolicy",
    "CacheVersionResolver",
    "CachingBehavior",
    "DistributedCacheService",
    "ErrorType",
    "InvalidationPolicy",
    "Pipeline",
    "Result",
    "ResultError",
    "close_cache",
    "get_cache_service",
    "init_cache",
]
