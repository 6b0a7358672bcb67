"""
Pipeline Behaviors

Behaviors wrapped around request handlers:
- **caching.py**: read path, read-through cache with per-key stampede locks
- **invalidation.py**: write path, invalidation after successful writes
- **base.py**: PipelineBehavior protocol and the Pipeline that composes them
"""

from pipeline_cache.application.behaviors.base import (
    NextHandler,
    Pipeline,
    PipelineBehavior,
    signals_success,
)
from pipeline_cache.application.behaviors.caching import CachingBehavior
from pipeline_cache.application.behaviors.invalidation import CacheInvalidationBehavior
from pipeline_cache.application.behaviors.locks import KeyedLockTable

__all__ = [
    "CacheInvalidationBehavior",
    "CachingBehavior",
    "KeyedLockTable",
    "NextHandler",
    "Pipeline",
    "PipelineBehavior",
    "signals_success",
]
