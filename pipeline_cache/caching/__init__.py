"""
Caching Model

Keys, entries, policies and version resolution shared by the cache service
and the pipeline behaviors.
"""

from pipeline_cache.caching.entry import CacheEntry
from pipeline_cache.caching.keys import CacheKey, build_tag_set_key, build_wire_key
from pipeline_cache.caching.policies import (
    CachePolicy,
    InvalidationPolicy,
    get_cache_policy,
    get_invalidation_policy,
)
from pipeline_cache.caching.versioning import CacheVersionResolver

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CachePolicy",
    "CacheVersionResolver",
    "InvalidationPolicy",
    "build_tag_set_key",
    "build_wire_key",
    "get_cache_policy",
    "get_invalidation_policy",
]
