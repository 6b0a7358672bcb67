"""
Cache Module

Distributed cache service over Redis: tag-set invalidation, versioned keys,
pluggable serialization with optional compression.
"""

from .cache_service import (
    DistributedCacheService,
    close_cache,
    get_cache_service,
    init_cache,
)
from .redis_client import RedisClient, close_redis, get_redis_client, init_redis
from .serializers import (
    CacheSerializer,
    JsonCacheSerializer,
    MessagePackCacheSerializer,
    SerializationResult,
    create_serializer,
)

__all__ = [
    "CacheSerializer",
    "DistributedCacheService",
    "JsonCacheSerializer",
    "MessagePackCacheSerializer",
    "RedisClient",
    "SerializationResult",
    "close_cache",
    "close_redis",
    "create_serializer",
    "get_cache_service",
    "get_redis_client",
    "init_cache",
    "init_redis",
]
