"""
Cache-Related Exceptions

All exceptions related to caching operations: store connectivity, store
commands, payload (de)serialization and key construction.
"""

from pipeline_cache.core.exceptions.base import PipelineCacheError


class CacheError(PipelineCacheError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when unable to reach the cache store (Redis).

    Common causes:
    - Redis server is down
    - Network connectivity issues
    - Incorrect host/port configuration
    - Authentication failure
    """
    pass


class CacheKeyError(CacheError):
    """
    Raised when a cache command fails for a reason other than connectivity.

    Common causes:
    - Wrong type for the key (e.g. SADD against a string key)
    - Memory limit exceeded
    - Server-side script/command error
    """
    pass


class CacheSerializationError(CacheError):
    """
    Raised when a cached payload cannot be encoded or decoded.

    Common causes:
    - Entry written by an incompatible code version
    - Requested value type does not match the stored payload
    - Corrupted or truncated bytes
    - Unknown compression marker
    """
    pass


class InvalidCacheKeyError(PipelineCacheError, ValueError):
    """
    Raised when a cache key is malformed.

    Common causes:
    - Empty feature or value
    - Feature containing the key separator
    - Wildcard characters in the value
    """
    pass
