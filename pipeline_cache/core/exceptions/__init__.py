"""
Exception Module

Structured exception hierarchy for the caching layer.

Module Structure:
-----------------
- **base.py**: PipelineCacheError base class + ConfigurationError
- **cache.py**: Store, serialization and key exceptions

Usage:
------
```python
from pipeline_cache.core.exceptions import CacheConnectionError, CacheSerializationError
```
"""

from pipeline_cache.core.exceptions.base import ConfigurationError, PipelineCacheError
from pipeline_cache.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
    InvalidCacheKeyError,
)

__all__ = [
    # Base
    "PipelineCacheError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
    "InvalidCacheKeyError",
]
