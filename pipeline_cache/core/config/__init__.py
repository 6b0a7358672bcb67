"""
Configuration Module

Centralized, type-safe configuration for the caching layer.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Wire formats, markers and stage identifiers

Usage:
------
```python
from pipeline_cache.core.config import get_settings

settings = get_settings()
ttl = settings.cache.CACHE_DEFAULT_TTL
```
"""

from pipeline_cache.core.config.constants import (
    COMPRESSION_MARKER,
    KEY_SEPARATOR,
    NO_COMPRESSION_MARKER,
    TAG_SET_KEY_PREFIX,
    TAG_SET_TTL_MARGIN_SECONDS,
    Stage,
)
from pipeline_cache.core.config.settings import (
    CacheSettings,
    LoggingSettings,
    RedisSettings,
    Settings,
    get_settings,
    reload_settings,
)

__all__ = [
    "COMPRESSION_MARKER",
    "KEY_SEPARATOR",
    "NO_COMPRESSION_MARKER",
    "TAG_SET_KEY_PREFIX",
    "TAG_SET_TTL_MARGIN_SECONDS",
    "CacheSettings",
    "LoggingSettings",
    "RedisSettings",
    "Settings",
    "Stage",
    "get_settings",
    "reload_settings",
]
