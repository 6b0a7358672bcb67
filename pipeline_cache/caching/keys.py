"""
Cache Keys

A CacheKey names one logical cache entry as (feature, value). The feature
is a low-cardinality namespace ("todos") that doubles as the tag set used
for mass invalidation; the value identifies the entry inside it ("42",
"list").

Wire format (what is actually sent to Redis):
    {version}:{feature}:{value}    when a version is in effect
    {feature}:{value}              otherwise
    tag:{feature}                  the feature's tag set
"""

from dataclasses import dataclass

from pipeline_cache.core.config.constants import (
    KEY_SEPARATOR,
    TAG_SET_KEY_PREFIX,
    WILDCARD_CHARACTERS,
)
from pipeline_cache.core.exceptions.cache import InvalidCacheKeyError


@dataclass(frozen=True)
class CacheKey:
    """
    Immutable (feature, value) pair.

    Two keys with equal feature and value address the same entry. Wildcards
    are rejected: pattern invalidation is not supported, use feature-level
    invalidation instead.

    Raises:
        InvalidCacheKeyError: On an empty feature/value, a feature containing
            the separator, or a wildcard anywhere in the key
    """
    feature: str
    value: str

    def __post_init__(self):
        if not self.feature or not self.feature.strip():
            raise InvalidCacheKeyError("Cache key feature must not be empty")
        if not self.value:
            raise InvalidCacheKeyError(
                "Cache key value must not be empty",
                details={"feature": self.feature},
            )
        if KEY_SEPARATOR in self.feature:
            raise InvalidCacheKeyError(
                f"Cache key feature must not contain '{KEY_SEPARATOR}'",
                details={"feature": self.feature},
            )
        for wildcard in WILDCARD_CHARACTERS:
            if wildcard in self.feature or wildcard in self.value:
                raise InvalidCacheKeyError(
                    "Wildcard cache keys are not supported",
                    details={"feature": self.feature, "value": self.value},
                ).with_suggestion("Invalidate the whole feature instead")

    def with_value(self, value: str) -> "CacheKey":
        """Same feature, different value."""
        return CacheKey(self.feature, value)

    def __str__(self) -> str:
        return f"{self.feature}{KEY_SEPARATOR}{self.value}"


def build_wire_key(key: CacheKey, version: str | None = None) -> str:
    """Build the Redis key for an entry, prefixed by version when one is set."""
    if version:
        return f"{version}{KEY_SEPARATOR}{key.feature}{KEY_SEPARATOR}{key.value}"
    return f"{key.feature}{KEY_SEPARATOR}{key.value}"


def build_tag_set_key(feature: str) -> str:
    """Build the Redis key of the set tracking every wire key of a feature."""
    return f"{TAG_SET_KEY_PREFIX}{KEY_SEPARATOR}{feature}"
