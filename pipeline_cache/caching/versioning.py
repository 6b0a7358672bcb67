"""
Cache Version Resolution

Resolves the version prefix of a wire key. Caching and invalidation both go
through this resolver so a write and the invalidation that follows it always
compute the same wire key.

Precedence (highest first):
    1. CachePolicy.version           explicit per-request override
    2. CACHE_FEATURE_VERSIONS[...]   per-feature configured version
    3. CACHE_GLOBAL_VERSION          global configured version

Bumping a version is an instant logical invalidation: entries written under
the old version are orphaned (never read again) and expire by TTL.
"""

from collections.abc import Callable

from pipeline_cache.caching.keys import CacheKey
from pipeline_cache.caching.policies import CachePolicy
from pipeline_cache.core.config.settings import Settings, get_settings


class CacheVersionResolver:
    """
    Resolves the version in effect for a policy or a bare key.

    Settings are fetched through the provider on every call, so
    reload_settings() takes effect without rebuilding the resolver.
    """

    def __init__(self, settings_provider: Callable[[], Settings] = get_settings):
        self._settings_provider = settings_provider

    def resolve(self, policy: CachePolicy) -> str:
        """Resolve the version for a cacheable request."""
        if policy.version:
            return policy.version
        return self.resolve_for_key(policy.key)

    def resolve_for_key(self, key: CacheKey) -> str:
        """Resolve the version for a key that carries no explicit override."""
        cache_settings = self._settings_provider().cache
        feature_version = cache_settings.CACHE_FEATURE_VERSIONS.get(key.feature)
        if feature_version:
            return feature_version
        return cache_settings.CACHE_GLOBAL_VERSION
