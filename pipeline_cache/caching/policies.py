"""
Cache Policies

Requests opt into caching or invalidation by carrying a policy attribute:

    class GetTodoById(BaseModel):
        todo_id: int

        @property
        def cache_policy(self) -> CachePolicy:
            return CachePolicy(key=CacheKey("todos", str(self.todo_id)), ttl=60)

    class CompleteTodo(BaseModel):
        todo_id: int

        @property
        def invalidation_policy(self) -> InvalidationPolicy:
            return InvalidationPolicy(features=("todos",))

Behaviors look the attribute up at call time; the request type itself is
never inspected.
"""

from dataclasses import dataclass, field
from typing import Any

from pipeline_cache.caching.keys import CacheKey
from pipeline_cache.core.exceptions.cache import InvalidCacheKeyError

CACHE_POLICY_ATTRIBUTE = "cache_policy"
INVALIDATION_POLICY_ATTRIBUTE = "invalidation_policy"


@dataclass(frozen=True)
class CachePolicy:
    """
    How a read request's response is cached.

    Attributes:
        key: Entry key
        ttl: Entry lifetime in seconds (None = CACHE_DEFAULT_TTL)
        version: Explicit version overriding feature/global versions
        use_compression: Per-request compression override (None = global setting)
    """
    key: CacheKey
    ttl: int | None = None
    version: str | None = None
    use_compression: bool | None = None

    def __post_init__(self):
        if self.ttl is not None and self.ttl <= 0:
            raise ValueError("CachePolicy.ttl must be greater than zero")


@dataclass(frozen=True)
class InvalidationPolicy:
    """
    What a successful write request invalidates.

    Attributes:
        keys: Individual entries to remove
        features: Features whose entries are all removed via their tag set
    """
    keys: tuple[CacheKey, ...] = field(default_factory=tuple)
    features: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept any iterable but store tuples so the policy stays hashable
        object.__setattr__(self, "keys", tuple(self.keys or ()))
        object.__setattr__(self, "features", tuple(self.features or ()))
        for feature in self.features:
            if not feature or not feature.strip():
                raise InvalidCacheKeyError("Feature to invalidate must not be empty")

    @property
    def is_empty(self) -> bool:
        return not self.keys and not self.features


def get_cache_policy(request: Any) -> CachePolicy | None:
    """Return the request's CachePolicy, or None if it is not cacheable."""
    policy = getattr(request, CACHE_POLICY_ATTRIBUTE, None)
    return policy if isinstance(policy, CachePolicy) else None


def get_invalidation_policy(request: Any) -> InvalidationPolicy | None:
    """Return the request's InvalidationPolicy, or None if it invalidates nothing."""
    policy = getattr(request, INVALIDATION_POLICY_ATTRIBUTE, None)
    return policy if isinstance(policy, InvalidationPolicy) else None
