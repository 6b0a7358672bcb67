"""
Cache Store Protocols

This module defines the protocols the cache service depends on, enabling
dependency injection and testability.

Architectural Decision: Protocol-based abstraction
- KeyValueStore is the minimum a store must offer (bytes in, bytes out, TTL)
- TagSetStore adds the server-side set commands needed for O(1) feature
  invalidation; a store without them runs the cache service in degraded mode
- RedisClient implements both; InMemoryCacheStore implements both for
  tests and local development
"""

from __future__ import annotations

import time
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Minimal key-value store: get/set/delete of byte blobs with TTL.

    Implementations:
    - RedisClient: Production Redis-backed store
    - InMemoryCacheStore: Testing/development store
    """

    async def get(self, key: str) -> bytes | None:
        """
        Get a blob.

        Returns:
            The stored bytes, or None if the key does not exist

        Raises:
            CacheConnectionError: If the store is unreachable
            CacheKeyError: If the command fails
        """
        ...

    async def set(self, key: str, value: bytes, ttl: int | None = None) -> bool:
        """
        Store a blob, optionally expiring after ttl seconds.

        Raises:
            CacheConnectionError: If the store is unreachable
            CacheKeyError: If the command fails
        """
        ...

    async def delete(self, *keys: str) -> int:
        """
        Delete keys in a single command.

        Returns:
            int: Number of keys deleted
        """
        ...


@runtime_checkable
class TagSetStore(Protocol):
    """
    Server-side set commands used for feature tag sets.

    Members are wire keys (str). Deleting a whole tag set goes through
    KeyValueStore.delete so entries and their set leave in one command.
    """

    async def sadd(self, name: str, *members: str) -> int:
        """Add members to a set. Returns the number newly added."""
        ...

    async def srem(self, name: str, *members: str) -> int:
        """Remove members from a set. Returns the number removed."""
        ...

    async def smembers(self, name: str) -> set[str]:
        """Return every member of a set (empty set if absent)."""
        ...

    async def expire(self, key: str, ttl: int) -> bool:
        """Set TTL on a key. Returns True if the key exists."""
        ...

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds: -1 without expiry, -2 if missing."""
        ...


class InMemoryCacheStore:
    """
    Simple in-memory store implementing KeyValueStore and TagSetStore.

    Mirrors the Redis semantics the cache service relies on: string keys and
    set keys share one keyspace, TTLs expire lazily on access, deleting a set
    key removes the set.

    Note: This is NOT distributed and NOT safe across threads.
    Use only for testing and local development.
    """

    def __init__(self, clock=time.monotonic):
        self._strings: dict[str, bytes] = {}
        self._sets: dict[str, set[str]] = {}
        self._expires_at: dict[str, float] = {}
        self._clock = clock
        self._connected = False

    async def connect(self) -> None:
        """Simulate connection."""
        self._connected = True

    async def disconnect(self) -> None:
        """Simulate disconnection."""
        self._connected = False
        self._strings.clear()
        self._sets.clear()
        self._expires_at.clear()

    async def ping(self) -> bool:
        """Check if connected."""
        return self._connected

    def _purge_if_expired(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._strings.pop(key, None)
            self._sets.pop(key, None)
            del self._expires_at[key]

    def _exists(self, key: str) -> bool:
        self._purge_if_expired(key)
        return key in self._strings or key in self._sets

    # Key-value operations
    async def get(self, key: str) -> bytes | None:
        """Get blob from in-memory store."""
        self._purge_if_expired(key)
        return self._strings.get(key)

    async def set(self, key: str, value: bytes, ttl: int | None = None) -> bool:
        """Set blob in in-memory store."""
        self._sets.pop(key, None)
        self._strings[key] = value
        if ttl:
            self._expires_at[key] = self._clock() + ttl
        else:
            self._expires_at.pop(key, None)
        return True

    async def delete(self, *keys: str) -> int:
        """Delete string or set keys."""
        count = 0
        for key in keys:
            if self._exists(key):
                self._strings.pop(key, None)
                self._sets.pop(key, None)
                count += 1
            self._expires_at.pop(key, None)
        return count

    async def exists(self, *keys: str) -> int:
        """Check if keys exist."""
        return sum(1 for key in keys if self._exists(key))

    async def expire(self, key: str, ttl: int) -> bool:
        """Set TTL on key."""
        if not self._exists(key):
            return False
        self._expires_at[key] = self._clock() + ttl
        return True

    async def ttl(self, key: str) -> int:
        """Get TTL of key: -2 if missing, -1 if no TTL."""
        if not self._exists(key):
            return -2
        deadline = self._expires_at.get(key)
        if deadline is None:
            return -1
        return max(0, int(deadline - self._clock()))

    # Set operations
    async def sadd(self, name: str, *members: str) -> int:
        """Add members to a set."""
        self._purge_if_expired(name)
        if name in self._strings:
            raise TypeError(f"WRONGTYPE key {name!r} holds a string value")
        current = self._sets.setdefault(name, set())
        added = len(set(members) - current)
        current.update(members)
        return added

    async def srem(self, name: str, *members: str) -> int:
        """Remove members from a set; drops the set once empty."""
        self._purge_if_expired(name)
        current = self._sets.get(name)
        if current is None:
            return 0
        removed = len(current & set(members))
        current.difference_update(members)
        if not current:
            del self._sets[name]
            self._expires_at.pop(name, None)
        return removed

    async def smembers(self, name: str) -> set[str]:
        """Return a copy of the set's members."""
        self._purge_if_expired(name)
        return set(self._sets.get(name, set()))

    async def health_check(self) -> dict[str, Any]:
        """Health check."""
        return {
            "status": "healthy" if self._connected else "unhealthy",
            "connected": self._connected,
            "keys_count": len(self._strings) + len(self._sets),
        }
