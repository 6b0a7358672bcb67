"""
Per-Key Lock Table

One asyncio.Lock per wire key, created on first use. Holding a key's lock
means "I am recomputing this entry"; concurrent readers of the same key
queue on it and re-check the cache once they get it.

Locks are never removed. The table grows with the number of distinct wire
keys this process has missed on (one small Lock object each); if that ever
becomes a memory concern, swap in a bounded LRU of locks.
"""

import asyncio


class KeyedLockTable:
    """Lazily populated map of key -> asyncio.Lock."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> asyncio.Lock:
        """Return the lock for key, creating it on first use."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def __contains__(self, key: str) -> bool:
        return key in self._locks

    def __len__(self) -> int:
        return len(self._locks)
