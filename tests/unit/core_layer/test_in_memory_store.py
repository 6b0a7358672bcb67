"""
Unit Tests for InMemoryCacheStore

Tests the Redis-like semantics the cache service relies on: shared keyspace
for strings and sets, lazy TTL expiry and multi-key delete.
"""

from typing import get_type_hints

import pytest

from pipeline_cache.core.interfaces.cache import InMemoryCacheStore, KeyValueStore, TagSetStore


@pytest.mark.unit
class TestInMemoryCacheStore:
    """Test suite for InMemoryCacheStore."""

    def test_implements_store_protocols(self, memory_store):
        """Test that the store satisfies both protocols."""
        assert isinstance(memory_store, KeyValueStore)
        assert isinstance(memory_store, TagSetStore)

    def test_smembers_returns_builtin_set(self):
        """Test that the set-returning annotation is not shadowed by the set() method."""
        assert get_type_hints(InMemoryCacheStore.smembers)["return"] == set[str]
        assert get_type_hints(TagSetStore.smembers)["return"] == set[str]

    @pytest.mark.asyncio
    async def test_get_set(self, memory_store):
        """Test a basic write/read."""
        await memory_store.set("k", b"\x00data")

        assert await memory_store.get("k") == b"\x00data"
        assert await memory_store.get("missing") is None

    @pytest.mark.asyncio
    async def test_ttl_expires_lazily(self, memory_store, fake_clock):
        """Test that entries disappear once their TTL passes."""
        await memory_store.set("k", b"v", ttl=10)

        fake_clock.advance(9)
        assert await memory_store.get("k") == b"v"
        assert await memory_store.ttl("k") == 1

        fake_clock.advance(1)
        assert await memory_store.get("k") is None
        assert await memory_store.ttl("k") == -2

    @pytest.mark.asyncio
    async def test_ttl_reports_no_expiry(self, memory_store):
        """Test -1 for keys without TTL."""
        await memory_store.set("k", b"v")
        assert await memory_store.ttl("k") == -1

    @pytest.mark.asyncio
    async def test_set_without_ttl_clears_previous_expiry(self, memory_store, fake_clock):
        """Test that overwriting without TTL makes the key persistent."""
        await memory_store.set("k", b"v", ttl=5)
        await memory_store.set("k", b"v2")

        fake_clock.advance(10)
        assert await memory_store.get("k") == b"v2"

    @pytest.mark.asyncio
    async def test_delete_many_counts_existing(self, memory_store):
        """Test multi-key delete over strings and sets."""
        await memory_store.set("a", b"1")
        await memory_store.sadd("tag:todos", "a")

        assert await memory_store.delete("a", "tag:todos", "missing") == 2
        assert await memory_store.exists("a", "tag:todos") == 0

    @pytest.mark.asyncio
    async def test_set_operations(self, memory_store):
        """Test SADD / SREM / SMEMBERS."""
        assert await memory_store.sadd("s", "a", "b") == 2
        assert await memory_store.sadd("s", "b", "c") == 1
        assert await memory_store.smembers("s") == {"a", "b", "c"}

        assert await memory_store.srem("s", "a", "zz") == 1
        assert await memory_store.smembers("s") == {"b", "c"}

    @pytest.mark.asyncio
    async def test_srem_of_last_member_drops_set(self, memory_store):
        """Test that an emptied set no longer exists."""
        await memory_store.sadd("s", "a")
        await memory_store.srem("s", "a")

        assert await memory_store.exists("s") == 0
        assert await memory_store.srem("s", "a") == 0

    @pytest.mark.asyncio
    async def test_smembers_returns_copy(self, memory_store):
        """Test that callers cannot mutate the stored set."""
        await memory_store.sadd("s", "a")
        members = await memory_store.smembers("s")
        members.add("b")

        assert await memory_store.smembers("s") == {"a"}

    @pytest.mark.asyncio
    async def test_sadd_against_string_key_fails(self, memory_store):
        """Test the WRONGTYPE behavior."""
        await memory_store.set("k", b"v")

        with pytest.raises(TypeError):
            await memory_store.sadd("k", "a")

    @pytest.mark.asyncio
    async def test_expire(self, memory_store, fake_clock):
        """Test EXPIRE on sets and missing keys."""
        await memory_store.sadd("s", "a")

        assert await memory_store.expire("s", 5) is True
        assert await memory_store.expire("missing", 5) is False

        fake_clock.advance(5)
        assert await memory_store.smembers("s") == set()

    @pytest.mark.asyncio
    async def test_health_check_follows_connection(self):
        """Test health reporting."""
        store = InMemoryCacheStore()
        assert (await store.health_check())["status"] == "unhealthy"

        await store.connect()
        assert await store.ping() is True
        assert (await store.health_check())["status"] == "healthy"

        await store.disconnect()
        assert await store.ping() is False
