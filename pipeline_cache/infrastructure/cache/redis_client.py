"""
Redis Client with Connection Pooling

Architecture:
    RedisClient (Public API, implements KeyValueStore + TagSetStore)
        ├── ConnectionManager (Connection lifecycle, retried connect)
        ├── OperationExecutor (Command execution with error translation)
        └── HealthMonitor (Health checks and pool metrics)

The client runs with decode_responses=False: cache entries are binary blobs
(marker byte + payload) and must come back exactly as written. Set members
(wire keys) are decoded to str on the way out.

Error translation:
    redis ConnectionError / TimeoutError -> CacheConnectionError
    any other RedisError                 -> CacheKeyError
"""

from __future__ import annotations

import time
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from pipeline_cache.core.config.constants import Stage
from pipeline_cache.core.config.settings import get_settings
from pipeline_cache.core.exceptions.cache import CacheConnectionError, CacheKeyError
from pipeline_cache.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# Handles connection lifecycle, pooling, and reconnection
# =============================================================================


class ConnectionManager:
    """
    Manages Redis connection lifecycle and pooling.

    Responsibility: Connection establishment, pooling, and cleanup.

    Pool Configuration (from RedisSettings):
    - Max connections: REDIS_MAX_CONNECTIONS
    - Socket timeouts: REDIS_SOCKET_TIMEOUT / REDIS_SOCKET_CONNECT_TIMEOUT
    - Health check interval: REDIS_HEALTH_CHECK_INTERVAL
    - Connect attempts: REDIS_CONNECT_RETRIES (exponential backoff with jitter)
    """

    def __init__(self, settings):
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._is_connected = False

    def _build_pool(self) -> ConnectionPool:
        redis_settings = self._settings.redis
        return ConnectionPool(
            host=redis_settings.REDIS_HOST,
            port=redis_settings.REDIS_PORT,
            db=redis_settings.REDIS_DB,
            password=redis_settings.REDIS_PASSWORD,
            max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
            socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
            retry_on_timeout=True,
            health_check_interval=redis_settings.REDIS_HEALTH_CHECK_INTERVAL,
            decode_responses=False,  # Cache blobs are bytes
        )

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis with connection pooling.

        STAGE-REDIS.CONNECT: Connection establishment

        The initial PING is retried on connection/timeout errors so a Redis
        that is still starting up does not fail the whole service.

        Returns:
            redis.Redis: Connected Redis client

        Raises:
            CacheConnectionError: If every attempt fails
        """
        if self._is_connected and self._client:
            return self._client

        redis_settings = self._settings.redis
        self._pool = self._build_pool()
        self._client = redis.Redis(connection_pool=self._pool)

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(redis_settings.REDIS_CONNECT_RETRIES),
                wait=wait_exponential_jitter(initial=0.1, max=2.0),
                retry=retry_if_exception_type((ConnectionError, TimeoutError)),
                before_sleep=lambda retry_state: log_stage(
                    logger,
                    Stage.REDIS_CONNECT,
                    "Redis connect retry",
                    level="warning",
                    attempt=retry_state.attempt_number,
                    error=str(retry_state.outcome.exception()),
                ),
                reraise=True,
            ):
                with attempt:
                    await self._client.ping()
        except (ConnectionError, TimeoutError) as e:
            log_stage(logger, Stage.REDIS_CONNECT, "Failed to connect to Redis", level="error", error=str(e))
            await self._pool.disconnect()
            self._client = None
            self._pool = None
            raise CacheConnectionError(
                message=f"Failed to connect to Redis: {e}",
                details={"host": redis_settings.REDIS_HOST, "port": redis_settings.REDIS_PORT},
            ).with_suggestion("Check REDIS_HOST/REDIS_PORT and that Redis is running") from e

        self._is_connected = True

        log_stage(
            logger,
            Stage.REDIS_CONNECT,
            "Redis connected successfully",
            host=redis_settings.REDIS_HOST,
            port=redis_settings.REDIS_PORT,
            max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
        )
        return self._client

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-REDIS.DISCONNECT: Connection cleanup
        """
        if self._client:
            await self._client.aclose()

        if self._pool:
            await self._pool.disconnect()

        self._client = None
        self._pool = None
        self._is_connected = False

        log_stage(logger, Stage.REDIS_DISCONNECT, "Redis disconnected")

    async def ping(self) -> bool:
        """True if the connection answers PING."""
        try:
            if self._client and self._is_connected:
                await self._client.ping()
                return True
        except (ConnectionError, TimeoutError):
            pass
        return False

    def get_client(self) -> redis.Redis | None:
        return self._client

    def get_pool(self) -> ConnectionPool | None:
        return self._pool

    def is_connected(self) -> bool:
        return self._is_connected


# =============================================================================
# LAYER 2: OPERATION EXECUTOR
# Executes Redis commands with error translation and logging
# =============================================================================


def _translate_error(error: RedisError, command: str, **details) -> CacheConnectionError | CacheKeyError:
    """Map a redis-py exception onto the cache exception hierarchy."""
    log_stage(
        logger,
        f"REDIS.{command}",
        f"Redis {command} failed",
        level="error",
        error=str(error),
        **details,
    )
    error_cls = CacheConnectionError if isinstance(error, ConnectionError | TimeoutError) else CacheKeyError
    return error_cls.from_exception(error, message=f"Redis {command} failed: {error}", command=command, **details)


class OperationExecutor:
    """
    Executes the Redis commands the cache service needs.

    Responsibility: Command execution with consistent error handling.

    Every RedisError is logged with its command and key, then re-raised as
    CacheConnectionError or CacheKeyError so callers only ever see the cache
    exception hierarchy.
    """

    def __init__(self, redis_client: redis.Redis):
        self._redis = redis_client

    # -------------------------------------------------------------------------
    # Key-Value Operations
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> bytes | None:
        try:
            return await self._redis.get(key)
        except RedisError as e:
            raise _translate_error(e, "GET", key=key) from e

    async def set(self, key: str, value: bytes, ttl: int | None = None) -> bool:
        """
        SET with optional expiry in seconds.

        Returns:
            True if Redis acknowledged the write
        """
        try:
            result = await self._redis.set(key, value, ex=ttl)
            return bool(result)
        except RedisError as e:
            raise _translate_error(e, "SET", key=key) from e

    async def delete(self, *keys: str) -> int:
        """DEL of every key in one command. Returns the number deleted."""
        if not keys:
            return 0
        try:
            return await self._redis.delete(*keys)
        except RedisError as e:
            raise _translate_error(e, "DEL", keys=list(keys)) from e

    async def expire(self, key: str, ttl: int) -> bool:
        try:
            return bool(await self._redis.expire(key, ttl))
        except RedisError as e:
            raise _translate_error(e, "EXPIRE", key=key) from e

    async def ttl(self, key: str) -> int:
        """TTL in seconds, -1 if no TTL, -2 if key doesn't exist."""
        try:
            return await self._redis.ttl(key)
        except RedisError as e:
            raise _translate_error(e, "TTL", key=key) from e

    # -------------------------------------------------------------------------
    # Set Operations (feature tag sets)
    # -------------------------------------------------------------------------

    async def sadd(self, name: str, *members: str) -> int:
        try:
            return await self._redis.sadd(name, *members)
        except RedisError as e:
            raise _translate_error(e, "SADD", name=name) from e

    async def srem(self, name: str, *members: str) -> int:
        try:
            return await self._redis.srem(name, *members)
        except RedisError as e:
            raise _translate_error(e, "SREM", name=name) from e

    async def smembers(self, name: str) -> set[str]:
        """Members decoded to str (the pool returns raw bytes)."""
        try:
            members = await self._redis.smembers(name)
        except RedisError as e:
            raise _translate_error(e, "SMEMBERS", name=name) from e
        return {m.decode("utf-8") if isinstance(m, bytes) else m for m in members}


# =============================================================================
# LAYER 3: HEALTH MONITORING
# Health checks and connection pool metrics
# =============================================================================


class HealthMonitor:
    """
    Monitors Redis health and connection pool metrics.

    Metrics Tracked:
    - Connection status
    - Ping latency
    - Pool size and utilization
    - Pool exhaustion warnings (>80% utilized)
    """

    POOL_WARNING_THRESHOLD_PCT = 80

    def __init__(self, connection_manager: ConnectionManager, settings):
        self._conn_mgr = connection_manager
        self._settings = settings

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on Redis connection.

        STAGE-REDIS.HEALTH: Redis health check

        Returns:
            Dict with health status and metrics
        """
        health = {
            "status": "healthy",
            "connected": self._conn_mgr.is_connected(),
            "host": self._settings.redis.REDIS_HOST,
            "port": self._settings.redis.REDIS_PORT,
            "pool_size": 0,
            "pool_available": 0,
            "pool_utilization_pct": 0,
            "pool_warning": False,
            "ping_latency_ms": None,
        }

        client = self._conn_mgr.get_client()
        if not client:
            health["status"] = "unhealthy"
            health["error"] = "Client not initialized"
            return health

        try:
            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        except RedisError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)
            log_stage(logger, Stage.REDIS_HEALTH, "Redis health check failed", level="warning", error=str(e))
            return health

        pool = self._conn_mgr.get_pool()
        if pool:
            health["pool_size"] = pool.max_connections

            if hasattr(pool, "_available_connections"):
                available = len(pool._available_connections)
                health["pool_available"] = available

                utilization = 100.0 * ((pool.max_connections - available) / pool.max_connections)
                health["pool_utilization_pct"] = round(utilization, 1)

                if utilization > self.POOL_WARNING_THRESHOLD_PCT:
                    health["pool_warning"] = True
                    log_stage(
                        logger,
                        Stage.REDIS_HEALTH,
                        "Redis pool utilization high",
                        level="warning",
                        pool_utilization=utilization,
                        max_connections=pool.max_connections,
                    )

        return health


# =============================================================================
# LAYER 4: PUBLIC API
# Clean interface that coordinates all layers
# =============================================================================


class RedisClient:
    """
    Async Redis client used as the distributed cache store.

    Implements both KeyValueStore and TagSetStore, so the cache service runs
    with full tag-set bookkeeping on top of it.

    Usage:
        client = RedisClient()
        await client.connect()

        await client.set("v1:todos:42", blob, ttl=300)
        blob = await client.get("v1:todos:42")
        await client.sadd("tag:todos", "v1:todos:42")

        await client.disconnect()
    """

    def __init__(self, settings=None):
        """
        Initialize Redis client.

        STAGE-REDIS.INIT: Client initialization
        """
        self._settings = settings or get_settings()

        self._conn_mgr = ConnectionManager(self._settings)
        self._executor: OperationExecutor | None = None
        self._health_monitor = HealthMonitor(self._conn_mgr, self._settings)

        log_stage(
            logger,
            Stage.REDIS_INIT,
            "Redis client initialized",
            host=self._settings.redis.REDIS_HOST,
            port=self._settings.redis.REDIS_PORT,
        )

    async def connect(self) -> None:
        """
        Raises:
            CacheConnectionError: If connection fails
        """
        client = await self._conn_mgr.connect()
        self._executor = OperationExecutor(client)

    async def disconnect(self) -> None:
        await self._conn_mgr.disconnect()
        self._executor = None

    async def ping(self) -> bool:
        return await self._conn_mgr.ping()

    def _require_executor(self) -> OperationExecutor:
        if self._executor is None:
            raise CacheConnectionError(
                "Redis client is not connected",
                details={"host": self._settings.redis.REDIS_HOST},
            ).with_suggestion("Call init_cache() or RedisClient.connect() first")
        return self._executor

    # -------------------------------------------------------------------------
    # Delegate to OperationExecutor
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> bytes | None:
        return await self._require_executor().get(key)

    async def set(self, key: str, value: bytes, ttl: int | None = None) -> bool:
        return await self._require_executor().set(key, value, ttl)

    async def delete(self, *keys: str) -> int:
        return await self._require_executor().delete(*keys)

    async def expire(self, key: str, ttl: int) -> bool:
        return await self._require_executor().expire(key, ttl)

    async def ttl(self, key: str) -> int:
        return await self._require_executor().ttl(key)

    async def sadd(self, name: str, *members: str) -> int:
        return await self._require_executor().sadd(name, *members)

    async def srem(self, name: str, *members: str) -> int:
        return await self._require_executor().srem(name, *members)

    async def smembers(self, name: str) -> set[str]:
        return await self._require_executor().smembers(name)

    async def health_check(self) -> dict[str, Any]:
        return await self._health_monitor.health_check()


# =============================================================================
# GLOBAL INSTANCE (SINGLETON PATTERN)
# =============================================================================

_redis_client: RedisClient | None = None


def get_redis_client() -> RedisClient:
    """
    Get the global Redis client instance (singleton).

    Returns:
        RedisClient: Global Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = RedisClient()

    return _redis_client


async def init_redis() -> RedisClient:
    """Initialize and connect the global Redis client."""
    client = get_redis_client()
    await client.connect()
    return client


async def close_redis() -> None:
    """Close the global Redis client."""
    global _redis_client

    if _redis_client:
        await _redis_client.disconnect()
        _redis_client = None
