"""
Async Redis client for the product services cache.

Uses redis.asyncio so cache round-trips never block the event loop.
Works against a standalone node (local Redis, single ElastiCache node) or a
cluster-mode ElastiCache deployment, optionally over TLS.

Read/write failures surface as CacheUnavailableError so callers can tell
"cache down" apart from "cache miss" and degrade to the database.
"""
import asyncio
import json
import time
from typing import Any, Optional

import redis.asyncio as redis
from redis.asyncio.cluster import ClusterNode, RedisCluster
from redis.exceptions import RedisClusterException, RedisError

from product_services.config.settings import settings
from product_services.utils.logger import logger

# Errors that mean the cache layer itself is unhealthy
CACHE_ERRORS = (RedisError, RedisClusterException, OSError, asyncio.TimeoutError)

# Minimum pause between reconnect attempts after a failed connect
RECONNECT_INTERVAL_SECONDS = 30


class CacheUnavailableError(Exception):
    """Raised when the cache cannot serve a read or write."""


class RedisCache:
    """
    Async Redis cache client.

    Usage:
        cache = RedisCache()
        await cache.connect()

        await cache.set("key", [{"data": "value"}], ttl=1800)
        data = await cache.get("key")   # None on miss
    """

    def __init__(self, client: Optional[Any] = None):
        self._client = client
        self._connected = client is not None
        self._last_attempt: Optional[float] = None

    def _build_client(self):
        timeout = settings.redis_command_timeout_ms / 1000
        nodes = settings.cluster_nodes

        if nodes:
            return RedisCluster(
                startup_nodes=[ClusterNode(host, port) for host, port in nodes],
                ssl=settings.redis_ssl,
                ssl_cert_reqs="none" if settings.redis_ssl else "required",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=timeout,
                max_connections=settings.redis_max_connections,
            )

        if settings.redis_url:
            return redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=timeout,
                socket_keepalive=True,
                health_check_interval=30,
                max_connections=settings.redis_max_connections,
            )

        return redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            ssl=settings.redis_ssl,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=timeout,
            socket_keepalive=True,
            health_check_interval=30,
            max_connections=settings.redis_max_connections,
        )

    async def connect(self) -> None:
        """
        Establish connection to Redis / ElastiCache.

        A failed connection leaves the cache disconnected; the service keeps
        serving straight from the database.
        """
        if self._connected:
            return

        self._last_attempt = time.monotonic()
        client = None
        try:
            client = self._build_client()
            await client.ping()
            self._client = client
            self._connected = True
            logger.info("✅ Redis cache connected")

        except CACHE_ERRORS as e:
            logger.error(f"❌ Redis connection failed: {e}")
            self._connected = False
            self._client = None
            if client is not None:
                await self._close_quietly(client)

    async def ensure_connected(self) -> bool:
        """Retry a failed connect, at most once per RECONNECT_INTERVAL_SECONDS."""
        if self.is_connected:
            return True
        if (
            self._last_attempt is not None
            and time.monotonic() - self._last_attempt < RECONNECT_INTERVAL_SECONDS
        ):
            return False
        await self.connect()
        return self.is_connected

    @staticmethod
    async def _close_quietly(client) -> None:
        try:
            await client.aclose()
        except CACHE_ERRORS as e:
            logger.debug(f"Ignoring error while closing failed Redis client: {e}")

    async def disconnect(self) -> None:
        """Close Redis connection gracefully."""
        if self._client:
            await self._client.aclose()
            self._connected = False
            logger.info("Redis cache disconnected")

    @property
    def is_connected(self) -> bool:
        """Check if cache is available."""
        return self._connected and self._client is not None

    def _require_client(self):
        if not self.is_connected:
            raise CacheUnavailableError("Redis cache is not connected")
        return self._client

    # ─────────────────────────────────────────────────────────────────
    # Core Operations
    # ─────────────────────────────────────────────────────────────────

    async def ping(self) -> bool:
        if not self.is_connected:
            return False
        try:
            return bool(await self._client.ping())
        except CACHE_ERRORS:
            return False

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Returns None on cache miss. Deserializes JSON automatically.

        Raises:
            CacheUnavailableError: cache not connected or the read failed
        """
        client = self._require_client()

        try:
            value = await client.get(key)
        except CACHE_ERRORS as e:
            raise CacheUnavailableError(f"GET {key} failed: {e}") from e

        if value is None:
            return None

        try:
            return json.loads(value)
        except json.JSONDecodeError:
            # Return raw string if not JSON
            return value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int = 1800
    ) -> None:
        """
        Set value in cache with TTL.

        Args:
            key: Cache key
            value: Any JSON-serializable value
            ttl: Time-to-live in seconds (default 30 min)

        Raises:
            CacheUnavailableError: cache not connected or the write failed
        """
        client = self._require_client()

        if isinstance(value, (dict, list)):
            value = json.dumps(value)
        else:
            value = str(value)

        try:
            await client.setex(key, ttl, value)
        except CACHE_ERRORS as e:
            raise CacheUnavailableError(f"SET {key} failed: {e}") from e

    async def delete(self, key: str) -> bool:
        """Delete a specific cache key."""
        if not self.is_connected:
            return False

        try:
            await self._client.delete(key)
            return True
        except CACHE_ERRORS as e:
            logger.warning(f"Cache DELETE error for {key}: {e}")
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching pattern.

        Example: delete_pattern("product_services:*") drops the whole namespace

        Uses SCAN rather than KEYS, and deletes key by key so it also works
        when keys hash to different cluster slots.
        """
        if not self.is_connected:
            return 0

        deleted = 0
        try:
            async for key in self._client.scan_iter(match=pattern, count=500):
                deleted += await self._client.delete(key)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache DELETE PATTERN error for {pattern}: {e}")

        if deleted:
            logger.info(f"Deleted {deleted} keys matching '{pattern}'")
        return deleted

    # ─────────────────────────────────────────────────────────────────
    # Cache Stats (for monitoring)
    # ─────────────────────────────────────────────────────────────────

    async def get_stats(self) -> dict:
        """Get cache statistics for monitoring."""
        if not self.is_connected:
            return {"status": "disconnected"}

        try:
            info = await self._client.info("stats")
            memory = await self._client.info("memory")

            hits = info.get("keyspace_hits", 0)
            misses = info.get("keyspace_misses", 0)
            return {
                "status": "connected",
                "hits": hits,
                "misses": misses,
                "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
                "memory_used_mb": round(memory.get("used_memory", 0) / 1024 / 1024, 2),
                "memory_peak_mb": round(memory.get("used_memory_peak", 0) / 1024 / 1024, 2),
            }
        except CACHE_ERRORS as e:
            return {"status": "error", "error": str(e)}


# ─────────────────────────────────────────────────────────────────────
# Singleton instance and FastAPI dependency
# ─────────────────────────────────────────────────────────────────────

_redis_cache: Optional[RedisCache] = None


async def get_redis() -> RedisCache:
    """
    FastAPI dependency for Redis cache.

    Usage in endpoints:
        @router.get("/cache/stats")
        async def cache_stats(cache: RedisCache = Depends(get_redis)):
            return await cache.get_stats()
    """
    global _redis_cache

    if _redis_cache is None:
        _redis_cache = RedisCache()
        await _redis_cache.connect()
    else:
        await _redis_cache.ensure_connected()

    return _redis_cache


async def close_redis() -> None:
    """Close Redis connection on app shutdown."""
    global _redis_cache

    if _redis_cache is not None:
        await _redis_cache.disconnect()
        _redis_cache = None
