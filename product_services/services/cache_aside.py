"""
Generic cache-aside (read-through) wrapper.

    fetch(criteria):
        key = key_fn(criteria)
        cache hit      -> return cached value
        cache miss     -> value = loader(criteria); cache it with TTL; return
        cache down     -> return loader(criteria), nothing is cached

Every cached read in the service goes through this one component; the
loader is always the authoritative data source call.
"""
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from product_services.cache.redis_client import CacheUnavailableError, RedisCache
from product_services.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
C = TypeVar("C")


class CacheAside(Generic[C, T]):
    """
    Args:
        cache: RedisCache (or anything with async get/set/delete)
        key_fn: criteria -> cache key
        loader: async criteria -> value, the authoritative source
        ttl: seconds a cached entry lives
        adapter: pydantic TypeAdapter for the value; values are stored in
            JSON mode and re-validated on read
        name: label used in log lines
        degrade: when the cache is down, call the loader directly (True) or
            re-raise CacheUnavailableError to let the caller choose (False)
    """

    def __init__(
        self,
        cache: RedisCache,
        key_fn: Callable[[C], str],
        loader: Callable[[C], Awaitable[T]],
        ttl: int,
        adapter: TypeAdapter,
        name: str = "cache",
        degrade: bool = True,
    ):
        self.cache = cache
        self.key_fn = key_fn
        self.loader = loader
        self.ttl = ttl
        self.adapter = adapter
        self.name = name
        self.degrade = degrade

    async def fetch(self, criteria: C) -> T:
        key = self.key_fn(criteria)

        try:
            cached = await self.cache.get(key)
        except CacheUnavailableError as e:
            if not self.degrade:
                raise
            logger.warning(f"[{self.name}] cache unavailable, falling back to data source: {e}")
            return await self.loader(criteria)

        if cached is not None:
            value = self._decode(key, cached)
            if value is not None:
                logger.info(f"[{self.name}] Cache HIT for key: {key}")
                return value

        logger.info(f"[{self.name}] Cache MISS for key: {key}")
        value = await self.loader(criteria)
        await self._store(key, value)
        return value

    async def invalidate(self, criteria: C) -> bool:
        return await self.cache.delete(self.key_fn(criteria))

    def _decode(self, key: str, cached: Any) -> Optional[T]:
        try:
            return self.adapter.validate_python(cached)
        except ValidationError as e:
            logger.warning(f"[{self.name}] discarding unreadable cache entry {key}: {e.error_count()} errors")
            return None

    async def _store(self, key: str, value: T) -> None:
        # A failed write must never fail the read
        try:
            await self.cache.set(key, self.adapter.dump_python(value, mode="json"), ttl=self.ttl)
        except CacheUnavailableError as e:
            logger.warning(f"[{self.name}] cache write skipped for {key}: {e}")
