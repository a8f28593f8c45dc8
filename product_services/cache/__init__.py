"""
Redis cache module for the product services report.

Pattern: Cache-Aside (read-through) with TTL
- Key derived from the request's filter criteria
- Cache miss loads from the reporting database and populates the cache
- Cache outage degrades to direct database reads (nothing is cached)
- TTL auto-expires stale data (30 min filtered, 12 h complete dataset)
"""
from product_services.cache.keys import CacheKeys, filter_cache_key
from product_services.cache.redis_client import (
    CacheUnavailableError,
    RedisCache,
    close_redis,
    get_redis,
)

__all__ = [
    "CacheKeys",
    "CacheUnavailableError",
    "RedisCache",
    "close_redis",
    "filter_cache_key",
    "get_redis",
]
