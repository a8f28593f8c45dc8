from fastapi import APIRouter, Depends, status

from product_services.api.schemas.responses import CacheStatsResponse, EvictionResponse
from product_services.cache.keys import CacheKeys
from product_services.cache.redis_client import RedisCache, get_redis
from product_services.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/cache", tags=["cache"])


@router.get("/stats", response_model=CacheStatsResponse, status_code=status.HTTP_200_OK)
async def cache_stats(cache: RedisCache = Depends(get_redis)):
    """Redis hit rate and memory usage; status "disconnected" when Redis is down."""
    return await cache.get_stats()


@router.delete("/product-services", response_model=EvictionResponse, status_code=status.HTTP_200_OK)
async def evict_product_services(cache: RedisCache = Depends(get_redis)):
    """Drop every cached product services entry (filtered and complete)."""
    pattern = CacheKeys.namespace_pattern()
    deleted = await cache.delete_pattern(pattern)
    logger.info(f"Evicted {deleted} product services cache entries")
    return {"pattern": pattern, "deleted": deleted}
