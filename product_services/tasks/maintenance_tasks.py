"""
Maintenance tasks for the product services cache.

These run on the beat schedule, outside the API process, so each task opens
its own Redis connection instead of sharing the app singleton.
"""
import asyncio
from datetime import datetime, timezone
from celery import shared_task
from product_services.cache.keys import CacheKeys
from product_services.cache.redis_client import RedisCache
from product_services.services.product_services_service import ProductServicesService
from product_services.utils.logger import logger


async def _refresh(cache: RedisCache) -> dict:
    result = {
        "refreshed_at": datetime.now(timezone.utc).isoformat(),
        "evicted": 0,
        "cache_status": "failed",
    }

    if not cache.is_connected:
        result["cache_status"] = "cache_unavailable"
        return result

    service = ProductServicesService(cache)
    result["evicted"] = await cache.delete_pattern(CacheKeys.namespace_pattern())

    if service.strategy == "full_dataset":
        await service.preload_complete_dataset()
    else:
        await service.preload_common_filters()

    result["cache_status"] = "success"
    logger.info(f"Refreshed product services cache ({result['evicted']} stale entries evicted)")
    return result


@shared_task(
    name="product_services.tasks.maintenance_tasks.refresh_product_services_cache",
    bind=True,
)
def refresh_product_services_cache(self):
    """
    Evict and re-warm the product services cache.

    Run: Every 30 minutes

    Returns:
        Dict with refresh status
    """
    async def _run():
        cache = RedisCache()
        await cache.connect()
        try:
            return await _refresh(cache)
        finally:
            await cache.disconnect()

    return asyncio.run(_run())


@shared_task(
    name="product_services.tasks.maintenance_tasks.log_cache_stats",
    bind=True,
)
def log_cache_stats(self):
    """
    Log Redis hit rate and memory usage.

    Run: Every 5 minutes
    """
    async def _run():
        cache = RedisCache()
        await cache.connect()
        try:
            stats = await cache.get_stats()
        finally:
            await cache.disconnect()

        if stats.get("status") == "connected":
            logger.info(
                f"Cache stats - hit rate: {stats['hit_rate']}%, "
                f"hits: {stats['hits']}, misses: {stats['misses']}, "
                f"memory: {stats['memory_used_mb']}MB"
            )
        else:
            logger.warning(f"Cache stats unavailable: {stats}")
        return stats

    return asyncio.run(_run())
