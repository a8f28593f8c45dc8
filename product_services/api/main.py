import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Depends, status, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select, func, text
from sqlalchemy.ext.asyncio import AsyncSession

from product_services.api.routes import cache, product_services
from product_services.cache.redis_client import RedisCache, get_redis, close_redis
from product_services.config.settings import settings
from product_services.database.config import get_db, dispose_engine
from product_services.models.product_services import ProductServiceRow
from product_services.services.cache_preloader import CachePreloader, PreloadRegistry
from product_services.services.product_services_service import ProductServicesService
from product_services.utils.logger import logger


def build_preloader(service: ProductServicesService) -> CachePreloader:
    registry = service.register_preload_jobs(PreloadRegistry())
    return CachePreloader(
        registry,
        enabled=settings.cache_preload_enabled,
        timeout_multiplier=settings.cache_preload_timeout_multiplier,
        min_timeout_ms=settings.cache_preload_min_timeout_ms,
        inter_job_delay_ms=settings.cache_preload_inter_job_delay_ms,
        exclude_jobs=settings.cache_preload_exclude_jobs,
        include_only_jobs=settings.cache_preload_include_only_jobs,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
        - Connect the Redis cache (a failed connection leaves the API serving
          straight from the database)
        - Kick off the cache preloader in the background; requests are served
          while it warms

    Shutdown:
        - Cancel an unfinished preload
        - Close Redis and the database pool
    """

    # ── STARTUP ────────────────────────────────────────────────────────────

    redis_cache = await get_redis()
    if redis_cache.is_connected:
        logger.info("Redis cache connection initialized")
    else:
        logger.warning("Redis cache unavailable, serving from database only")

    preloader = build_preloader(ProductServicesService(redis_cache))
    app.state.preloader = preloader
    app.state.preload_task = asyncio.create_task(preloader.run())

    yield  # ← App runs here, handling requests

    # ── SHUTDOWN ───────────────────────────────────────────────────────────

    task = app.state.preload_task
    if not task.done():
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.info("Cache preload cancelled on shutdown")

    await close_redis()
    logger.info("Redis cache connection closed")

    await dispose_engine()


app = FastAPI(
    title="Product Services API",
    version="1.0.0",
    description="Product services report with Redis cache-aside and startup cache preloading",
    lifespan=lifespan
)

# CORS - allow the dashboard to call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(product_services.router, prefix=settings.api_v1_prefix)
app.include_router(cache.router, prefix=settings.api_v1_prefix)


@app.get("/")
async def root():
    return {"message": "Product Services API", "status": "running"}


@app.get("/health")
async def health_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
    redis_cache: RedisCache = Depends(get_redis),
    include_stats: bool = Query(False, description="Include the product services row count")
):
    """Health check with database connectivity, cache status and preload state"""
    try:
        await db.execute(text("SELECT 1"))

        cache_status = "connected" if await redis_cache.ping() else "disconnected"

        preloader = getattr(request.app.state, "preloader", None)
        payload = {
            "status": "healthy",
            "database": "connected",
            "cache": cache_status,
            "cache_strategy": settings.cache_strategy,
            "preload": preloader.state.value if preloader else "not_started",
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

        if include_stats:
            result = await db.execute(select(func.count()).select_from(ProductServiceRow))
            payload["total_rows"] = result.scalar() or 0

        return payload
    except Exception as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "database": "disconnected",
                "error": str(e),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        )
