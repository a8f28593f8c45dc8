import asyncio
from typing import Optional

from pydantic import TypeAdapter

from product_services.cache.keys import CacheKeys
from product_services.cache.redis_client import CacheUnavailableError, RedisCache
from product_services.config.settings import settings
from product_services.models.filters import FilterCriteria
from product_services.models.records import FlatRecord, ParentNode
from product_services.services.cache_aside import CacheAside
from product_services.services.cache_preloader import PreloadJob, PreloadRegistry
from product_services.services.hierarchy import HierarchyBuilder
from product_services.services.product_data_service import ProductDataService
from product_services.services.record_filter import filter_records
from product_services.utils.logger import logger

RECORDS_ADAPTER = TypeAdapter(list[FlatRecord])


class ProductServicesService:
    """
    Service layer for the product services report.

    Two caching strategies (settings.cache_strategy):
    - "filtered":     one cache entry per distinct filter (key from criteria)
    - "full_dataset": one cache entry with every row, filtered in-process

    Either way a cache outage degrades to direct database reads.
    """

    SCENARIO_DELAY_SECONDS = 0.05

    def __init__(
        self,
        cache: RedisCache,
        data_service: Optional[ProductDataService] = None,
        hierarchy_builder: Optional[HierarchyBuilder] = None,
        strategy: Optional[str] = None,
        ttl: Optional[int] = None,
        complete_ttl: Optional[int] = None,
    ):
        self.data_service = data_service or ProductDataService()
        self.hierarchy_builder = hierarchy_builder or HierarchyBuilder()
        self.strategy = strategy or settings.cache_strategy

        self.filtered_cache = CacheAside(
            cache,
            key_fn=CacheKeys.product_services,
            loader=self.data_service.fetch_records,
            ttl=ttl or settings.cache_ttl_seconds,
            adapter=RECORDS_ADAPTER,
            name="product_services",
        )
        self.complete_cache = CacheAside(
            cache,
            key_fn=lambda _: CacheKeys.complete_dataset(),
            loader=self._load_complete_dataset,
            ttl=complete_ttl or settings.cache_complete_ttl_seconds,
            adapter=RECORDS_ADAPTER,
            name="product_services_complete",
            degrade=False,
        )

    async def get_records(self, criteria: FilterCriteria | None) -> list[FlatRecord]:
        """
        Flat rows for the filter, served through the configured cache strategy.

        Raises:
            DataSourceError: the database query failed
        """
        criteria = criteria or FilterCriteria()
        if self.strategy == "full_dataset":
            return await self.get_records_from_complete_dataset(criteria)
        return await self.filtered_cache.fetch(criteria)

    async def get_records_from_complete_dataset(self, criteria: FilterCriteria) -> list[FlatRecord]:
        try:
            complete = await self.complete_cache.fetch(None)
        except CacheUnavailableError as e:
            logger.warning(f"Redis cache failed, falling back to direct database call: {e}")
            return await self.data_service.fetch_records(criteria)

        if not complete:
            logger.warning("No complete data available in cache, falling back to filtered database query")
            return await self.data_service.fetch_records(criteria)

        filtered = filter_records(complete, criteria)
        logger.info(f"Filtered {len(filtered)} records from {len(complete)} total records in-memory")
        return filtered

    async def get_hierarchy(self, criteria: FilterCriteria | None) -> list[ParentNode]:
        records = await self.get_records(criteria)
        return self.hierarchy_builder.build(records)

    async def _load_complete_dataset(self, _criteria=None) -> list[FlatRecord]:
        logger.info("Fetching complete dataset from database")
        return await self.data_service.fetch_records(FilterCriteria())

    # ─────────────────────────────────────────────────────────────────
    # Cache preloading
    # ─────────────────────────────────────────────────────────────────

    def common_filter_scenarios(self) -> list[FilterCriteria]:
        """Filters warmed at startup; the dashboard opens unfiltered"""
        return [FilterCriteria()]

    async def preload_common_filters(self) -> None:
        logger.info("Starting product services cache preload (common filters)...")
        for criteria in self.common_filter_scenarios():
            try:
                await self.filtered_cache.fetch(criteria)
            except Exception as e:
                logger.warning(f"Failed to preload product services cache for scenario {criteria}: {e}")
            await asyncio.sleep(self.SCENARIO_DELAY_SECONDS)
        logger.info("Completed product services cache preload (common filters)")

    async def preload_complete_dataset(self) -> None:
        logger.info("Starting product services cache preload (complete dataset)...")
        records = await self.complete_cache.fetch(None)
        logger.info(f"Preloaded complete dataset with {len(records)} records")

    def register_preload_jobs(self, registry: PreloadRegistry) -> PreloadRegistry:
        registry.register(PreloadJob(
            name="product_services_complete",
            routine=self.preload_complete_dataset,
            priority=1,
            enabled=self.strategy == "full_dataset",
            description="Product services complete dataset",
            estimated_duration_ms=5000,
        ))
        registry.register(PreloadJob(
            name="product_services_common_filters",
            routine=self.preload_common_filters,
            priority=2,
            enabled=self.strategy == "filtered",
            description="Product services common filter scenarios",
            estimated_duration_ms=2000,
        ))
        return registry
