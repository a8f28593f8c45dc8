from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from product_services.api.schemas.responses import (
    INTERNAL_SERVER_ERROR_MESSAGE,
    HierarchyResponse,
    RecordsResponse,
    ResponseData,
)
from product_services.cache.redis_client import RedisCache, get_redis
from product_services.models.filters import FilterCriteria
from product_services.services.product_data_service import (
    DataSourceError,
    ProductDataService,
)
from product_services.services.product_services_service import ProductServicesService
from product_services.services.query_builder import FilterCondition, FilterType
from product_services.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/product-services", tags=["product-services"])

# Raw search body key -> (view column, filter type, element type)
SEARCH_FIELDS = {
    "clientIds": ("mdm_gems_ult_parent_id", FilterType.IN, int),
    "segments": ("mdm_client_segment", FilterType.IN, str),
    "regions": ("region_cd", FilterType.IN, str),
    "countries": ("country_cd", FilterType.IN, str),
    "nameSearch": ("client_name", FilterType.LIKE, str),
    "parentNameSearch": ("parent_name", FilterType.LIKE, str),
}


# ═══════════════════════════════════════════════════════════════════════════════
# DEPENDENCIES
# ═══════════════════════════════════════════════════════════════════════════════

def get_product_data_service() -> ProductDataService:
    return ProductDataService()


async def get_product_services_service(
    cache: RedisCache = Depends(get_redis),
    data_service: ProductDataService = Depends(get_product_data_service),
) -> ProductServicesService:
    return ProductServicesService(cache, data_service=data_service)


def internal_error() -> JSONResponse:
    body = ResponseData.failure(
        INTERNAL_SERVER_ERROR_MESSAGE, status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(),
    )


def _is_instance(value: Any, element_type: type) -> bool:
    # bool is an int subclass but never a valid id
    if isinstance(value, bool):
        return False
    return isinstance(value, element_type)


def parse_search_body(body: Dict[str, Any]) -> list[FilterCondition]:
    """
    Translate a raw key/value search body into filter conditions.

    Unknown keys are ignored. List filters accept a list or a single value;
    name searches must be strings.

    Raises:
        HTTPException 400: value of the wrong type
    """
    conditions = []
    for key, (column, kind, element_type) in SEARCH_FIELDS.items():
        value = body.get(key)
        if value is None:
            continue

        if kind is FilterType.IN:
            if not isinstance(value, list):
                value = [value]
            if not all(_is_instance(v, element_type) for v in value):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"'{key}' must be a list of {element_type.__name__}"
                )
            if not value:
                continue
        elif not isinstance(value, str):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"'{key}' must be a string"
            )
        elif not value.strip():
            continue

        conditions.append(FilterCondition(column=column, type=kind, value=value))

    return conditions


# ═══════════════════════════════════════════════════════════════════════════════
# ENDPOINTS
# ═══════════════════════════════════════════════════════════════════════════════

@router.post("/records", response_model=RecordsResponse)
async def get_product_services_records(
    criteria: FilterCriteria,
    service: ProductServicesService = Depends(get_product_services_service),
):
    """
    Flat product services rows matching the global filter.

    Served cache-aside: repeated filters come from Redis, misses and cache
    outages go to the reporting database.
    """
    try:
        records = await service.get_records(criteria)
    except DataSourceError as e:
        logger.error(f"DataSourceError: {e}")
        return internal_error()
    except Exception as e:
        logger.error(f"Exception: {e}")
        return internal_error()

    return RecordsResponse.ok(records)


@router.post("/hierarchy", response_model=HierarchyResponse)
async def get_product_services_hierarchy(
    criteria: FilterCriteria,
    service: ProductServicesService = Depends(get_product_services_service),
):
    """
    Product services as a parent -> client -> customer tree.

    Parents with a malformed id are left out (logged); everything else is
    returned.
    """
    logger.info("get_product_services_hierarchy()")
    try:
        hierarchy = await service.get_hierarchy(criteria)
    except DataSourceError as e:
        logger.error(f"DataSourceError: {e}")
        return internal_error()
    except Exception as e:
        logger.error(f"Exception: {e}")
        return internal_error()

    return HierarchyResponse.ok(hierarchy)


@router.post("/search", response_model=RecordsResponse)
async def search_product_services(
    body: Dict[str, Any] = Body(..., examples=[{"clientIds": [1, 3], "nameSearch": "Company"}]),
    data_service: ProductDataService = Depends(get_product_data_service),
):
    """
    Ad-hoc search with a raw key/value body (not cached).

    Keys: clientIds, segments, regions, countries, nameSearch, parentNameSearch
    """
    conditions = parse_search_body(body)

    try:
        records = await data_service.search(conditions)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DataSourceError as e:
        logger.error(f"DataSourceError: {e}")
        return internal_error()
    except Exception as e:
        logger.error(f"Exception: {e}")
        return internal_error()

    return RecordsResponse.ok(records)
