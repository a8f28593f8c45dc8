import time
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from product_services.config.settings import settings
from product_services.database.config import AsyncSessionLocal
from product_services.models.filters import FilterCriteria
from product_services.models.product_services import (
    ProductServiceRow,
    count_columns,
    row_to_record,
)
from product_services.models.records import FlatRecord
from product_services.services.query_builder import (
    FilterClause,
    FilterCondition,
    apply_filters,
    build_filter_clause,
    build_where_clause,
    to_statement,
    validate_identifier,
)
from product_services.utils.logger import logger

DIMENSION_COLUMNS = [
    "mdm_gems_ult_parent_id",
    "parent_name",
    "mdm_client_gems_id",
    "client_name",
    "mdm_cust_gems_id",
    "customer_name",
    "mdm_client_segment",
    "region_cd",
    "country_cd",
]
ORDER_BY = " ORDER BY mdm_gems_ult_parent_id, mdm_client_gems_id, mdm_cust_gems_id"


class DataSourceError(Exception):
    """The reporting database could not answer a query."""


def qualified_table_name() -> str:
    table = validate_identifier(settings.product_services_table)
    if settings.db_schema:
        return f"{validate_identifier(settings.db_schema)}.{table}"
    return table


def filterable_columns() -> list[str]:
    return list(ProductServiceRow.__table__.columns.keys())


class ProductDataService:
    """Reads the product services view with parameterized queries"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
        self.session_factory = session_factory

    def base_query(self) -> str:
        columns = ", ".join(DIMENSION_COLUMNS + count_columns())
        return f"SELECT {columns} FROM {qualified_table_name()}"

    async def fetch_records(self, criteria: FilterCriteria | None) -> list[FlatRecord]:
        """
        Fetch product services rows matching the filter.

        Args:
            criteria: Global filter; None or empty returns the whole view

        Raises:
            DataSourceError: query failed (connectivity, bad SQL, ...)
        """
        return await self._run(build_filter_clause(criteria), "fetch_records")

    async def search(self, conditions: Iterable[FilterCondition]) -> list[FlatRecord]:
        """
        Ad-hoc search over the view.

        Raises:
            ValueError: a condition names a column outside the view
            DataSourceError: query failed
        """
        clause = build_where_clause(conditions, filterable_columns())
        return await self._run(clause, "search")

    async def _run(self, clause: FilterClause, operation: str) -> list[FlatRecord]:
        sql = apply_filters(self.base_query(), clause) + ORDER_BY
        statement = to_statement(sql, clause)

        start = time.perf_counter()
        try:
            async with self.session_factory() as db:
                result = await db.execute(statement, clause.params)
                rows = result.mappings().all()
        except SQLAlchemyError as e:
            logger.error(f"{operation} query failed: {e}")
            raise DataSourceError(f"{operation} query failed") from e

        query_ms = (time.perf_counter() - start) * 1000
        mapping_start = time.perf_counter()
        records = [row_to_record(row) for row in rows]
        mapping_ms = (time.perf_counter() - mapping_start) * 1000

        logger.info(
            f"{operation}: {len(records)} rows "
            f"(query + network {query_ms:.0f}ms, row mapping {mapping_ms:.0f}ms)"
        )
        return records
