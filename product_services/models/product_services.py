from sqlalchemy import Column, Integer, BigInteger, String

from product_services.config.settings import settings
from product_services.database.config import Base
from product_services.models.records import PRODUCT_LINES, FlatRecord, ProductCounts

LEVELS = ("parent", "client", "customer")


class ProductServiceRow(Base):
    """
    Read-only mapping of the product services reporting view.

    One row per (ultimate parent, client, customer) with product counts
    rolled up at each of the three levels.
    """
    __tablename__ = settings.product_services_table
    __table_args__ = {"schema": settings.db_schema} if settings.db_schema else {}

    mdm_gems_ult_parent_id = Column(BigInteger, primary_key=True)
    mdm_client_gems_id = Column(String(50), primary_key=True)
    mdm_cust_gems_id = Column(String(50), primary_key=True)
    parent_name = Column(String(255))
    client_name = Column(String(255))
    customer_name = Column(String(255))
    mdm_client_segment = Column(String(50))
    region_cd = Column(String(20))
    country_cd = Column(String(20))


# a_platform_parent_count, a_platform_client_count, ... one column per line/level
for _line in PRODUCT_LINES:
    for _level in LEVELS:
        setattr(ProductServiceRow, f"{_line}_{_level}_count", Column(Integer))


def count_columns() -> list[str]:
    return [f"{line}_{level}_count" for level in LEVELS for line in PRODUCT_LINES]


def row_to_record(row) -> FlatRecord:
    """Map a result row (RowMapping or ORM instance) to a FlatRecord"""
    get = row.get if hasattr(row, "get") else lambda key: getattr(row, key, None)

    def counts(level: str) -> ProductCounts:
        return ProductCounts(**{
            line: get(f"{line}_{level}_count") for line in PRODUCT_LINES
        })

    parent_id = get("mdm_gems_ult_parent_id")
    return FlatRecord(
        parent_id="" if parent_id is None else str(parent_id),
        parent_name=get("parent_name"),
        client_id=str(get("mdm_client_gems_id") or ""),
        client_name=get("client_name"),
        customer_id=str(get("mdm_cust_gems_id") or ""),
        customer_name=get("customer_name"),
        segment=get("mdm_client_segment"),
        region=get("region_cd"),
        country=get("country_cd"),
        parent_counts=counts("parent"),
        client_counts=counts("client"),
        customer_counts=counts("customer"),
    )
