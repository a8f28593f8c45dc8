"""
Product services report shapes.

FlatRecord is one denormalized row of the reporting view. The hierarchy
nodes are what the dashboard renders as an expandable
parent -> client -> customer table.
"""
from typing import Literal, Optional

from pydantic import BaseModel, Field


# Product lines reported at every level of the hierarchy
PRODUCT_LINES = (
    "a_platform",
    "alpha_services",
    "back_office",
    "custody",
    "digital",
    "global_markets",
    "middle_office",
    "ssga",
    "treasury",
)


class ProductCounts(BaseModel):
    """Number of products held per product line"""
    a_platform: Optional[int] = None
    alpha_services: Optional[int] = None
    back_office: Optional[int] = None
    custody: Optional[int] = None
    digital: Optional[int] = None
    global_markets: Optional[int] = None
    middle_office: Optional[int] = None
    ssga: Optional[int] = None
    treasury: Optional[int] = None


class FlatRecord(BaseModel):
    parent_id: str
    parent_name: Optional[str] = None
    client_id: str
    client_name: Optional[str] = None
    customer_id: str
    customer_name: Optional[str] = None
    segment: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    parent_counts: ProductCounts = Field(default_factory=ProductCounts)
    client_counts: ProductCounts = Field(default_factory=ProductCounts)
    customer_counts: ProductCounts = Field(default_factory=ProductCounts)

    class Config:
        from_attributes = True


class CustomerNode(BaseModel):
    id: str
    parent_id: str  # owning client id
    name: Optional[str] = None
    type: Literal["Customer"] = "Customer"
    segment: Optional[str] = None
    region: Optional[str] = None
    counts: ProductCounts
    detail_data: list[dict] = Field(default_factory=list)


class ClientNode(BaseModel):
    id: str
    parent_id: int  # owning parent id
    name: Optional[str] = None
    type: Literal["Client"] = "Client"
    segment: Optional[str] = None
    region: Optional[str] = None
    counts: ProductCounts
    sub_rows: list[CustomerNode] = Field(default_factory=list)


class ParentNode(BaseModel):
    id: int
    name: Optional[str] = None
    type: Literal["Parent"] = "Parent"
    segment: Optional[str] = None
    region: Optional[str] = None
    counts: ProductCounts
    sub_rows: list[ClientNode] = Field(default_factory=list)
