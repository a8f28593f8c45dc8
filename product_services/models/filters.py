"""
Filter criteria shared by the SQL builder, the in-process matcher and the
cache key generator.

Field declaration order is significant: cache keys render fields in exactly
this order (see product_services.cache.keys).
"""
from typing import ClassVar, Optional

from pydantic import BaseModel, Field, field_validator


class FilterCriteria(BaseModel):
    """Global filter sent by the dashboard with every product services request"""

    # Coded list filters (set membership)
    client: Optional[list[int]] = Field(None, description="Ultimate parent ids")
    segment: Optional[list[str]] = None
    region: Optional[list[str]] = None
    country: Optional[list[str]] = None

    # Name-like filters (case-insensitive substring)
    client_name: Optional[str] = None
    customer_name: Optional[str] = None
    parent_name: Optional[str] = None

    # Coded identifiers (case-insensitive exact match)
    parent_id: Optional[str] = None
    client_id: Optional[str] = None
    customer_id: Optional[str] = None

    LIST_FIELDS: ClassVar[tuple[str, ...]] = ("client", "segment", "region", "country")
    NAME_FIELDS: ClassVar[tuple[str, ...]] = ("client_name", "customer_name", "parent_name")
    ID_FIELDS: ClassVar[tuple[str, ...]] = ("parent_id", "client_id", "customer_id")

    @field_validator("client", "segment", "region", "country", mode="before")
    @classmethod
    def _coerce_list(cls, value):
        """Accept a bare scalar for list filters and drop blank entries"""
        if value is None:
            return None
        if isinstance(value, (str, int)):
            value = [value]
        cleaned = [
            v.strip() if isinstance(v, str) else v
            for v in value
            if v is not None and not (isinstance(v, str) and not v.strip())
        ]
        return cleaned or None

    @field_validator(
        "client_name", "customer_name", "parent_name",
        "parent_id", "client_id", "customer_id",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    def populated_fields(self) -> list[str]:
        """Names of fields carrying a constraint, in declaration order"""
        return [
            name for name in type(self).model_fields
            if getattr(self, name) is not None
        ]

    def is_empty(self) -> bool:
        return not self.populated_fields()
