from pydantic import BaseModel, Field
from typing import Any, Generic, Optional, TypeVar

from product_services.models.records import FlatRecord, ParentNode

T = TypeVar("T")

SUCCESS_MESSAGE = "Success"
INTERNAL_SERVER_ERROR_MESSAGE = "Internal server error"


class ResponseData(BaseModel, Generic[T]):
    """Envelope returned by every product services endpoint"""
    success: bool
    message: str
    status_code: int = Field(..., ge=100, le=599)
    data: Optional[T] = None

    @classmethod
    def ok(cls, data: Any, message: str = SUCCESS_MESSAGE) -> "ResponseData":
        return cls(success=True, message=message, status_code=200, data=data)

    @classmethod
    def failure(cls, message: str, status_code: int) -> "ResponseData":
        return cls(success=False, message=message, status_code=status_code, data=None)


class RecordsResponse(ResponseData[list[FlatRecord]]):
    pass


class HierarchyResponse(ResponseData[list[ParentNode]]):
    pass


class CacheStatsResponse(BaseModel):
    status: str
    hits: int = Field(0, ge=0)
    misses: int = Field(0, ge=0)
    hit_rate: float = Field(0.0, ge=0.0, le=100.0)
    memory_used_mb: float = 0.0
    memory_peak_mb: float = 0.0
    error: Optional[str] = None


class EvictionResponse(BaseModel):
    pattern: str
    deleted: int = Field(..., ge=0)
