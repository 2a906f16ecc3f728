"""
Pydantic result models for cache operations.

Defines the structures returned by scan() and health_check().
"""
from typing import Generic, List, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

# Generic type for cached payloads
T = TypeVar("T")


class ScanEntry(BaseModel, Generic[T]):
    """One live cache entry found by scan()."""

    key: str = Field(..., description="Logical cache key")
    data: T = Field(..., description="Cached value")


class ScanResult(BaseModel, Generic[T]):
    """
    Result of a scan() call.

    The cursor is 0 when the listing was complete. A string cursor is a
    continuation token: pass it back to scan() to continue. The cursor 1
    means S3 reported more keys without a token; that listing cannot be
    resumed and scan() rejects it.

    Example:
        >>> result = ScanResult(cursor=0, entries=[ScanEntry(key="a", data=1)])
        >>> result.has_more
        False
    """

    cursor: Union[int, str] = Field(0, description="Continuation cursor (0 = done)")
    entries: List[ScanEntry[T]] = Field(default_factory=list)

    @property
    def has_more(self) -> bool:
        return self.cursor != 0


class HealthStatus(BaseModel):
    """
    Result of a health_check() call.

    Failures are reported through status and error, never raised.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "bucket": "my-cache-bucket",
                "region": "us-east-1",
                "sdk_version": "boto3/1.34.0",
            }
        }
    )

    status: Literal["healthy", "unhealthy"]
    bucket: str
    region: str
    sdk_version: str
    error: Optional[str] = None

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"
