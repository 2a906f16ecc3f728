"""
s3cache - key-value cache backed by Amazon S3.

Entries are stored as JSON objects with per-entry TTLs kept in object
metadata and checked lazily on read.
"""

from s3cache.cache import UNDEFINED, CacheKeyCodec, CacheTTL, JsonSerializer, S3Connection, S3Store
from s3cache.config import S3StoreOptions
from s3cache.exceptions import (
    ConfigurationError,
    S3OperationError,
    S3StoreError,
    SerializationError,
    TTLError,
)
from s3cache.models.responses import HealthStatus, ScanEntry, ScanResult

__version__ = "1.0.0"

__all__ = [
    "S3Store",
    "S3StoreOptions",
    "S3Connection",
    "CacheKeyCodec",
    "CacheTTL",
    "JsonSerializer",
    "UNDEFINED",
    "HealthStatus",
    "ScanEntry",
    "ScanResult",
    "S3StoreError",
    "ConfigurationError",
    "TTLError",
    "SerializationError",
    "S3OperationError",
]
