"""S3-backed caching layer.

This package provides an S3 object cache with:
- S3 client management (S3Connection)
- Cache key encoding (CacheKeyCodec)
- TTL metadata and lazy expiry (CacheTTL)
- Value serialization (JsonSerializer, UNDEFINED)
- Cache operations (S3Store)
"""

from s3cache.cache.connection import S3Connection, StoredObject
from s3cache.cache.keys import CacheKeyCodec
from s3cache.cache.serializer import UNDEFINED, JsonSerializer, Serializer
from s3cache.cache.store import S3Store
from s3cache.cache.ttl import CacheTTL

__all__ = [
    # Connection
    "S3Connection",
    "StoredObject",
    # Key encoding
    "CacheKeyCodec",
    # Serialization
    "JsonSerializer",
    "Serializer",
    "UNDEFINED",
    # Cache operations
    "S3Store",
    # TTL
    "CacheTTL",
]
