"""TTL (Time To Live) handling for cache entries.

S3 has no per-object expiry that fits a cache, so the expiry time is
written into the object's user metadata and checked lazily on read.
This module validates TTLs, builds the metadata written with each entry
and decides whether a stored entry has expired.
"""

import math
import time
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import structlog

logger = structlog.get_logger(__name__)

# S3 user metadata keys (sent as x-amz-meta-*)
META_CREATED = "cache-created"
META_VERSION = "cache-version"
META_EXPIRES = "cache-ttl"

SCHEMA_VERSION = "1.0"


class CacheTTL(Enum):
    """
    Well-known TTL values, in seconds.

    INFINITE is a sentinel: entries written with it carry no expiry.
    """

    INFINITE = -1
    DEFAULT = 60


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def is_valid_ttl(value: Any) -> bool:
    """
    Check that a TTL is -1 or a finite positive number of seconds.

    Booleans are rejected even though they are ints.

    Example:
        >>> is_valid_ttl(300), is_valid_ttl(-1), is_valid_ttl(0)
        (True, True, False)
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if value == CacheTTL.INFINITE.value:
        return True
    return math.isfinite(value) and value > 0


def expires_at(ttl: float, created: int) -> Optional[int]:
    """
    Compute the absolute expiry for an entry.

    Args:
        ttl: TTL in seconds, or -1 for no expiry
        created: Write time as epoch milliseconds

    Returns:
        Expiry as epoch milliseconds, or None for infinite TTL. Fractional
        milliseconds round up so the expiry is always after created.
    """
    if ttl == CacheTTL.INFINITE.value:
        return None
    return created + math.ceil(ttl * 1000)


def build_metadata(ttl: float) -> Dict[str, str]:
    """
    Build the S3 user metadata for a new entry.

    Args:
        ttl: TTL in seconds, or -1 for no expiry

    Returns:
        Metadata dictionary with string values, e.g.
            {"cache-created": "1700000000000", "cache-version": "1.0",
             "cache-ttl": "1700000060000"}
    """
    created = now_ms()
    metadata = {
        META_CREATED: str(created),
        META_VERSION: SCHEMA_VERSION,
    }

    expiry = expires_at(ttl, created)
    if expiry is not None:
        metadata[META_EXPIRES] = str(expiry)

    return metadata


def is_expired(metadata: Optional[Mapping[str, str]]) -> bool:
    """
    Decide whether a stored entry has expired.

    Entries without an expiry, or with one that cannot be parsed, never
    expire. An entry is expired once the current time is past its expiry.

    Args:
        metadata: S3 user metadata of the stored object

    Returns:
        True if the entry must be treated as a miss
    """
    if not metadata:
        return False

    raw = metadata.get(META_EXPIRES)
    if not raw:
        return False

    try:
        expiry = int(raw)
    except ValueError:
        logger.warning("cache_ttl_unparseable", value=raw)
        return False

    return now_ms() > expiry
