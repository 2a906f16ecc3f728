"""Cache operations on top of S3.

This module provides the S3Store class, an asynchronous key-value cache
whose entries live as S3 objects. Each public method is a coroutine that
either returns its result or raises one S3StoreError.
"""

import asyncio
import time
from typing import Any, Dict, Generic, List, Optional, Set, TypeVar, Union

import structlog
from botocore.exceptions import ClientError

from s3cache.cache import ttl as ttl_policy
from s3cache.cache.connection import MAX_DELETE_KEYS, MAX_LIST_KEYS, S3Connection
from s3cache.cache.keys import CacheKeyCodec
from s3cache.cache.serializer import UNDEFINED, JsonSerializer, Serializer
from s3cache.config import S3StoreOptions
from s3cache.exceptions import (
    ConfigurationError,
    S3OperationError,
    S3StoreError,
    SerializationError,
    TTLError,
)
from s3cache.models.responses import HealthStatus, ScanResult
from s3cache.utils.logger import log_cache_operation

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_SCAN_LIMIT = 100

_NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}


def _status_code(error: BaseException) -> Optional[int]:
    """HTTP status code of a botocore error, if it carries one."""
    if isinstance(error, ClientError):
        return error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return None


def _is_not_found(error: BaseException) -> bool:
    if not isinstance(error, ClientError):
        return False
    code = error.response.get("Error", {}).get("Code")
    return code in _NOT_FOUND_CODES or _status_code(error) == 404


class S3Store(Generic[T]):
    """
    Key-value cache stored in an S3 bucket.

    Entries are JSON objects under the configured prefix with their
    creation and expiry times in the object metadata. Expiry is checked
    lazily: an expired entry reads as a miss and is deleted in the
    background.

    Attributes:
        options: Validated store options
        connection: S3 connection shared by all operations
        codec: Cache key encoder
        serializer: Payload serializer

    Example:
        >>> async with S3Store(bucket="my-cache", prefix="app:") as store:
        ...     await store.set("users/42", {"name": "Ada"}, ttl=300)
        ...     user = await store.get("users/42")
    """

    def __init__(
        self,
        options: Optional[S3StoreOptions] = None,
        *,
        connection: Optional[S3Connection] = None,
        serializer: Optional[Serializer] = None,
        **kwargs: Any,
    ) -> None:
        """
        Create a store.

        Args:
            options: Prebuilt options; otherwise keyword arguments are
                validated into S3StoreOptions
            connection: S3 connection to use instead of building one
            serializer: Payload serializer (JSON by default)
            **kwargs: S3StoreOptions fields (bucket, region, prefix, ...)

        Raises:
            ConfigurationError: If the options are invalid
        """
        self.options = options if options is not None else S3StoreOptions.create(**kwargs)
        self.connection = connection if connection is not None else S3Connection(self.options)
        self.codec = CacheKeyCodec(
            prefix=self.options.prefix, platform=self.options.key_sanitizer_platform
        )
        self.serializer: Serializer = serializer if serializer is not None else JsonSerializer()
        self._pending: Set["asyncio.Task[None]"] = set()

    async def __aenter__(self) -> "S3Store[T]":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def get(self, key: str) -> Optional[T]:
        """
        Retrieve a cached value.

        Args:
            key: Cache key

        Returns:
            The cached value, or None on a miss (missing or expired entry)

        Raises:
            ConfigurationError: If key is invalid
            SerializationError: If the stored body cannot be parsed
            S3OperationError: If S3 fails for a reason other than "not found"
        """
        storage_key = self.codec.encode(key)

        try:
            stored = await self.connection.get_object(storage_key)
        except Exception as e:
            if _is_not_found(e):
                logger.debug("cache_miss", key=key)
                return None
            logger.error(
                "cache_get_error",
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise S3OperationError(
                "Failed to retrieve cache entry", _status_code(e), e
            ) from e

        if ttl_policy.is_expired(stored.metadata):
            logger.debug("cache_expired", key=key)
            self._schedule_expired_delete(key)
            return None

        try:
            text = stored.body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SerializationError("Failed to parse cached value", original_error=e) from e

        value = self._loads(text)
        logger.debug("cache_hit", key=key)
        return value

    async def set(self, key: str, value: T, ttl: Optional[float] = None) -> T:
        """
        Store a value.

        Args:
            key: Cache key
            value: Value to cache; None is allowed, UNDEFINED is not
            ttl: TTL in seconds, -1 for no expiry, None for the default TTL

        Returns:
            The value that was passed in

        Raises:
            SerializationError: If value is UNDEFINED or cannot be serialized
            TTLError: If ttl is neither -1 nor a positive number
            ConfigurationError: If key is invalid
            S3OperationError: If the write fails

        Example:
            >>> await store.set("session:abc", {"user": 42}, ttl=3600)
            {'user': 42}
        """
        if value is UNDEFINED:
            raise SerializationError("Value cannot be undefined")

        if ttl is None:
            ttl = self.options.default_ttl
        elif not ttl_policy.is_valid_ttl(ttl):
            raise TTLError("TTL must be a positive number or -1 for infinite")

        storage_key = self.codec.encode(key)
        body = self._dumps(value)
        metadata = ttl_policy.build_metadata(ttl)

        try:
            await self.connection.put_object(
                storage_key,
                body,
                metadata,
                content_type=self.serializer.content_type,
                storage_class=self.options.storage_class,
                server_side_encryption=self.options.server_side_encryption,
            )
        except Exception as e:
            logger.error(
                "cache_set_error",
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise S3OperationError("Failed to store cache entry", _status_code(e), e) from e

        logger.debug("cache_set", key=key, ttl=ttl, data_size=len(body))

        return value

    async def delete(self, key: str) -> None:
        """
        Delete a cached value.

        Deleting a key that does not exist succeeds.

        Raises:
            ConfigurationError: If key is invalid
            S3OperationError: If S3 fails for a reason other than "not found"
        """
        storage_key = self.codec.encode(key)

        try:
            await self.connection.delete_object(storage_key)
        except Exception as e:
            if _is_not_found(e):
                logger.debug("cache_delete", key=key, existed=False)
                return
            logger.error(
                "cache_delete_error",
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise S3OperationError("Failed to delete cache entry", _status_code(e), e) from e

        logger.debug("cache_delete", key=key)

    async def clear(self) -> None:
        """
        Delete every entry under the configured prefix.

        Keys are collected page by page, then deleted in concurrent batches
        of up to 1000. All batches run to completion even if one fails;
        the first failure is raised afterwards, so a failed clear may still
        have removed part of the entries.

        Raises:
            S3OperationError: If listing or any batch delete fails
        """
        started = time.perf_counter()
        keys = await self._list_all_keys()

        if not keys:
            log_cache_operation("clear", (time.perf_counter() - started) * 1000, deleted=0)
            return

        batches = [
            keys[i:i + MAX_DELETE_KEYS] for i in range(0, len(keys), MAX_DELETE_KEYS)
        ]

        first_error: Optional[S3OperationError] = None
        for finished in asyncio.as_completed([self._delete_batch(b) for b in batches]):
            try:
                await finished
            except S3OperationError as e:
                if first_error is None:
                    first_error = e
                else:
                    logger.warning("cache_clear_additional_failure", error=str(e))

        duration_ms = (time.perf_counter() - started) * 1000
        if first_error is not None:
            log_cache_operation(
                "clear", duration_ms, error=first_error.message, batches=len(batches)
            )
            raise first_error

        log_cache_operation("clear", duration_ms, deleted=len(keys), batches=len(batches))

    async def scan(
        self,
        pattern: str = "",
        limit: int = DEFAULT_SCAN_LIMIT,
        cursor: Union[int, str, None] = None,
    ) -> ScanResult[T]:
        """
        List live entries whose keys start with a pattern.

        One listing page of at most min(limit, 1000) keys is read; every
        key on it is then fetched concurrently through get(). Misses,
        expired entries, stored None values and failed reads are left out.

        Args:
            pattern: Key prefix to scope the scan to ("" for all keys)
            limit: Maximum number of keys to list
            cursor: Continuation token returned by a previous scan, or
                None/0 to start from the beginning

        Returns:
            ScanResult with cursor 0 when nothing is left to list

        Raises:
            ConfigurationError: If limit is not a positive integer, or cursor
                is neither None, 0 nor a continuation token
            S3OperationError: If the listing fails
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ConfigurationError("Scan limit must be a positive integer")

        if cursor is None or cursor == 0:
            token = None
        elif isinstance(cursor, str) and cursor:
            token = cursor
        else:
            # 1 marks a truncated listing without a token; it cannot be resumed
            raise ConfigurationError(
                "Scan cursor must be 0 or a continuation token from a previous scan"
            )

        started = time.perf_counter()
        prefix = self.codec.encode_pattern(pattern)

        try:
            page = await self.connection.list_objects(
                prefix, max_keys=min(limit, MAX_LIST_KEYS), continuation_token=token
            )
        except Exception as e:
            logger.error(
                "cache_scan_error",
                prefix=prefix,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise S3OperationError(
                "Failed to scan cache entries", _status_code(e), e
            ) from e

        keys = [
            self.codec.decode(obj["Key"])
            for obj in page.get("Contents") or []
            if obj.get("Key")
        ]
        values = await asyncio.gather(
            *(self.get(key) for key in keys), return_exceptions=True
        )

        entries: List[Dict[str, Any]] = []
        for key, value in zip(keys, values):
            if isinstance(value, BaseException):
                logger.debug("cache_scan_entry_skipped", key=key, error=str(value))
                continue
            if value is None:
                continue
            entries.append({"key": key, "data": value})

        next_cursor: Union[int, str] = 0
        if page.get("IsTruncated"):
            next_cursor = page.get("NextContinuationToken") or 1

        log_cache_operation(
            "scan",
            (time.perf_counter() - started) * 1000,
            listed=len(keys),
            returned=len(entries),
            truncated=next_cursor != 0,
        )

        return ScanResult(cursor=next_cursor, entries=entries)

    async def health_check(self) -> HealthStatus:
        """
        Probe the bucket.

        Never raises: any failure, including bad credentials or a missing
        bucket, is reported as status "unhealthy" with the error message.
        """
        status = {
            "bucket": self.options.bucket,
            "region": self.options.region,
            "sdk_version": self.connection.sdk_version,
        }

        try:
            await self.connection.head_bucket()
        except Exception as e:
            logger.warning(
                "s3_health_check_failed",
                bucket=self.options.bucket,
                error=str(e),
                error_type=type(e).__name__,
            )
            return HealthStatus(status="unhealthy", error=str(e) or type(e).__name__, **status)

        logger.debug("s3_health_check_ok", bucket=self.options.bucket)
        return HealthStatus(status="healthy", **status)

    async def close(self) -> None:
        """
        Wait for background expiry deletes, then close the S3 client.

        Should be called during application shutdown.
        """
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self.connection.close()

    def _dumps(self, value: T) -> str:
        try:
            return self.serializer.dumps(value)
        except SerializationError:
            raise
        except Exception as e:
            raise SerializationError("Failed to serialize value", original_error=e) from e

    def _loads(self, text: str) -> T:
        try:
            return self.serializer.loads(text)
        except SerializationError:
            raise
        except Exception as e:
            raise SerializationError("Failed to parse cached value", original_error=e) from e

    def _schedule_expired_delete(self, key: str) -> None:
        task = asyncio.create_task(self._delete_expired(key))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _delete_expired(self, key: str) -> None:
        try:
            await self.delete(key)
        except S3StoreError as e:
            # Another reader or clear() may remove it later
            logger.warning("cache_expired_delete_failed", key=key, error=str(e))

    async def _list_all_keys(self) -> List[str]:
        """Collect every storage key under the prefix, following pagination."""
        keys: List[str] = []
        token: Optional[str] = None

        while True:
            try:
                page = await self.connection.list_objects(
                    self.options.prefix, max_keys=MAX_LIST_KEYS, continuation_token=token
                )
            except Exception as e:
                logger.error(
                    "cache_list_error",
                    prefix=self.options.prefix,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise S3OperationError("Failed to list objects", _status_code(e), e) from e

            keys.extend(obj["Key"] for obj in page.get("Contents") or [] if obj.get("Key"))

            token = page.get("NextContinuationToken")
            if not page.get("IsTruncated") or not token:
                return keys

    async def _delete_batch(self, keys: List[str]) -> None:
        try:
            response = await self.connection.delete_objects(keys)
        except Exception as e:
            logger.error(
                "cache_clear_batch_failed",
                batch_size=len(keys),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise S3OperationError("Failed to clear cache", _status_code(e), e) from e

        errors = response.get("Errors") or []
        if errors:
            first = errors[0]
            logger.error(
                "cache_clear_batch_failed",
                batch_size=len(keys),
                failed=len(errors),
                error_code=first.get("Code"),
            )
            raise S3OperationError(
                f"Failed to clear cache: {len(errors)} of {len(keys)} keys not deleted "
                f"({first.get('Code')}: {first.get('Message')})"
            )
