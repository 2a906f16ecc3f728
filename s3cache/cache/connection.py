"""S3 client creation and non-blocking object operations.

This module provides the S3Connection class, which owns the boto3 S3
client for one store and exposes the handful of object operations the
cache needs as coroutines. boto3 is synchronous, so each call runs in a
worker thread to keep the event loop free.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config as BotoConfig

import structlog

from s3cache.config import S3StoreOptions
from s3cache.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

# S3 returns at most 1000 keys per listing page
MAX_LIST_KEYS = 1000

# DeleteObjects accepts at most 1000 keys per request
MAX_DELETE_KEYS = 1000


@dataclass
class StoredObject:
    """Body and user metadata of an object read from S3."""

    body: bytes
    metadata: Dict[str, str] = field(default_factory=dict)


class S3Connection:
    """
    Owner of the boto3 S3 client used by a store.

    The client is created once from the store options and shared by all
    operations; it is never reconfigured afterwards.

    Attributes:
        bucket: Target bucket name
        region: AWS region
        client: boto3 S3 client
    """

    def __init__(self, options: S3StoreOptions) -> None:
        """Create the S3 client from store options."""
        self.bucket = options.bucket
        self.region = options.region
        self.client = self._initialize_client(options)

    @staticmethod
    def _initialize_client(options: S3StoreOptions) -> Any:
        """
        Build the boto3 S3 client.

        Retries and timeouts are handed to botocore. A custom endpoint
        (LocalStack, MinIO) switches to path-style addressing unless the
        options say otherwise.

        Raises:
            ConfigurationError: If boto3 rejects the client configuration
        """
        timeout_seconds = options.http_timeout / 1000
        config_kwargs: Dict[str, Any] = {
            "region_name": options.region,
            "retries": {"max_attempts": options.max_retries, "mode": "standard"},
            "connect_timeout": timeout_seconds,
            "read_timeout": timeout_seconds,
        }

        path_style = options.path_style
        if path_style is not None:
            config_kwargs["s3"] = {"addressing_style": "path" if path_style else "virtual"}

        kwargs: Dict[str, Any] = {
            "region_name": options.region,
            "config": BotoConfig(**config_kwargs),
        }

        if options.endpoint:
            kwargs["endpoint_url"] = options.endpoint

        if options.access_key_id and options.secret_access_key:
            kwargs["aws_access_key_id"] = options.access_key_id
            kwargs["aws_secret_access_key"] = options.secret_access_key
            if options.session_token:
                kwargs["aws_session_token"] = options.session_token

        try:
            client = boto3.client("s3", **kwargs)
        except Exception as e:
            logger.error(
                "s3_client_initialization_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ConfigurationError(f"Failed to create S3 client: {e}", original_error=e) from e

        logger.info(
            "s3_client_initialized",
            bucket=options.bucket,
            region=options.region,
            endpoint=options.endpoint,
            path_style=path_style,
            max_retries=options.max_retries,
        )

        return client

    @property
    def sdk_version(self) -> str:
        """Version string of the AWS SDK in use."""
        return f"boto3/{boto3.__version__}"

    async def get_object(self, key: str) -> StoredObject:
        """
        Read an object's body and user metadata.

        Raises:
            botocore.exceptions.ClientError: NoSuchKey for missing objects,
                or any other S3 error
        """
        return await asyncio.to_thread(self._read_object, key)

    def _read_object(self, key: str) -> StoredObject:
        response = self.client.get_object(Bucket=self.bucket, Key=key)
        body = response["Body"]
        try:
            data = body.read()
        finally:
            body.close()
        return StoredObject(body=data, metadata=dict(response.get("Metadata") or {}))

    async def put_object(
        self,
        key: str,
        body: str,
        metadata: Dict[str, str],
        content_type: str,
        storage_class: Optional[str] = None,
        server_side_encryption: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Write an object, replacing any existing one."""
        params: Dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": body.encode("utf-8"),
            "ContentType": content_type,
            "Metadata": metadata,
        }
        if storage_class:
            params["StorageClass"] = storage_class
        if server_side_encryption:
            params["ServerSideEncryption"] = server_side_encryption

        return await asyncio.to_thread(self.client.put_object, **params)

    async def delete_object(self, key: str) -> Dict[str, Any]:
        """Delete one object. S3 succeeds for keys that do not exist."""
        return await asyncio.to_thread(
            self.client.delete_object, Bucket=self.bucket, Key=key
        )

    async def delete_objects(self, keys: List[str]) -> Dict[str, Any]:
        """
        Delete up to MAX_DELETE_KEYS objects in one request.

        Quiet mode is used, so the response only lists keys that failed
        under "Errors".
        """
        if len(keys) > MAX_DELETE_KEYS:
            raise ValueError(f"Cannot delete more than {MAX_DELETE_KEYS} keys per request")

        return await asyncio.to_thread(
            self.client.delete_objects,
            Bucket=self.bucket,
            Delete={"Objects": [{"Key": key} for key in keys], "Quiet": True},
        )

    async def list_objects(
        self,
        prefix: str,
        max_keys: int = MAX_LIST_KEYS,
        continuation_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        List one page of objects under a prefix.

        Returns:
            Raw ListObjectsV2 response (Contents, IsTruncated,
            NextContinuationToken, ...)
        """
        params: Dict[str, Any] = {
            "Bucket": self.bucket,
            "Prefix": prefix,
            "MaxKeys": min(max_keys, MAX_LIST_KEYS),
        }
        if continuation_token:
            params["ContinuationToken"] = continuation_token

        return await asyncio.to_thread(self.client.list_objects_v2, **params)

    async def head_bucket(self) -> Dict[str, Any]:
        """Check that the bucket exists and is reachable with our credentials."""
        return await asyncio.to_thread(self.client.head_bucket, Bucket=self.bucket)

    async def close(self) -> None:
        """
        Close the client's HTTP connection pool.

        Should be called during application shutdown.
        """
        try:
            await asyncio.to_thread(self.client.close)
            logger.info("s3_client_closed", bucket=self.bucket)
        except Exception as e:
            logger.error(
                "s3_client_close_error",
                error=str(e),
                error_type=type(e).__name__,
            )
