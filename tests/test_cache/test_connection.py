"""Unit tests for S3 client creation and object operations."""

import io
from unittest.mock import MagicMock, patch

import pytest

from s3cache.cache.connection import MAX_DELETE_KEYS, S3Connection, StoredObject
from s3cache.config import S3StoreOptions
from s3cache.exceptions import ConfigurationError


class TestS3ConnectionInit:
    """Test suite for boto3 client configuration."""

    @patch("s3cache.cache.connection.boto3.client")
    def test_default_client(self, mock_client):
        """Test the client gets region, retries and timeouts."""
        S3Connection(S3StoreOptions(bucket="b"))

        args, kwargs = mock_client.call_args
        assert args == ("s3",)
        assert kwargs["region_name"] == "us-east-1"
        assert "endpoint_url" not in kwargs
        assert "aws_access_key_id" not in kwargs

        config = kwargs["config"]
        assert config.retries == {"max_attempts": 3, "mode": "standard"}
        assert config.connect_timeout == 30
        assert config.read_timeout == 30
        assert config.s3 is None

    @patch("s3cache.cache.connection.boto3.client")
    def test_custom_endpoint_defaults_to_path_style(self, mock_client):
        """Test a custom endpoint turns on path-style addressing."""
        S3Connection(S3StoreOptions(bucket="b", endpoint="http://localhost:4566"))

        kwargs = mock_client.call_args.kwargs
        assert kwargs["endpoint_url"] == "http://localhost:4566"
        assert kwargs["config"].s3 == {"addressing_style": "path"}

    @patch("s3cache.cache.connection.boto3.client")
    def test_custom_endpoint_path_style_override(self, mock_client):
        """Test force_path_style=False wins over the endpoint default."""
        S3Connection(
            S3StoreOptions(bucket="b", endpoint="http://minio:9000", force_path_style=False)
        )

        assert mock_client.call_args.kwargs["config"].s3 == {"addressing_style": "virtual"}

    @patch("s3cache.cache.connection.boto3.client")
    def test_explicit_credentials(self, mock_client):
        """Test the credential triple is passed to boto3."""
        S3Connection(
            S3StoreOptions(
                bucket="b",
                access_key_id="AKIA",
                secret_access_key="secret",
                session_token="token",
                max_retries=5,
                http_timeout=2500,
            )
        )

        kwargs = mock_client.call_args.kwargs
        assert kwargs["aws_access_key_id"] == "AKIA"
        assert kwargs["aws_secret_access_key"] == "secret"
        assert kwargs["aws_session_token"] == "token"
        assert kwargs["config"].retries["max_attempts"] == 5
        assert kwargs["config"].read_timeout == 2.5

    @patch("s3cache.cache.connection.boto3.client", side_effect=ValueError("Invalid endpoint"))
    def test_client_failure(self, mock_client):
        """Test boto3 rejecting the configuration raises ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            S3Connection(S3StoreOptions(bucket="b", endpoint="not a url"))

        assert "Invalid endpoint" in str(exc_info.value)

    @patch("s3cache.cache.connection.boto3.client")
    def test_sdk_version(self, mock_client):
        """Test the SDK version names boto3."""
        connection = S3Connection(S3StoreOptions(bucket="b"))

        assert connection.sdk_version.startswith("boto3/")


class TestS3ConnectionOperations:
    """Test suite for the async object operations."""

    @pytest.fixture
    def client(self):
        """Create a mock boto3 S3 client."""
        return MagicMock()

    @pytest.fixture
    def connection(self, client):
        """Create S3Connection with a mocked boto3 client."""
        with patch("s3cache.cache.connection.boto3.client", return_value=client):
            return S3Connection(S3StoreOptions(bucket="test-bucket"))

    @pytest.mark.asyncio
    async def test_get_object(self, connection, client):
        """Test the body is read and closed and metadata returned."""
        body = MagicMock()
        body.read.return_value = b'{"a":1}'
        client.get_object.return_value = {"Body": body, "Metadata": {"cache-version": "1.0"}}

        stored = await connection.get_object("k")

        assert stored == StoredObject(body=b'{"a":1}', metadata={"cache-version": "1.0"})
        client.get_object.assert_called_once_with(Bucket="test-bucket", Key="k")
        body.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_get_object_without_metadata(self, connection, client):
        """Test objects without user metadata get an empty dict."""
        client.get_object.return_value = {"Body": io.BytesIO(b"1")}

        stored = await connection.get_object("k")

        assert stored.metadata == {}

    @pytest.mark.asyncio
    async def test_put_object(self, connection, client):
        """Test the write carries body, type, metadata and storage options."""
        await connection.put_object(
            "k",
            '{"a":1}',
            {"cache-version": "1.0"},
            content_type="application/json",
            storage_class="STANDARD_IA",
            server_side_encryption="aws:kms",
        )

        client.put_object.assert_called_once_with(
            Bucket="test-bucket",
            Key="k",
            Body=b'{"a":1}',
            ContentType="application/json",
            Metadata={"cache-version": "1.0"},
            StorageClass="STANDARD_IA",
            ServerSideEncryption="aws:kms",
        )

    @pytest.mark.asyncio
    async def test_put_object_without_storage_options(self, connection, client):
        """Test unset storage options are not sent."""
        await connection.put_object("k", "1", {}, content_type="application/json")

        kwargs = client.put_object.call_args.kwargs
        assert "StorageClass" not in kwargs
        assert "ServerSideEncryption" not in kwargs

    @pytest.mark.asyncio
    async def test_delete_object(self, connection, client):
        """Test single deletes target the bucket."""
        await connection.delete_object("k")

        client.delete_object.assert_called_once_with(Bucket="test-bucket", Key="k")

    @pytest.mark.asyncio
    async def test_delete_objects_quiet(self, connection, client):
        """Test batch deletes use quiet mode."""
        client.delete_objects.return_value = {}

        await connection.delete_objects(["a", "b"])

        client.delete_objects.assert_called_once_with(
            Bucket="test-bucket",
            Delete={"Objects": [{"Key": "a"}, {"Key": "b"}], "Quiet": True},
        )

    @pytest.mark.asyncio
    async def test_delete_objects_limit(self, connection, client):
        """Test batches above the S3 limit are refused."""
        with pytest.raises(ValueError):
            await connection.delete_objects([str(i) for i in range(MAX_DELETE_KEYS + 1)])

        client.delete_objects.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_objects(self, connection, client):
        """Test listings pass prefix, page size and continuation token."""
        client.list_objects_v2.return_value = {"Contents": [], "IsTruncated": False}

        await connection.list_objects("p:", max_keys=50, continuation_token="tok")

        client.list_objects_v2.assert_called_once_with(
            Bucket="test-bucket", Prefix="p:", MaxKeys=50, ContinuationToken="tok"
        )

    @pytest.mark.asyncio
    async def test_list_objects_clamps_page_size(self, connection, client):
        """Test page sizes are capped at 1000 keys."""
        await connection.list_objects("p:", max_keys=5000)

        kwargs = client.list_objects_v2.call_args.kwargs
        assert kwargs["MaxKeys"] == 1000
        assert "ContinuationToken" not in kwargs

    @pytest.mark.asyncio
    async def test_head_bucket(self, connection, client):
        """Test the health probe is a HeadBucket call."""
        await connection.head_bucket()

        client.head_bucket.assert_called_once_with(Bucket="test-bucket")

    @pytest.mark.asyncio
    async def test_close(self, connection, client):
        """Test close() closes the client."""
        await connection.close()

        client.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_close_error_swallowed(self, connection, client):
        """Test shutdown does not fail when closing the client fails."""
        client.close.side_effect = RuntimeError("already closed")

        await connection.close()
