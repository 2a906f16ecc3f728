"""Unit tests for TTL handling."""

from unittest.mock import patch

import pytest

from s3cache.cache.ttl import (
    META_CREATED,
    META_EXPIRES,
    META_VERSION,
    SCHEMA_VERSION,
    CacheTTL,
    build_metadata,
    expires_at,
    is_expired,
    is_valid_ttl,
    now_ms,
)

NOW_MS = 1_700_000_000_000


class TestCacheTTL:
    """Test suite for CacheTTL enum."""

    def test_infinite_sentinel(self):
        """Test the infinite TTL sentinel is -1."""
        assert CacheTTL.INFINITE.value == -1

    def test_default_ttl(self):
        """Test the default TTL is one minute."""
        assert CacheTTL.DEFAULT.value == 60


class TestIsValidTTL:
    """Test suite for TTL validation."""

    @pytest.mark.parametrize("ttl", [1, 60, 0.5, 86400, -1, -1.0])
    def test_valid(self, ttl):
        """Test positive numbers and -1 are accepted."""
        assert is_valid_ttl(ttl) is True

    @pytest.mark.parametrize(
        "ttl", [0, -2, -0.5, None, "60", True, False, float("nan"), float("inf")]
    )
    def test_invalid(self, ttl):
        """Test zero, other negatives, non-numbers and non-finite values are rejected."""
        assert is_valid_ttl(ttl) is False


class TestExpiresAt:
    """Test suite for expiry computation."""

    def test_seconds_to_milliseconds(self):
        """Test TTL seconds are added as milliseconds."""
        assert expires_at(60, NOW_MS) == NOW_MS + 60_000

    def test_infinite(self):
        """Test infinite TTL has no expiry."""
        assert expires_at(-1, NOW_MS) is None

    def test_always_after_created(self):
        """Test tiny TTLs still expire strictly after creation."""
        assert expires_at(0.0001, NOW_MS) == NOW_MS + 1


class TestBuildMetadata:
    """Test suite for metadata construction."""

    def test_with_ttl(self):
        """Test metadata carries created, version and expiry."""
        with patch("s3cache.cache.ttl.now_ms", return_value=NOW_MS):
            metadata = build_metadata(30)

        assert metadata == {
            META_CREATED: str(NOW_MS),
            META_VERSION: SCHEMA_VERSION,
            META_EXPIRES: str(NOW_MS + 30_000),
        }

    def test_infinite_has_no_expiry(self):
        """Test infinite TTL never writes the expiry attribute."""
        metadata = build_metadata(-1)

        assert META_EXPIRES not in metadata
        assert metadata[META_VERSION] == "1.0"

    def test_values_are_strings(self):
        """Test every metadata value is a string, as S3 requires."""
        for value in build_metadata(10).values():
            assert isinstance(value, str)


class TestIsExpired:
    """Test suite for lazy expiry evaluation."""

    def test_no_metadata(self):
        """Test missing metadata never expires."""
        assert is_expired(None) is False
        assert is_expired({}) is False

    def test_no_expiry_attribute(self):
        """Test entries without an expiry never expire."""
        assert is_expired({META_CREATED: "1"}) is False

    def test_future_expiry(self):
        """Test entries before their expiry are live."""
        with patch("s3cache.cache.ttl.now_ms", return_value=NOW_MS):
            assert is_expired({META_EXPIRES: str(NOW_MS + 1)}) is False

    def test_at_expiry(self):
        """Test entries are live at exactly their expiry."""
        with patch("s3cache.cache.ttl.now_ms", return_value=NOW_MS):
            assert is_expired({META_EXPIRES: str(NOW_MS)}) is False

    def test_past_expiry(self):
        """Test entries past their expiry are expired."""
        with patch("s3cache.cache.ttl.now_ms", return_value=NOW_MS):
            assert is_expired({META_EXPIRES: str(NOW_MS - 1)}) is True

    def test_unparseable_expiry(self):
        """Test garbage expiry values are ignored."""
        assert is_expired({META_EXPIRES: "not-a-number"}) is False


def test_now_ms_is_epoch_milliseconds():
    """Test now_ms() returns epoch milliseconds."""
    with patch("s3cache.cache.ttl.time.time", return_value=1700000000.1234):
        assert now_ms() == 1700000000123
