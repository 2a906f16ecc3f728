"""Cache key encoding between logical keys and S3 object keys.

This module provides the CacheKeyCodec class which maps caller-supplied
cache keys to S3 object keys and back, keeping "/" hierarchy intact so
that objects can still be browsed and listed by prefix.
"""

from urllib.parse import quote, unquote

import structlog
from pathvalidate import FileNameSanitizer

from s3cache.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

# Stands in for "/" while the key goes through the file name sanitizer
SLASH_PLACEHOLDER = "__SLASH__"

# Characters encodeURIComponent leaves untouched besides alphanumerics and "_.-~"
_SAFE_CHARS = "!*'()"

# S3 object keys are limited to 1024 bytes of UTF-8
S3_MAX_KEY_BYTES = 1024


class CacheKeyCodec:
    """
    Encode and decode cache keys for S3 storage.

    Storage keys follow the pattern: {prefix}{encoded key}

    Encoding swaps "/" for a placeholder, strips characters that are unsafe
    in file names, percent-encodes the result and finally restores the
    placeholders as literal "/". Doing the swap first keeps consecutive
    and leading/trailing slashes intact.

    Keys are never truncated: a key whose placeholder form does not fit
    the sanitizer budget (S3_MAX_KEY_BYTES minus the prefix, further
    capped by the sanitizer platform), or whose final storage key is over
    S3_MAX_KEY_BYTES, is rejected.

    Attributes:
        prefix: Namespace prefix prepended to every storage key
        platform: pathvalidate platform used for sanitization
    """

    def __init__(self, prefix: str = "", platform: str = "posix") -> None:
        self.prefix = prefix
        self.platform = platform

        budget = S3_MAX_KEY_BYTES - len(prefix.encode("utf-8"))
        if budget < 1:
            raise ConfigurationError(
                f"Key prefix must be shorter than {S3_MAX_KEY_BYTES} bytes"
            )
        self._sanitizer = FileNameSanitizer(
            max_len=budget, fs_encoding="utf-8", platform=platform
        )

    @property
    def max_sanitized_bytes(self) -> int:
        """Largest placeholder-expanded key the sanitizer keeps whole."""
        return self._sanitizer.max_len

    def encode(self, key: str) -> str:
        """
        Encode a cache key into an S3 object key.

        Args:
            key: Logical cache key (non-empty string, may contain "/")

        Returns:
            S3 object key starting with the configured prefix

        Raises:
            ConfigurationError: If key is empty or not a string, has no
                storable characters left after sanitization, or is too
                long to store without truncation

        Example:
            >>> codec = CacheKeyCodec(prefix="app:")
            >>> codec.encode("users/42 profile")
            'app:users/42%20profile'
        """
        if not isinstance(key, str) or not key:
            raise ConfigurationError("Cache key must be a non-empty string")

        encoded = self._encode_fragment(key)
        if not encoded:
            raise ConfigurationError(
                f"Cache key {key!r} contains no storable characters"
            )

        storage_key = f"{self.prefix}{encoded}"
        if len(storage_key.encode("utf-8")) > S3_MAX_KEY_BYTES:
            raise ConfigurationError(
                f"Cache key encodes to more than {S3_MAX_KEY_BYTES} bytes"
            )

        logger.debug("cache_key_encoded", key=key, storage_key=storage_key)

        return storage_key

    def encode_pattern(self, pattern: str) -> str:
        """
        Encode a scan pattern into an S3 listing prefix.

        Args:
            pattern: Key fragment to scope a listing to ("" for everything)

        Returns:
            Listing prefix (the configured prefix when pattern is empty)
        """
        if not pattern:
            return self.prefix
        return f"{self.prefix}{self._encode_fragment(pattern)}"

    def decode(self, storage_key: str) -> str:
        """
        Decode an S3 object key back into a cache key.

        Args:
            storage_key: S3 object key as returned by a listing

        Returns:
            Logical cache key with the prefix removed

        Example:
            >>> CacheKeyCodec(prefix="app:").decode("app:users/42%20profile")
            'users/42 profile'
        """
        if self.prefix and storage_key.startswith(self.prefix):
            storage_key = storage_key[len(self.prefix):]
        return unquote(storage_key)

    def _encode_fragment(self, fragment: str) -> str:
        with_placeholders = fragment.replace("/", SLASH_PLACEHOLDER)
        if len(with_placeholders.encode("utf-8")) > self.max_sanitized_bytes:
            raise ConfigurationError(
                f"Cache key is too long: at most {self.max_sanitized_bytes} bytes "
                f"with each \"/\" counted as {len(SLASH_PLACEHOLDER)}"
            )
        sanitized = self._sanitizer.sanitize(with_placeholders)
        encoded = quote(sanitized, safe=_SAFE_CHARS)
        return encoded.replace(SLASH_PLACEHOLDER, "/")
