"""
Custom exceptions for the S3-backed cache.

This module defines the error taxonomy raised by S3Store operations.
Every error carries a human-readable message, a stable error code and,
where available, the HTTP status code and the original provider error.
"""

from typing import Optional


class S3StoreError(Exception):
    """
    Base exception for all cache errors.

    Use this for catching any error raised by S3Store.

    Attributes:
        message: Error description
        code: Stable machine-readable error code
        status_code: HTTP status code reported by S3, if any
        original_error: Underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: Optional[int] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        """
        Initialize S3StoreError.

        Args:
            message: Error description
            code: Error code (e.g. "S3_OPERATION_ERROR")
            status_code: Optional HTTP status code from S3
            original_error: Optional wrapped exception
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.original_error = original_error
        super().__init__(self.message)


class ConfigurationError(S3StoreError):
    """
    Raised when store options or a cache key are invalid.

    This occurs when:
    - The bucket name is missing
    - The default TTL is neither positive nor -1
    - Only one half of an access key pair is supplied
    - A cache key is empty or not a string

    Example:
        >>> raise ConfigurationError("Cache key must be a non-empty string")
    """

    def __init__(
        self, message: str, original_error: Optional[BaseException] = None
    ) -> None:
        super().__init__(message, "CONFIGURATION_ERROR", original_error=original_error)


class TTLError(S3StoreError):
    """
    Raised when a TTL passed to set() is neither -1 nor a positive number.

    Example:
        >>> raise TTLError("TTL must be a positive number or -1 for infinite")
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, "TTL_ERROR")


class SerializationError(S3StoreError):
    """
    Raised when a value cannot be stored or a stored body cannot be read back.

    This occurs when:
    - The value is the UNDEFINED sentinel
    - The value contains cycles or types the serializer rejects
    - A stored body is not valid for the serializer
    """

    def __init__(
        self, message: str, original_error: Optional[BaseException] = None
    ) -> None:
        super().__init__(message, "SERIALIZATION_ERROR", original_error=original_error)


class S3OperationError(S3StoreError):
    """
    Raised when S3 reports a failure other than "not found".

    Example:
        >>> raise S3OperationError("Failed to store cache entry", status_code=503)
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            message,
            "S3_OPERATION_ERROR",
            status_code=status_code,
            original_error=original_error,
        )

    def __str__(self) -> str:
        """Return the message with the HTTP status when one is known."""
        if self.status_code is not None:
            return f"{self.message} (status: {self.status_code})"
        return self.message
