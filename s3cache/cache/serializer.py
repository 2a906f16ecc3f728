"""Value serialization for cache entries.

Values are stored as canonical JSON text. Any object with ``dumps`` and
``loads`` methods can replace the JSON serializer, which is how callers
store payloads JSON does not cover.
"""

import json
from typing import Any, Protocol

from s3cache.exceptions import SerializationError

CONTENT_TYPE = "application/json"


class _Undefined:
    """Marker for "no value", which is never storable (unlike None)."""

    _instance = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED: Any = _Undefined()


class Serializer(Protocol):
    """Capability a payload codec must provide."""

    content_type: str

    def dumps(self, value: Any) -> str:
        ...

    def loads(self, text: str) -> Any:
        ...


class JsonSerializer:
    """
    Strict JSON serializer.

    NaN and infinities are rejected rather than written as non-standard
    tokens, and keys are emitted in insertion order.
    """

    content_type = CONTENT_TYPE

    def dumps(self, value: Any) -> str:
        """
        Serialize a value to JSON text.

        Raises:
            SerializationError: If value is UNDEFINED, cyclic, or contains
                unsupported types
        """
        if value is UNDEFINED:
            raise SerializationError("Value cannot be undefined")

        try:
            return json.dumps(value, allow_nan=False, separators=(",", ":"))
        except (TypeError, ValueError, RecursionError) as e:
            raise SerializationError("Failed to serialize value", original_error=e) from e

    def loads(self, text: str) -> Any:
        """
        Deserialize JSON text.

        Raises:
            SerializationError: If text is not valid JSON
        """
        try:
            return json.loads(text)
        except ValueError as e:
            raise SerializationError("Failed to parse cached value", original_error=e) from e
