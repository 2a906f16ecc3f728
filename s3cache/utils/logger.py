"""
Structured logging for s3cache built on structlog.

The library only emits events; applications opt into rendering by
calling setup_logging() once at startup.
"""
import logging
import os
import sys
from typing import Any, MutableMapping, Optional

import structlog

# Fields that never reach a log line verbatim
REDACTED_FIELDS = frozenset({"secret_access_key", "session_token", "access_key_id"})

_SDK_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def redact_credentials(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking AWS credential fields."""
    for field in REDACTED_FIELDS.intersection(event_dict):
        if event_dict[field]:
            event_dict[field] = "***"
    return event_dict


def setup_logging(level: str = "INFO", json_output: Optional[bool] = None) -> None:
    """
    Configure structlog for cache events.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            unknown names fall back to INFO
        json_output: Force JSON (True) or console (False) rendering.
            Defaults to console when ENVIRONMENT=development.

    The AWS SDK loggers stay at WARNING unless level is DEBUG.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    sdk_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in _SDK_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)

    if json_output is None:
        json_output = os.getenv("ENVIRONMENT", "production") != "development"

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_credentials,
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """
    Get a structured logger.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("cache_warmup", keys=120)
    """
    return structlog.get_logger(name)


def log_cache_operation(
    operation: str,
    duration_ms: float,
    error: str | None = None,
    **extra: Any,
) -> None:
    """
    Record the timing of a multi-request cache operation (clear, scan).

    Args:
        operation: Operation name
        duration_ms: Wall time in milliseconds
        error: Failure message, if the operation failed
        **extra: Operation counters (listed, returned, batches, ...)

    Example:
        >>> log_cache_operation("scan", 48.2, listed=10, returned=9)
    """
    fields = {
        "operation": operation,
        "duration_ms": round(duration_ms, 2),
        "error": error,
        **extra,
    }

    logger = get_logger("cache_operation")
    if error:
        logger.error("cache_operation_failed", **fields)
    else:
        logger.info("cache_operation_success", **fields)
