"""Unit tests for logging helpers."""

import logging
from unittest.mock import MagicMock, patch

import structlog

from s3cache.utils.logger import (
    get_logger,
    log_cache_operation,
    redact_credentials,
    setup_logging,
)


class TestSetupLogging:
    """Test suite for setup_logging()."""

    def teardown_method(self):
        structlog.reset_defaults()

    def test_json_renderer_in_production(self, monkeypatch):
        """Test production logging renders JSON."""
        monkeypatch.setenv("ENVIRONMENT", "production")

        setup_logging("DEBUG")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer_in_development(self, monkeypatch):
        """Test development logging renders for the console."""
        monkeypatch.setenv("ENVIRONMENT", "development")

        setup_logging("INFO")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_explicit_json_output(self, monkeypatch):
        """Test json_output overrides the environment."""
        monkeypatch.setenv("ENVIRONMENT", "development")

        setup_logging("INFO", json_output=True)

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_unknown_level_falls_back(self):
        """Test an unknown level name does not raise."""
        setup_logging("LOUD")

        assert structlog.get_config()["wrapper_class"] is not None

    def test_sdk_loggers_quieted(self):
        """Test botocore stays at WARNING for non-debug levels."""
        setup_logging("INFO")

        assert logging.getLogger("botocore").level == logging.WARNING

        setup_logging("DEBUG")

        assert logging.getLogger("botocore").level == logging.DEBUG


class TestRedactCredentials:
    """Test suite for the credential-masking processor."""

    def test_masks_secrets(self):
        """Test credential fields are replaced."""
        event = {"event": "s3_client_initialized", "secret_access_key": "abc", "bucket": "b"}

        result = redact_credentials(None, "info", event)

        assert result["secret_access_key"] == "***"
        assert result["bucket"] == "b"

    def test_leaves_empty_values(self):
        """Test unset credentials are left as-is."""
        result = redact_credentials(None, "info", {"session_token": None})

        assert result["session_token"] is None


def test_get_logger_returns_logger():
    """Test get_logger() returns a usable structlog logger."""
    logger = get_logger("s3cache.test")

    assert hasattr(logger, "info")


class TestLogCacheOperation:
    """Test suite for log_cache_operation()."""

    @patch("s3cache.utils.logger.get_logger")
    def test_success(self, mock_get_logger):
        """Test successful operations log at info level."""
        logger = MagicMock()
        mock_get_logger.return_value = logger

        log_cache_operation("scan", 12.3456, listed=3)

        logger.info.assert_called_once_with(
            "cache_operation_success",
            operation="scan",
            duration_ms=12.35,
            error=None,
            listed=3,
        )

    @patch("s3cache.utils.logger.get_logger")
    def test_failure(self, mock_get_logger):
        """Test failed operations log at error level."""
        logger = MagicMock()
        mock_get_logger.return_value = logger

        log_cache_operation("clear", 5, error="Failed to clear cache")

        logger.error.assert_called_once()
        assert logger.error.call_args.kwargs["error"] == "Failed to clear cache"
