"""
Store configuration.

S3StoreOptions is the validated, immutable set of options an S3Store is
built from. Options can be passed explicitly or loaded from S3_CACHE_*
environment variables.
"""

import math
import os
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from s3cache.cache.ttl import CacheTTL
from s3cache.exceptions import ConfigurationError

DEFAULT_REGION = "us-east-1"
DEFAULT_MAX_RETRIES = 3
DEFAULT_HTTP_TIMEOUT_MS = 30000

ENV_PREFIX = "S3_CACHE_"


class S3StoreOptions(BaseModel):
    """
    Options for S3Store.

    Credentials are optional; when omitted boto3 resolves them from its
    usual chain (environment, shared config, instance profile).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    bucket: str = Field(..., description="S3 bucket name")
    region: str = Field(DEFAULT_REGION, description="AWS region")
    prefix: str = Field("", description="Prefix prepended to every storage key")
    default_ttl: Union[int, float] = Field(
        CacheTTL.DEFAULT.value,
        description="TTL in seconds used when set() gets none (-1 = infinite)",
    )

    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None

    storage_class: Optional[str] = Field(None, description="e.g. STANDARD_IA")
    server_side_encryption: Optional[str] = Field(None, description="e.g. AES256")

    max_retries: int = Field(DEFAULT_MAX_RETRIES, ge=1)
    http_timeout: int = Field(
        DEFAULT_HTTP_TIMEOUT_MS, gt=0, description="Request timeout in milliseconds"
    )

    endpoint: Optional[str] = Field(None, description="Custom endpoint (LocalStack, MinIO)")
    force_path_style: Optional[bool] = None

    key_sanitizer_platform: str = Field(
        "posix", description="pathvalidate platform used to sanitize keys"
    )

    @field_validator("bucket")
    @classmethod
    def _bucket_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("S3 bucket name is required and must be a string")
        return value

    @field_validator("default_ttl")
    @classmethod
    def _default_ttl_valid(cls, value: Union[int, float]) -> Union[int, float]:
        if isinstance(value, bool) or not (
            value == -1 or (math.isfinite(value) and value > 0)
        ):
            raise ValueError("Default TTL must be a positive number or -1 for infinite")
        return value

    @model_validator(mode="after")
    def _credentials_paired(self) -> "S3StoreOptions":
        if self.access_key_id and not self.secret_access_key:
            raise ValueError("Secret access key is required when access key ID is provided")
        if self.secret_access_key and not self.access_key_id:
            raise ValueError("Access key ID is required when secret access key is provided")
        return self

    @property
    def path_style(self) -> Optional[bool]:
        """
        Effective path-style addressing.

        A custom endpoint enables path-style addressing unless
        force_path_style says otherwise. Without an endpoint the
        boto3 default applies (None).
        """
        if self.endpoint:
            return True if self.force_path_style is None else self.force_path_style
        return self.force_path_style

    @classmethod
    def create(cls, **options: Any) -> "S3StoreOptions":
        """
        Build options, translating validation failures to ConfigurationError.

        Raises:
            ConfigurationError: If any option is missing or invalid
        """
        try:
            return cls(**options)
        except ValidationError as e:
            first = e.errors()[0]
            message = str(first["msg"])
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            elif first["loc"]:
                message = f"{first['loc'][0]}: {message}"
            raise ConfigurationError(message, original_error=e) from e

    @classmethod
    def from_env(cls, **overrides: Any) -> "S3StoreOptions":
        """
        Load options from S3_CACHE_* environment variables.

        Standard AWS_* variables are used for region and credentials when
        no S3_CACHE_* equivalent is set. Keyword overrides win over the
        environment.

        Example:
            >>> os.environ["S3_CACHE_BUCKET"] = "my-cache"
            >>> options = S3StoreOptions.from_env(prefix="app:")
        """
        env: Dict[str, Any] = {
            "bucket": _env("BUCKET"),
            "region": _env("REGION") or os.getenv("AWS_REGION"),
            "prefix": _env("PREFIX"),
            "default_ttl": _env("DEFAULT_TTL"),
            "access_key_id": _env("ACCESS_KEY_ID") or os.getenv("AWS_ACCESS_KEY_ID"),
            "secret_access_key": (
                _env("SECRET_ACCESS_KEY") or os.getenv("AWS_SECRET_ACCESS_KEY")
            ),
            "session_token": _env("SESSION_TOKEN") or os.getenv("AWS_SESSION_TOKEN"),
            "storage_class": _env("STORAGE_CLASS"),
            "server_side_encryption": _env("SERVER_SIDE_ENCRYPTION"),
            "max_retries": _env("MAX_RETRIES"),
            "http_timeout": _env("HTTP_TIMEOUT"),
            "endpoint": _env("ENDPOINT"),
            "force_path_style": _env("FORCE_PATH_STYLE"),
        }

        options = {name: value for name, value in env.items() if value is not None}
        if "default_ttl" in options:
            options["default_ttl"] = _parse_number(options["default_ttl"])
        options.update(overrides)
        if "bucket" not in options:
            raise ConfigurationError(f"{ENV_PREFIX}BUCKET environment variable not set")

        return cls.create(**options)


def _env(name: str) -> Optional[str]:
    value = os.getenv(f"{ENV_PREFIX}{name}")
    return value if value else None


def _parse_number(raw: str) -> Union[int, float, str]:
    # Leave unparseable input for the validator to reject
    try:
        return int(raw)
    except ValueError:
        try:
            return float(raw)
        except ValueError:
            return raw
