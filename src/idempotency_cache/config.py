"""Configuration module for the idempotency cache.

This module provides the IdempotencyConfig class for configuring which requests
the middleware intercepts, which header carries the key, how long captured
responses live, and which storage backend holds them.

Example:
    Basic usage with defaults:

        >>> config = IdempotencyConfig()
        >>> config.enabled_methods
        ['POST', 'PUT', 'PATCH', 'DELETE']
        >>> config.header_name
        'Idempotency-Key'

    Custom configuration:

        >>> config = IdempotencyConfig(
        ...     enabled_methods=["POST", "PUT"],
        ...     ttl_seconds=3600,
        ...     header_name="X-Idempotency-Key",
        ...     storage_adapter="redis",
        ... )

    Loading from environment:

        >>> import os
        >>> os.environ['IDEMPOTENCY_ENABLED_METHODS'] = 'POST,PUT'
        >>> os.environ['IDEMPOTENCY_TTL_SECONDS'] = '3600'
        >>> config = IdempotencyConfig.from_env()
"""

import os
from datetime import timedelta
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# Valid HTTP methods for idempotency
VALID_HTTP_METHODS = {
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "DELETE",
    "CONNECT",
    "OPTIONS",
    "TRACE",
    "PATCH",
}

DEFAULT_HEADER_NAME = "Idempotency-Key"
DEFAULT_KEY_PREFIX = "idempotency:"

StorageAdapterName = Literal["memory", "redis", "hazelcast", "disk", "cache_manager"]


class IdempotencyConfig(BaseModel):
    """Configuration for the idempotency middleware.

    Attributes:
        enabled: Master switch. When False every request bypasses the protocol.
        header_name: Request header carrying the idempotency key. Matched
            case-insensitively. Default is "Idempotency-Key".
        enabled_methods: HTTP methods the middleware intercepts. Requests with
            any other method bypass the protocol regardless of headers.
            Default is the mutating methods: POST, PUT, PATCH, DELETE.
        ttl_seconds: Lifetime of a captured response in the backend. Must be
            between 1 and 604800 (7 days). Default is 86400 (24 hours).
        max_entries: Advisory capacity for backends that honor it (the
            in-memory backend evicts its oldest entry beyond this size).
        storage_adapter: Backend selected by ``storage.create_storage``.
        key_prefix: Namespace prepended to keys by delegating backends so a
            shared cache does not collide with unrelated usages.
        await_store_writes: When True the cache write is awaited before the
            response is released. Failures are still swallowed. Default is
            False (write-behind).
        cleanup_interval_seconds: Sweep interval for backends that need
            periodic removal of expired entries.

    Note:
        This class is immutable (frozen=True). Create a new instance if you
        need different settings.
    """

    enabled: bool = Field(
        default=True,
        description="Whether the idempotency protocol is applied at all",
    )
    header_name: str = Field(
        default=DEFAULT_HEADER_NAME,
        description="Request header carrying the idempotency key",
    )
    enabled_methods: list[str] | str = Field(
        default=["POST", "PUT", "PATCH", "DELETE"],
        description="List of HTTP methods that are intercepted",
    )
    ttl_seconds: int = Field(
        default=86400,
        description="Time-to-live in seconds for cached responses (1-604800)",
    )
    max_entries: int = Field(
        default=10000,
        description="Advisory maximum number of cached responses",
    )
    storage_adapter: StorageAdapterName = Field(
        default="memory",
        description="Storage backend for cached responses",
    )
    key_prefix: str = Field(
        default=DEFAULT_KEY_PREFIX,
        description="Namespace prefix used by delegating storage backends",
    )
    await_store_writes: bool = Field(
        default=False,
        description="Await the cache write before releasing the response",
    )
    cleanup_interval_seconds: int = Field(
        default=300,
        description="Interval between sweeps of expired entries",
    )

    model_config = {"frozen": True}

    @field_validator("enabled_methods", mode="before")
    @classmethod
    def validate_enabled_methods(cls, v: Any) -> list[str]:
        """Validate and normalize enabled HTTP methods.

        Args:
            v: List of HTTP method strings or comma-separated string.

        Returns:
            List of uppercase, validated HTTP methods.

        Raises:
            ValueError: If any method is not a valid HTTP method.

        Example:
            >>> IdempotencyConfig(enabled_methods=["post", "put"]).enabled_methods
            ['POST', 'PUT']
        """
        if isinstance(v, str):
            # Comma-separated string (from environment variables)
            v = [method.strip() for method in v.split(",") if method.strip()]

        if not isinstance(v, (list, tuple, set, frozenset)):
            raise ValueError("enabled_methods must be a list or comma-separated string")

        methods = [method.upper() for method in v]

        invalid_methods = set(methods) - VALID_HTTP_METHODS
        if invalid_methods:
            raise ValueError(
                f"Invalid HTTP methods: {', '.join(sorted(invalid_methods))}. "
                f"Valid methods are: {', '.join(sorted(VALID_HTTP_METHODS))}"
            )

        return methods

    @field_validator("header_name")
    @classmethod
    def validate_header_name(cls, v: str) -> str:
        """Validate the header name is not blank.

        Raises:
            ValueError: If the header name is empty or whitespace.
        """
        v = v.strip()
        if not v:
            raise ValueError("header_name must not be empty")
        return v

    @field_validator("ttl_seconds")
    @classmethod
    def validate_ttl_seconds(cls, v: int) -> int:
        """Validate TTL is within acceptable range.

        Raises:
            ValueError: If TTL is not between 1 and 604800 (7 days).
        """
        if not (1 <= v <= 604800):
            raise ValueError(f"ttl_seconds must be between 1 and 604800 (7 days), got {v}")
        return v

    @field_validator("max_entries", "cleanup_interval_seconds")
    @classmethod
    def validate_positive(cls, v: int, info: Any) -> int:
        """Validate sizing and interval knobs are positive."""
        if v < 1:
            raise ValueError(f"{info.field_name} must be >= 1, got {v}")
        return v

    @property
    def ttl(self) -> timedelta:
        """The TTL as a ``timedelta``."""
        return timedelta(seconds=self.ttl_seconds)

    def applies_to(self, method: str) -> bool:
        """Return True if requests with ``method`` go through the protocol.

        Example:
            >>> IdempotencyConfig().applies_to("post")
            True
            >>> IdempotencyConfig().applies_to("GET")
            False
        """
        return self.enabled and method.upper() in self.enabled_methods

    @classmethod
    def from_env(cls, prefix: str = "IDEMPOTENCY_") -> "IdempotencyConfig":
        """Create configuration from environment variables.

        Variable names are the uppercase field names with the prefix, e.g.
        ``IDEMPOTENCY_HEADER_NAME``. Missing variables keep their defaults.

        Args:
            prefix: Prefix for environment variable names.

        Returns:
            IdempotencyConfig instance populated from environment variables.

        Example:
            >>> import os
            >>> os.environ['IDEMPOTENCY_ENABLED_METHODS'] = 'POST,PUT'
            >>> os.environ['IDEMPOTENCY_STORAGE_ADAPTER'] = 'redis'
            >>> config = IdempotencyConfig.from_env()
            >>> config.enabled_methods
            ['POST', 'PUT']
        """
        config_dict: dict[str, Any] = {}

        # Lists stay comma-separated strings, the validators split them
        field_types = {
            "enabled": bool,
            "header_name": str,
            "enabled_methods": list,
            "ttl_seconds": int,
            "max_entries": int,
            "storage_adapter": str,
            "key_prefix": str,
            "await_store_writes": bool,
            "cleanup_interval_seconds": int,
        }

        for field_name, field_type in field_types.items():
            env_var = f"{prefix}{field_name.upper()}"
            env_value = os.environ.get(env_var)

            if env_value is not None:
                if field_type is int:
                    config_dict[field_name] = int(env_value)
                elif field_type is bool:
                    config_dict[field_name] = env_value.strip().lower() in {"1", "true", "yes", "on"}
                else:
                    config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "IdempotencyConfig":
        """Create configuration from a dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)
