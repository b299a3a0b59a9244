"""Configuration module for the concurrent checkout tester.

This module provides the TesterConfig class. It is constructed once at startup
and passed by reference into the orchestrator, the test-order manager and the
admin surface. Core logic never reads configuration from the environment itself.

Example:
    Basic usage with defaults:

        >>> config = TesterConfig()
        >>> config.enabled
        False
        >>> config.request_count
        5

    Loading from environment:

        >>> import os
        >>> os.environ['CCT_ENABLED'] = 'true'
        >>> os.environ['CCT_REQUEST_COUNT'] = '10'
        >>> config = TesterConfig.from_env()
        >>> config.request_count
        10
"""

import os
from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator

# Hard ceiling for max_request_count, independent of configuration
REQUEST_COUNT_CEILING = 1000

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


class TesterConfig(BaseModel):
    """Configuration for the concurrent checkout tester.

    Attributes:
        enabled: Master switch. When False no orders are tagged and the
            concurrent test trigger is unavailable. Default is False.
        request_count: Number of identical checkout requests fired per run.
            Must be >= 1. Default is 5.
        max_request_count: Upper bound applied to any run's concurrency.
            Runs asking for more are capped to this value. Must be between
            1 and 1000. Default is 50.
        request_timeout_seconds: Independent deadline for each request.
            Must be in (0, 300]. Default is 30.
        fix_enabled: Whether the external duplicate-order lock is active on
            the target. Owned by that component; read here only for display.
        operator_token: Shared secret accepted by the token caller resolver
            of the admin surface. None disables token authentication.

    Note:
        This class is immutable (frozen=True). Create a new instance if you
        need different settings.
    """

    __test__: ClassVar[bool] = False

    enabled: bool = Field(
        default=False,
        description="Enable order tagging and the concurrent test trigger",
    )
    request_count: int = Field(
        default=5,
        description="Number of concurrent checkout requests per run (>= 1)",
    )
    max_request_count: int = Field(
        default=50,
        description="Cap applied to the concurrency of any run (1-1000)",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        description="Per-request deadline in seconds (0-300]",
    )
    fix_enabled: bool = Field(
        default=False,
        description="Whether the external duplicate-order fix is active (display only)",
    )
    operator_token: str | None = Field(
        default=None,
        description="Shared secret for operator access to the admin surface",
    )

    model_config = {"frozen": True}

    @field_validator("enabled", "fix_enabled", mode="before")
    @classmethod
    def validate_flag(cls, v: Any) -> Any:
        """Accept the usual string spellings of a boolean flag.

        Args:
            v: Boolean or string flag value.

        Returns:
            The boolean value, or v unchanged for pydantic to validate.

        Raises:
            ValueError: If a string is not a recognized boolean spelling.
        """
        if isinstance(v, str):
            lowered = v.strip().lower()
            if lowered in _TRUTHY:
                return True
            if lowered in _FALSY:
                return False
            raise ValueError(f"Invalid boolean flag: {v!r}")
        return v

    @field_validator("request_count")
    @classmethod
    def validate_request_count(cls, v: int) -> int:
        """Validate that at least one request is fired per run.

        Raises:
            ValueError: If request_count is less than 1.
        """
        if v < 1:
            raise ValueError(f"request_count must be >= 1, got {v}")
        return v

    @field_validator("max_request_count")
    @classmethod
    def validate_max_request_count(cls, v: int) -> int:
        """Validate the concurrency cap.

        Raises:
            ValueError: If max_request_count is not between 1 and 1000.
        """
        if not (1 <= v <= REQUEST_COUNT_CEILING):
            raise ValueError(
                f"max_request_count must be between 1 and {REQUEST_COUNT_CEILING}, got {v}"
            )
        return v

    @field_validator("request_timeout_seconds")
    @classmethod
    def validate_request_timeout_seconds(cls, v: float) -> float:
        """Validate the per-request deadline.

        Raises:
            ValueError: If the timeout is not in (0, 300].
        """
        if not (0 < v <= 300):
            raise ValueError(f"request_timeout_seconds must be in (0, 300], got {v}")
        return v

    @classmethod
    def from_env(cls, prefix: str = "CCT_") -> "TesterConfig":
        """Create configuration from environment variables.

        Variable names are the uppercase field names with the prefix, for
        example CCT_ENABLED, CCT_REQUEST_COUNT or CCT_FIX_ENABLED.

        Args:
            prefix: Prefix for environment variable names. Default is "CCT_".

        Returns:
            TesterConfig populated from the environment. Missing variables use
            the model defaults.
        """
        config_dict: dict[str, Any] = {}

        field_types = {
            "enabled": bool,
            "request_count": int,
            "max_request_count": int,
            "request_timeout_seconds": float,
            "fix_enabled": bool,
            "operator_token": str,
        }

        for field_name, field_type in field_types.items():
            env_value = os.environ.get(f"{prefix}{field_name.upper()}")
            if env_value is None:
                continue
            if field_type is int:
                config_dict[field_name] = int(env_value)
            elif field_type is float:
                config_dict[field_name] = float(env_value)
            else:
                # Flags are normalized by validate_flag
                config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "TesterConfig":
        """Create configuration from a dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)
