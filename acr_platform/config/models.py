"""
Configuration models for the ACR platform.

Provides type-safe configuration using pydantic with validation,
defaults, and schema enforcement.
"""

from enum import Enum
from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from ..models import DEFAULT_ALLOWED_ENVIRONMENTS, ConflictPolicy

# Transient failures seen from terraform against Azure Resource Manager.
DEFAULT_RETRYABLE_ERRORS = [
    r"TooManyRequests",
    r"\b429\b",
    r"throttl",
    r"RetryableError",
    r"connection reset by peer",
    r"TLS handshake timeout",
    r"context deadline exceeded",
    r"timeout while waiting for state",
    r"Failed to load state",
    r"Error installing provider",
    r"could not query provider registry",
    r"i/o timeout",
]


def _split_csv(value: Any) -> Any:
    """Accept ``a,b,c`` strings, as set from environment variables, for list settings."""
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


StrList = Annotated[list[str], BeforeValidator(_split_csv)]


class BackendKind(str, Enum):
    """Available provisioning backends."""

    TERRAFORM = "terraform"
    MEMORY = "memory"


class ValidationSettings(BaseModel):
    """Validation settings for provisioning requests."""

    allowed_environments: StrList = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_ENVIRONMENTS),
        description="Environment tags accepted for registries and teams",
    )
    conflict_policy: ConflictPolicy = Field(
        default=ConflictPolicy.FAIL,
        description="fail: reject colliding derived names; merge: share them",
    )

    @field_validator("allowed_environments")
    @classmethod
    def validate_allowed_environments(cls, v: list[str]) -> list[str]:
        """Require a non-empty list without duplicates."""
        if not v:
            raise ValueError("allowed_environments cannot be empty")
        if len(v) != len(set(v)):
            raise ValueError("Duplicate entries in allowed_environments")
        return v

    model_config = ConfigDict(extra="forbid")


class BackendSettings(BaseModel):
    """Provisioning backend settings."""

    kind: BackendKind = Field(
        default=BackendKind.TERRAFORM,
        description="Backend used by apply and destroy",
    )
    module_dir: Path = Field(
        default=Path("environments/sandbox"),
        description="Terraform root module copied for every request",
    )
    work_dir: Path = Field(
        default=Path(".acr-platform/work"),
        description="Directory holding one working copy per request",
    )
    max_retries: Annotated[int, Field(ge=1, le=10)] = Field(
        default=3,
        description="Attempts for an operation failing transiently",
    )
    initial_delay: Annotated[float, Field(ge=0.0)] = Field(
        default=5.0,
        description="Seconds before the first retry",
    )
    backoff: Annotated[float, Field(ge=1.0)] = Field(
        default=2.0,
        description="Multiplier applied to the delay after each retry",
    )
    retryable_errors: StrList = Field(
        default_factory=lambda: list(DEFAULT_RETRYABLE_ERRORS),
        description="Regular expressions marking a failure as transient",
    )

    model_config = ConfigDict(extra="forbid")


class PlatformSettings(BaseModel):
    """Root configuration for the ACR platform."""

    log_level: str = Field(default="INFO", description="Logging level")
    validation: ValidationSettings = Field(
        default_factory=ValidationSettings,
        description="Request validation settings",
    )
    backend: BackendSettings = Field(
        default_factory=BackendSettings,
        description="Provisioning backend settings",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the logging level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    model_config = ConfigDict(extra="forbid")
