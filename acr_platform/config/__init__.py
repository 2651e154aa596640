"""
Configuration management for the ACR platform.

Provides type-safe settings loading with support for multiple configuration
sources and priority-based merging, plus provisioning and promotion request file loading.
"""

from ..exceptions import ConfigError
from .loader import ConfigLoader, load_config, load_promotion, load_request
from .models import (
    DEFAULT_RETRYABLE_ERRORS,
    BackendKind,
    BackendSettings,
    PlatformSettings,
    ValidationSettings,
)

__all__ = [
    "DEFAULT_RETRYABLE_ERRORS",
    "BackendKind",
    "BackendSettings",
    "ConfigError",
    "ConfigLoader",
    "PlatformSettings",
    "ValidationSettings",
    "load_config",
    "load_promotion",
    "load_request",
]
