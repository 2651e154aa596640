"""Validation, name derivation and provisioning for Azure Container Registry."""

from .desired_state import DesiredState, render_desired_state
from .exceptions import (
    AcrPlatformError,
    BackendError,
    ConfigError,
    NameConflictError,
    PermanentBackendError,
    TransientBackendError,
    ValidationError,
)
from .models import (
    ConflictPolicy,
    NetworkBinding,
    PromotionRequest,
    ProvisioningHandle,
    ProvisioningRequest,
    RegistryConfig,
    ScopeResource,
    Sku,
    Team,
)
from .naming import (
    derive_scope_resources,
    resolve_scope_resources,
    scope_map_names,
    token_names,
    unique_id,
)
from .provisioner import Provisioner, ProvisioningResult, plan_request
from .validation import check, validate, validate_promotion, validate_request

__version__ = "0.1.0"

__all__ = [
    "AcrPlatformError",
    "BackendError",
    "ConfigError",
    "ConflictPolicy",
    "DesiredState",
    "NameConflictError",
    "NetworkBinding",
    "PermanentBackendError",
    "PromotionRequest",
    "ProvisioningHandle",
    "ProvisioningRequest",
    "ProvisioningResult",
    "Provisioner",
    "RegistryConfig",
    "ScopeResource",
    "Sku",
    "Team",
    "TransientBackendError",
    "ValidationError",
    "check",
    "derive_scope_resources",
    "plan_request",
    "render_desired_state",
    "resolve_scope_resources",
    "scope_map_names",
    "token_names",
    "unique_id",
    "validate",
    "validate_promotion",
    "validate_request",
]
