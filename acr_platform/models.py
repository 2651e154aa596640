"""
Domain models for ACR provisioning requests.

The models only enforce structure (types, required fields, UUIDs). Business
rules such as name length, allowed environments and SKU values are checked by
the ordered guard functions in ``acr_platform.validation`` so that each
violation surfaces with its own rule code and message.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ALLOWED_ENVIRONMENTS = (
    "sandbox",
    "pr",
    "dev",
    "perf",
    "nonprod",
    "preproduction",
    "production",
)


class Sku(str, Enum):
    """Container registry service tiers."""

    BASIC = "Basic"
    STANDARD = "Standard"
    PREMIUM = "Premium"


class NetworkRuleBypass(str, Enum):
    """Trusted-service bypass options for registry network rules."""

    AZURE_SERVICES = "AzureServices"
    NONE = "None"


class ConflictPolicy(str, Enum):
    """How colliding derived names are handled."""

    FAIL = "fail"
    MERGE = "merge"


class RegistryConfig(BaseModel):
    """Container registry settings for one provisioning request."""

    name: str = Field(description="Registry name (5-50 alphanumeric characters)")
    resource_group: str = Field(description="Resource group holding the registry")
    location: str = Field(description="Azure region, e.g. 'East US'")
    sku: str = Field(default=Sku.PREMIUM.value, description="Basic, Standard or Premium")
    environment: str = Field(default="dev", description="Environment tag")

    admin_enabled: bool = False
    public_network_access: bool = True
    network_rule_bypass_option: str = NetworkRuleBypass.AZURE_SERVICES.value
    quarantine_policy_enabled: bool = False
    trust_policy_enabled: bool = False
    retention_policy_enabled: bool = False
    retention_policy_days: int = Field(
        default=7,
        description="Days to keep untagged manifests; checked only when retention is enabled",
    )
    zone_redundancy_enabled: bool = False
    export_policy_enabled: bool = True
    anonymous_pull_enabled: bool = False
    data_endpoint_enabled: bool = False

    tags: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def login_server(self) -> str:
        return f"{self.name.lower()}.azurecr.io"


class Team(BaseModel):
    """A team granted repository-scoped access in some environments."""

    name: str
    principal_id: UUID
    allowed_environments: tuple[str, ...] = Field(
        description="Environment tags the team may access, in order",
    )

    model_config = ConfigDict(extra="forbid", frozen=True)


class NetworkBinding(BaseModel):
    """Private endpoint wiring for a registry.

    ``registry_id`` is only set when binding to an existing registry; otherwise
    the endpoint targets the registry created by the same request.
    """

    subnet_id: str
    private_dns_zone_ids: frozenset[str] = Field(default_factory=frozenset)
    registry_id: Optional[str] = None
    resource_group: Optional[str] = None
    location: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class PromotionRequest(BaseModel):
    """Promotion of one image tag from a source registry to a target registry.

    Images keep their name across environments. ``target_image`` is accepted
    only so that a rename attempt is reported instead of silently ignored.
    """

    source_registry: str = Field(description="Login server of the source registry")
    target_registry: str = Field(description="Login server of the target registry")
    source_environment: str
    target_environment: str
    team_name: str
    image_name: str
    source_tag: str
    target_tag: Optional[str] = Field(default=None, description="Defaults to the source tag")
    target_image: Optional[str] = None
    dry_run: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def resolved_target_tag(self) -> str:
        return self.target_tag if self.target_tag is not None else self.source_tag


class ProvisioningRequest(BaseModel):
    """Everything needed to provision one registry environment."""

    registry: RegistryConfig
    teams: tuple[Team, ...] = ()
    network: Optional[NetworkBinding] = None
    domain_name: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def request_id(self) -> str:
        """Identity keying the backend's state for this request."""
        return f"{self.registry.name}-{self.registry.environment}"


@dataclass(frozen=True)
class ScopeResource:
    """A scope map and its token, derived for one team/environment pair."""

    team: str
    environment: str
    scope_map_name: str
    token_name: str


@dataclass(frozen=True)
class ProvisioningHandle:
    """Opaque reference to a request's state held by a backend."""

    request_id: str
