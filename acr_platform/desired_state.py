"""Desired state rendering for provisioning backends.

A ``DesiredState`` is the flat, fully named description of everything one
request provisions. Backends diff it against what exists; nothing here
inspects actual cloud state.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .models import (
    NetworkBinding,
    ProvisioningHandle,
    ProvisioningRequest,
    RegistryConfig,
    ScopeResource,
    Team,
)
from .naming import (
    private_endpoint_name,
    private_service_connection_name,
    scope_map_names,
    token_names,
)


@dataclass(frozen=True)
class DesiredState:
    """Resolved resources for one provisioning request."""

    request_id: str
    registry: RegistryConfig
    teams: Sequence[Team] = ()
    scope_resources: Sequence[ScopeResource] = ()
    network: Optional[NetworkBinding] = None
    domain_name: Optional[str] = None
    private_endpoint_name: Optional[str] = None
    private_service_connection_name: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)

    @property
    def handle(self) -> ProvisioningHandle:
        return ProvisioningHandle(request_id=self.request_id)

    @property
    def scope_map_names(self) -> List[str]:
        return scope_map_names(self.scope_resources)

    @property
    def token_names(self) -> List[str]:
        return token_names(self.scope_resources)

    def to_tfvars(self) -> Dict[str, Any]:
        """Render the input variables of the registry environment stack.

        Keys match the terraform variables of the ``environments/*`` stacks;
        optional inputs are omitted so the module defaults apply.
        """
        registry = self.registry
        tfvars: Dict[str, Any] = {
            "registry_name": registry.name,
            "resource_group_name": registry.resource_group,
            "location": registry.location,
            "environment": registry.environment,
            "sku": registry.sku,
            "admin_enabled": registry.admin_enabled,
            "public_network_access": registry.public_network_access,
            "network_rule_bypass_option": registry.network_rule_bypass_option,
            "quarantine_policy_enabled": registry.quarantine_policy_enabled,
            "trust_policy_enabled": registry.trust_policy_enabled,
            "retention_policy_enabled": registry.retention_policy_enabled,
            "zone_redundancy_enabled": registry.zone_redundancy_enabled,
            "export_policy_enabled": registry.export_policy_enabled,
            "anonymous_pull_enabled": registry.anonymous_pull_enabled,
            "data_endpoint_enabled": registry.data_endpoint_enabled,
            "teams": [
                {
                    "name": team.name,
                    "principal_id": str(team.principal_id),
                    "allowed_environments": list(team.allowed_environments),
                }
                for team in self.teams
            ],
            "scope_maps": self._scope_map_vars(),
        }
        if registry.retention_policy_enabled:
            tfvars["retention_policy_days"] = registry.retention_policy_days
        if self.tags:
            tfvars["tags"] = dict(self.tags)
        if self.domain_name:
            tfvars["domain_name"] = self.domain_name

        if self.network is not None:
            tfvars["subnet_id"] = self.network.subnet_id
            tfvars["private_dns_zone_ids"] = sorted(self.network.private_dns_zone_ids)
            if self.network.registry_id:
                tfvars["registry_id"] = self.network.registry_id
            if self.network.resource_group:
                tfvars["network_resource_group_name"] = self.network.resource_group
            if self.network.location:
                tfvars["network_location"] = self.network.location

        return tfvars

    def _scope_map_vars(self) -> List[Dict[str, str]]:
        principals = {team.name: str(team.principal_id) for team in self.teams}
        return [
            {
                "name": resource.scope_map_name,
                "token_name": resource.token_name,
                "team": resource.team,
                "principal_id": principals.get(resource.team, ""),
                "environment": resource.environment,
            }
            for resource in self.scope_resources
        ]


def render_desired_state(
    request: ProvisioningRequest, scope_resources: Sequence[ScopeResource]
) -> DesiredState:
    """Build the desired state of a validated request.

    Args:
        request: A request that already passed ``validate_request``
        scope_resources: The resolved scope resources for that request
    """
    registry_name = request.registry.name
    has_network = request.network is not None
    return DesiredState(
        request_id=request.request_id,
        registry=request.registry,
        teams=tuple(request.teams),
        scope_resources=tuple(scope_resources),
        network=request.network,
        domain_name=request.domain_name,
        private_endpoint_name=private_endpoint_name(registry_name) if has_network else None,
        private_service_connection_name=(
            private_service_connection_name(registry_name) if has_network else None
        ),
        tags=dict(request.registry.tags),
    )
