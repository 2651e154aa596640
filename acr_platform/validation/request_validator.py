"""Validation of complete provisioning requests.

Checks the registry, its teams and its network binding, then derives the
scope resources and resolves name conflicts. Nothing here talks to a backend,
so a request that fails validation never causes partial resource creation.
"""

import logging
import re
from typing import List, Optional, Sequence

from ..exceptions import ValidationError
from ..models import (
    DEFAULT_ALLOWED_ENVIRONMENTS,
    ConflictPolicy,
    NetworkBinding,
    ProvisioningRequest,
    RegistryConfig,
    ScopeResource,
    Sku,
    Team,
)
from ..naming import derive_scope_resources, parse_resource_id, resolve_scope_resources
from . import registry_validator

logger = logging.getLogger(__name__)

TEAM_NAME_PATTERN = re.compile(r"^[a-z0-9]+(?:[._-][a-z0-9]+)*$")
TEAM_NAME_MAX_LENGTH = 64

SUBNET_TYPE = "Microsoft.Network/virtualNetworks/subnets"
PRIVATE_DNS_ZONE_TYPE = "Microsoft.Network/privateDnsZones"
REGISTRY_TYPE = "Microsoft.ContainerRegistry/registries"


def check_team(
    team: Team, allowed_environments: Sequence[str]
) -> Optional[ValidationError]:
    """Return the first rule ``team`` violates, or None."""
    if len(team.name) > TEAM_NAME_MAX_LENGTH or not TEAM_NAME_PATTERN.match(team.name):
        return ValidationError(
            "Team name must contain only lowercase letters, numbers, periods, "
            f"hyphens, and underscores, and be {TEAM_NAME_MAX_LENGTH} characters or less",
            field="teams.name",
            rule="INVALID_TEAM_NAME",
            context={"team": team.name},
        )

    if not team.allowed_environments:
        return ValidationError(
            f"Team {team.name} must allow at least one environment",
            field="teams.allowed_environments",
            rule="EMPTY_TEAM_ENVIRONMENTS",
            context={"team": team.name},
        )

    for env_tag in team.allowed_environments:
        if env_tag not in allowed_environments:
            return ValidationError(
                f"Team {team.name} environment {env_tag!r} is invalid. "
                f"Environment must be one of: {', '.join(allowed_environments)}",
                field="teams.allowed_environments",
                rule="INVALID_TEAM_ENVIRONMENT",
                context={"team": team.name},
            )

    return None


def validate_teams(
    teams: Sequence[Team],
    allowed_environments: Sequence[str] = DEFAULT_ALLOWED_ENVIRONMENTS,
) -> None:
    seen: set[str] = set()
    for team in teams:
        error = check_team(team, allowed_environments)
        if error is not None:
            raise error
        if team.name in seen:
            raise ValidationError(
                f"Team {team.name} is declared more than once",
                field="teams.name",
                rule="DUPLICATE_TEAM",
                context={"team": team.name},
            )
        seen.add(team.name)


def _is_resource_of_type(resource_id: str, resource_type: str) -> bool:
    parts = parse_resource_id(resource_id)
    return parts is not None and parts["type"].lower() == resource_type.lower()


def validate_network(network: NetworkBinding, registry: RegistryConfig) -> None:
    """
    Validate private endpoint wiring against the registry it targets.

    Raises:
        ValidationError: If an ID is malformed or the registry tier cannot
            host private endpoints
    """
    if not _is_resource_of_type(network.subnet_id, SUBNET_TYPE):
        raise ValidationError(
            f"Subnet ID must be a {SUBNET_TYPE} resource ID",
            field="network.subnet_id",
            rule="INVALID_SUBNET_ID",
        )

    for zone_id in sorted(network.private_dns_zone_ids):
        if not _is_resource_of_type(zone_id, PRIVATE_DNS_ZONE_TYPE):
            raise ValidationError(
                f"Private DNS zone ID must be a {PRIVATE_DNS_ZONE_TYPE} resource ID",
                field="network.private_dns_zone_ids",
                rule="INVALID_PRIVATE_DNS_ZONE_ID",
                context={"zone_id": zone_id},
            )

    if network.registry_id is not None:
        parts = parse_resource_id(network.registry_id)
        if (
            parts is None
            or parts["type"].lower() != REGISTRY_TYPE.lower()
            or parts["name"].lower() != registry.name.lower()
        ):
            raise ValidationError(
                f"Registry ID must be the {REGISTRY_TYPE} resource ID of {registry.name}",
                field="network.registry_id",
                rule="INVALID_REGISTRY_ID",
            )

    if registry.sku != Sku.PREMIUM.value:
        raise ValidationError(
            "Premium SKU is required for: private endpoints",
            field="sku",
            rule="PREMIUM_SKU_REQUIRED",
        )


def validate_request(
    request: ProvisioningRequest,
    allowed_environments: Sequence[str] = DEFAULT_ALLOWED_ENVIRONMENTS,
    conflict_policy: ConflictPolicy = ConflictPolicy.FAIL,
) -> List[ScopeResource]:
    """
    Validate a provisioning request and derive its scope resources.

    Args:
        request: The request to validate
        allowed_environments: Accepted environment tags
        conflict_policy: How to treat derived names claimed by several teams

    Returns:
        Resolved scope resources, in derivation order

    Raises:
        ValidationError: For the first violated rule
        NameConflictError: When derived names collide under ConflictPolicy.FAIL
    """
    registry_validator.validate(request.registry, allowed_environments)
    validate_teams(request.teams, allowed_environments)
    if request.network is not None:
        validate_network(request.network, request.registry)

    resources = derive_scope_resources(
        request.registry.name, request.registry.environment, request.teams
    )
    resolved = resolve_scope_resources(resources, conflict_policy)
    logger.debug(
        f"Request {request.request_id} validated: {len(resolved)} scope resources"
    )
    return resolved
