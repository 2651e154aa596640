"""Name derivation for registry-scoped resources.

Every dependent resource name is a pure function of the request, so
re-applying an identical request always targets the same resources.
"""

import logging
import re
import secrets
import string
from typing import Iterable, List, Optional, Sequence

from .exceptions import NameConflictError
from .models import ConflictPolicy, ScopeResource, Team

logger = logging.getLogger(__name__)

SCOPE_MAP_SUFFIX = "scope"
TOKEN_SUFFIX = "token"

_UNIQUE_ID_ALPHABET = string.ascii_letters + string.digits

_RESOURCE_ID_PATTERN = re.compile(
    r"^/subscriptions/(?P<subscription>[^/]+)"
    r"/resourceGroups/(?P<resource_group>[^/]+)"
    r"/providers/(?P<provider>[^/]+)"
    r"/(?P<path>.+)$",
    re.IGNORECASE,
)


def scope_map_name(registry_name: str, environment: str, env_tag: str) -> str:
    return f"{registry_name}-{environment}-{env_tag}-{SCOPE_MAP_SUFFIX}"


def token_name(registry_name: str, environment: str, env_tag: str) -> str:
    return f"{registry_name}-{environment}-{env_tag}-{TOKEN_SUFFIX}"


def private_endpoint_name(registry_name: str) -> str:
    return f"{registry_name}-pe"


def private_service_connection_name(registry_name: str) -> str:
    return f"{registry_name}-psc"


def derive_scope_resources(
    registry_name: str, environment: str, teams: Sequence[Team]
) -> List[ScopeResource]:
    """Expand teams and their allowed environments into scope maps and tokens.

    Teams are walked in input order and each team's environments in the order
    given, one ``ScopeResource`` per pair. No deduplication happens here; use
    ``resolve_scope_resources`` to deal with pairs that share a name.

    Args:
        registry_name: Name of the registry the scope maps belong to
        environment: Environment of the registry deployment
        teams: Teams with their allowed environment tags

    Returns:
        Derived resources, empty when there are no teams
    """
    return [
        ScopeResource(
            team=team.name,
            environment=env_tag,
            scope_map_name=scope_map_name(registry_name, environment, env_tag),
            token_name=token_name(registry_name, environment, env_tag),
        )
        for team in teams
        for env_tag in team.allowed_environments
    ]


def resolve_scope_resources(
    resources: Iterable[ScopeResource],
    policy: ConflictPolicy = ConflictPolicy.FAIL,
) -> List[ScopeResource]:
    """Resolve derived resources that collide on name.

    With ``ConflictPolicy.FAIL`` the first collision raises
    ``NameConflictError``. With ``ConflictPolicy.MERGE`` the first resource
    claiming a name is kept and later ones share it.
    """
    seen: dict[str, ScopeResource] = {}
    resolved: List[ScopeResource] = []

    for resource in resources:
        existing = seen.get(resource.scope_map_name)
        if existing is None:
            seen[resource.scope_map_name] = resource
            resolved.append(resource)
            continue

        if policy == ConflictPolicy.MERGE:
            logger.info(
                f"Sharing {resource.scope_map_name} between teams "
                f"{existing.team} and {resource.team}"
            )
            continue

        raise NameConflictError(
            f"Derived name {resource.scope_map_name} is claimed by "
            f"team {existing.team} ({existing.environment}) and "
            f"team {resource.team} ({resource.environment})",
            name=resource.scope_map_name,
            first_owner=existing.team,
            second_owner=resource.team,
        )

    return resolved


def scope_map_names(resources: Iterable[ScopeResource]) -> List[str]:
    return [resource.scope_map_name for resource in resources]


def token_names(resources: Iterable[ScopeResource]) -> List[str]:
    return [resource.token_name for resource in resources]


def parse_resource_id(resource_id: str) -> Optional[dict[str, str]]:
    """Split an ARM resource ID into its parts.

    Returns:
        Dict with subscription, resource_group, provider, type and name keys
        (type is the full ``provider/type[/child-type]`` path), or None if
        the ID is malformed.
    """
    match = _RESOURCE_ID_PATTERN.match(resource_id or "")
    if not match:
        return None

    segments = match.group("path").strip("/").split("/")
    if len(segments) < 2 or len(segments) % 2 != 0:
        return None

    types = segments[0::2]
    names = segments[1::2]
    return {
        "subscription": match.group("subscription"),
        "resource_group": match.group("resource_group"),
        "provider": match.group("provider"),
        "type": "/".join([match.group("provider"), *types]),
        "name": names[-1],
    }


def unique_id(length: int = 6) -> str:
    """Return a random base-62 suffix for isolating parallel requests."""
    return "".join(secrets.choice(_UNIQUE_ID_ALPHABET) for _ in range(length))
