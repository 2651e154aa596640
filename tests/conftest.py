from typing import Any

import pytest

from acr_platform.backend import InMemoryBackend
from acr_platform.models import NetworkBinding, ProvisioningRequest, RegistryConfig, Team

SUBNET_ID = (
    "/subscriptions/test-sub/resourceGroups/test-vnet-rg/providers/"
    "Microsoft.Network/virtualNetworks/test-vnet/subnets/test-subnet"
)
DNS_ZONE_ID = (
    "/subscriptions/test-sub/resourceGroups/test-dns-rg/providers/"
    "Microsoft.Network/privateDnsZones/privatelink.azurecr.io"
)


# ============================================================================
# Request Fixtures
# ============================================================================


@pytest.fixture
def make_registry():
    """Build a RegistryConfig with test defaults, overridable per field."""

    def _make(**overrides: Any) -> RegistryConfig:
        values: dict[str, Any] = {
            "name": "validacr123",
            "resource_group": "test-rg",
            "location": "East US",
            "environment": "dev",
            "sku": "Premium",
        }
        values.update(overrides)
        return RegistryConfig(**values)

    return _make


@pytest.fixture
def rbac_teams() -> list[Team]:
    """Two teams overlapping on the pr and dev environments."""
    return [
        Team(
            name="test-team",
            principal_id="11111111-1111-1111-1111-111111111111",
            allowed_environments=["pr", "dev"],
        ),
        Team(
            name="prod-team",
            principal_id="22222222-2222-2222-2222-222222222222",
            allowed_environments=["pr", "dev", "production"],
        ),
    ]


@pytest.fixture
def sandbox_request(make_registry) -> ProvisioningRequest:
    """A sandbox registry with one team and private networking."""
    return ProvisioningRequest(
        registry=make_registry(name="testacrabc123", environment="sandbox"),
        teams=[
            Team(
                name="integration-team",
                principal_id="11111111-1111-1111-1111-111111111111",
                allowed_environments=["sandbox"],
            )
        ],
        network=NetworkBinding(subnet_id=SUBNET_ID, private_dns_zone_ids=[DNS_ZONE_ID]),
        domain_name="brightcloud.test",
    )


@pytest.fixture
def memory_backend() -> InMemoryBackend:
    """Provide an in-memory backend with a fixed subscription."""
    return InMemoryBackend(subscription_id="test-sub")
