"""Tests for team, network and whole-request validation."""

import pytest

from acr_platform.exceptions import NameConflictError, ValidationError
from acr_platform.models import ConflictPolicy, NetworkBinding, ProvisioningRequest, Team
from acr_platform.validation import validate_network, validate_request, validate_teams

SUBNET_ID = (
    "/subscriptions/test-sub/resourceGroups/test-vnet-rg/providers/"
    "Microsoft.Network/virtualNetworks/test-vnet/subnets/test-subnet"
)
DNS_ZONE_ID = (
    "/subscriptions/test-sub/resourceGroups/test-dns-rg/providers/"
    "Microsoft.Network/privateDnsZones/privatelink.azurecr.io"
)


def make_team(name="test-team", environments=("dev",)):
    return Team(
        name=name,
        principal_id="11111111-1111-1111-1111-111111111111",
        allowed_environments=list(environments),
    )


class TestTeamValidation:
    """Tests for validate_teams."""

    @pytest.mark.parametrize("name", ["Team", "team name", "-team", "team-", "a" * 65])
    def test_invalid_team_names(self, name):
        with pytest.raises(ValidationError) as exc_info:
            validate_teams([make_team(name=name)])

        assert exc_info.value.rule == "INVALID_TEAM_NAME"

    @pytest.mark.parametrize("name", ["team", "test-team", "team.a_b", "a" * 64])
    def test_valid_team_names(self, name):
        validate_teams([make_team(name=name)])

    def test_empty_environments(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_teams([make_team(environments=())])

        assert exc_info.value.rule == "EMPTY_TEAM_ENVIRONMENTS"

    def test_unknown_team_environment(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_teams([make_team(environments=("dev", "staging"))])

        assert exc_info.value.rule == "INVALID_TEAM_ENVIRONMENT"
        assert "Environment must be one of" in exc_info.value.message

    def test_duplicate_team(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_teams([make_team(), make_team(environments=("pr",))])

        assert exc_info.value.rule == "DUPLICATE_TEAM"

    def test_no_teams(self):
        validate_teams([])


class TestNetworkValidation:
    """Tests for validate_network."""

    def test_valid_binding(self, make_registry):
        validate_network(
            NetworkBinding(subnet_id=SUBNET_ID, private_dns_zone_ids=[DNS_ZONE_ID]),
            make_registry(),
        )

    def test_binding_without_dns_zones(self, make_registry):
        validate_network(NetworkBinding(subnet_id=SUBNET_ID), make_registry())

    def test_invalid_subnet(self, make_registry):
        with pytest.raises(ValidationError) as exc_info:
            validate_network(NetworkBinding(subnet_id="not-a-subnet"), make_registry())

        assert exc_info.value.rule == "INVALID_SUBNET_ID"

    def test_dns_zone_of_wrong_type(self, make_registry):
        with pytest.raises(ValidationError) as exc_info:
            validate_network(
                NetworkBinding(subnet_id=SUBNET_ID, private_dns_zone_ids=[SUBNET_ID]),
                make_registry(),
            )

        assert exc_info.value.rule == "INVALID_PRIVATE_DNS_ZONE_ID"

    def test_registry_id_must_match_name(self, make_registry):
        registry_id = (
            "/subscriptions/test-sub/resourceGroups/test-rg/providers/"
            "Microsoft.ContainerRegistry/registries/otheracr1"
        )
        with pytest.raises(ValidationError) as exc_info:
            validate_network(
                NetworkBinding(subnet_id=SUBNET_ID, registry_id=registry_id),
                make_registry(),
            )

        assert exc_info.value.rule == "INVALID_REGISTRY_ID"

    def test_registry_id_for_same_registry(self, make_registry):
        registry_id = (
            "/subscriptions/test-sub/resourceGroups/test-rg/providers/"
            "Microsoft.ContainerRegistry/registries/validacr123"
        )
        validate_network(
            NetworkBinding(subnet_id=SUBNET_ID, registry_id=registry_id), make_registry()
        )

    def test_private_endpoint_requires_premium(self, make_registry):
        with pytest.raises(ValidationError) as exc_info:
            validate_network(NetworkBinding(subnet_id=SUBNET_ID), make_registry(sku="Standard"))

        assert exc_info.value.rule == "PREMIUM_SKU_REQUIRED"


class TestValidateRequest:
    """Tests for validate_request."""

    def test_minimal_request(self, make_registry):
        """A registry without teams or network yields no scope resources."""
        request = ProvisioningRequest(registry=make_registry())

        assert validate_request(request) == []

    def test_sandbox_request(self, sandbox_request):
        resources = validate_request(sandbox_request)

        assert [r.scope_map_name for r in resources] == [
            "testacrabc123-sandbox-sandbox-scope"
        ]
        assert [r.token_name for r in resources] == ["testacrabc123-sandbox-sandbox-token"]

    def test_registry_rules_run_first(self, make_registry):
        """A registry violation is reported before team problems."""
        request = ProvisioningRequest(
            registry=make_registry(name="acr"),
            teams=[make_team(name="Bad Team")],
        )

        with pytest.raises(ValidationError) as exc_info:
            validate_request(request)

        assert exc_info.value.rule == "INVALID_NAME_LENGTH"

    def test_overlapping_teams_fail_closed(self, make_registry, rbac_teams):
        request = ProvisioningRequest(registry=make_registry(name="testacrXXX"), teams=rbac_teams)

        with pytest.raises(NameConflictError) as exc_info:
            validate_request(request)

        assert exc_info.value.name == "testacrXXX-dev-pr-scope"
        assert exc_info.value.first_owner == "test-team"
        assert exc_info.value.second_owner == "prod-team"

    def test_overlapping_teams_merge(self, make_registry, rbac_teams):
        request = ProvisioningRequest(registry=make_registry(name="testacrXXX"), teams=rbac_teams)

        resources = validate_request(request, conflict_policy=ConflictPolicy.MERGE)

        assert [r.scope_map_name for r in resources] == [
            "testacrXXX-dev-pr-scope",
            "testacrXXX-dev-dev-scope",
            "testacrXXX-dev-production-scope",
        ]
