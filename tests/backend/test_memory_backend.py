"""Tests for the in-memory provisioning backend."""

import pytest

from acr_platform.backend import InMemoryBackend
from acr_platform.exceptions import PermanentBackendError, TransientBackendError
from acr_platform.models import ProvisioningRequest
from acr_platform.provisioner import plan_request


class TestInMemoryBackend:
    """Tests for InMemoryBackend apply and destroy."""

    def test_apply_records_resources(self, memory_backend, sandbox_request):
        state = plan_request(sandbox_request)

        outputs = memory_backend.apply(state)

        recorded = memory_backend.resources[state.request_id]
        assert set(recorded) == {
            "testacrabc123",
            "testacrabc123-sandbox-sandbox-scope",
            "testacrabc123-sandbox-sandbox-token",
            "testacrabc123-pe",
        }
        assert outputs["registry_name"] == "testacrabc123"
        assert outputs["login_server"] == "testacrabc123.azurecr.io"
        assert outputs["registry_id"] == (
            "/subscriptions/test-sub/resourceGroups/test-rg/providers/"
            "Microsoft.ContainerRegistry/registries/testacrabc123"
        )
        assert outputs["scope_map_names"] == ["testacrabc123-sandbox-sandbox-scope"]
        assert outputs["private_endpoint_name"] == "testacrabc123-pe"

    def test_round_trip_leaves_nothing(self, memory_backend, sandbox_request):
        state = plan_request(sandbox_request)

        memory_backend.apply(state)
        memory_backend.destroy(state.handle)

        assert memory_backend.resources == {}
        assert memory_backend.calls == [
            ("apply", "testacrabc123-sandbox"),
            ("destroy", "testacrabc123-sandbox"),
        ]

    def test_apply_is_idempotent(self, memory_backend, sandbox_request):
        state = plan_request(sandbox_request)

        first = memory_backend.apply(state)
        second = memory_backend.apply(state)

        assert first == second
        assert len(memory_backend.resources) == 1

    def test_destroy_unknown_handle(self, memory_backend, sandbox_request):
        memory_backend.destroy(plan_request(sandbox_request).handle)

        assert memory_backend.resources == {}

    def test_failed_apply_leaves_partial_state(self, memory_backend, sandbox_request):
        state = plan_request(sandbox_request)
        memory_backend.fail_next("apply", PermanentBackendError("quota exceeded"))

        with pytest.raises(PermanentBackendError):
            memory_backend.apply(state)

        assert list(memory_backend.resources[state.request_id]) == ["testacrabc123"]

        memory_backend.destroy(state.handle)
        assert memory_backend.resources == {}

    def test_transient_failure_retried(self, sandbox_request):
        backend = InMemoryBackend(max_retries=2, initial_delay=0.0)
        backend.fail_next("apply", TransientBackendError("TooManyRequests"))

        outputs = backend.apply(plan_request(sandbox_request))

        assert outputs["registry_name"] == "testacrabc123"
        assert [call[0] for call in backend.calls] == ["apply", "apply"]

    def test_separate_requests_do_not_share_state(self, memory_backend, make_registry):
        first = plan_request(ProvisioningRequest(registry=make_registry(name="firstacr1")))
        second = plan_request(ProvisioningRequest(registry=make_registry(name="secondacr2")))

        memory_backend.apply(first)
        memory_backend.apply(second)
        memory_backend.destroy(first.handle)

        assert list(memory_backend.resources) == [second.request_id]
