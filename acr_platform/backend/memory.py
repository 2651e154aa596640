"""In-memory provisioning backend.

Stands in for Azure Resource Manager when exercising the provisioning flow
without a subscription: it records the named resources of every applied
request and fabricates the IDs and outputs the terraform stacks return.
"""

import threading
from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Optional

import structlog

from ..desired_state import DesiredState
from ..exceptions import BackendError
from ..models import ProvisioningHandle
from .base import ProvisioningBackend
from .retry import retry_transient

logger = structlog.get_logger(__name__)

REGISTRY_PROVIDER = "Microsoft.ContainerRegistry/registries"
PRIVATE_ENDPOINT_PROVIDER = "Microsoft.Network/privateEndpoints"


class InMemoryBackend(ProvisioningBackend):
    """Keeps provisioned resources in a dict keyed by request identity."""

    def __init__(
        self,
        subscription_id: str = "00000000-0000-0000-0000-000000000000",
        max_retries: int = 1,
        initial_delay: float = 0.0,
        backoff: float = 2.0,
    ):
        self.subscription_id = subscription_id
        self._resources: Dict[str, Dict[str, str]] = {}
        self._failures: Dict[str, Deque[BackendError]] = defaultdict(deque)
        self._lock = threading.Lock()
        self._retry = retry_transient(max_retries, initial_delay, backoff)
        self.calls: List[tuple[str, str]] = []

    def fail_next(self, operation: str, error: BackendError) -> None:
        """Queue ``error`` to be raised by the next ``operation`` call.

        An apply failure is raised after the registry itself was recorded,
        leaving the request partially provisioned.
        """
        self._failures[operation].append(error)

    @property
    def resources(self) -> Dict[str, Dict[str, str]]:
        """Snapshot of recorded resources: request id -> {name: resource id}."""
        with self._lock:
            return {key: dict(value) for key, value in self._resources.items()}

    def apply(self, state: DesiredState) -> Dict[str, Any]:
        return self._retry(self._apply)(state)

    def destroy(self, handle: ProvisioningHandle) -> None:
        self._retry(self._destroy)(handle)

    def _apply(self, state: DesiredState) -> Dict[str, Any]:
        self.calls.append(("apply", state.request_id))
        registry = state.registry
        registry_id = state.network.registry_id if state.network else None
        registry_id = registry_id or self._resource_id(
            registry.resource_group, REGISTRY_PROVIDER, registry.name
        )

        with self._lock:
            recorded = self._resources.setdefault(state.request_id, {})
            recorded[registry.name] = registry_id
            self._raise_queued("apply")

            desired: Dict[str, str] = {registry.name: registry_id}
            for resource in state.scope_resources:
                desired[resource.scope_map_name] = f"{registry_id}/scopeMaps/{resource.scope_map_name}"
                desired[resource.token_name] = f"{registry_id}/tokens/{resource.token_name}"

            endpoint_id: Optional[str] = None
            if state.network is not None and state.private_endpoint_name:
                endpoint_id = self._resource_id(
                    state.network.resource_group or registry.resource_group,
                    PRIVATE_ENDPOINT_PROVIDER,
                    state.private_endpoint_name,
                )
                desired[state.private_endpoint_name] = endpoint_id

            # Reconcile: anything no longer desired is removed
            recorded.clear()
            recorded.update(desired)

        logger.info(f"Applied {state.request_id}: {len(desired)} resources")

        outputs: Dict[str, Any] = {
            "registry_name": registry.name,
            "resource_group_name": registry.resource_group,
            "login_server": registry.login_server,
            "registry_id": registry_id,
            "id": registry_id,
            "scope_map_names": state.scope_map_names,
            "token_names": state.token_names,
        }
        if endpoint_id is not None:
            outputs["private_endpoint_name"] = state.private_endpoint_name
            outputs["private_endpoint_id"] = endpoint_id
        return outputs

    def _destroy(self, handle: ProvisioningHandle) -> None:
        self.calls.append(("destroy", handle.request_id))
        with self._lock:
            self._raise_queued("destroy")
            removed = self._resources.pop(handle.request_id, {})
        logger.info(f"Destroyed {handle.request_id}: {len(removed)} resources")

    def _raise_queued(self, operation: str) -> None:
        queue = self._failures.get(operation)
        if queue:
            raise queue.popleft()

    def _resource_id(self, resource_group: str, provider: str, name: str) -> str:
        return (
            f"/subscriptions/{self.subscription_id}/resourceGroups/{resource_group}"
            f"/providers/{provider}/{name}"
        )
