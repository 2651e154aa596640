"""Provisioning orchestration.

Sequences validation, name derivation and the backend calls for one request:

    request -> validate_request -> render_desired_state -> backend.apply

Validation always completes before the backend is touched.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

import structlog

from .backend.base import ProvisioningBackend
from .config.models import PlatformSettings
from .desired_state import DesiredState, render_desired_state
from .exceptions import AcrPlatformError, BackendError, wrap_backend_exception
from .models import ProvisioningHandle, ProvisioningRequest
from .validation import validate_request

logger = structlog.get_logger(__name__)


@dataclass
class ProvisioningResult:
    """Outcome of applying one request."""

    state: DesiredState
    outputs: Dict[str, Any] = field(default_factory=dict)

    @property
    def handle(self) -> ProvisioningHandle:
        return self.state.handle

    def output(self, name: str) -> Any:
        """Return a backend output, raising KeyError when it is missing."""
        return self.outputs[name]


def plan_request(
    request: ProvisioningRequest, settings: Optional[PlatformSettings] = None
) -> DesiredState:
    """
    Validate a request and render its desired state without applying it.

    Raises:
        ValidationError: If the request violates a rule
        NameConflictError: If derived names collide under the fail policy
    """
    validation = (settings or PlatformSettings()).validation
    resources = validate_request(
        request,
        allowed_environments=validation.allowed_environments,
        conflict_policy=validation.conflict_policy,
    )
    return render_desired_state(request, resources)


class Provisioner:
    """Validates requests and hands their desired state to a backend."""

    def __init__(
        self,
        backend: ProvisioningBackend,
        settings: Optional[PlatformSettings] = None,
    ):
        self.backend = backend
        self.settings = settings or PlatformSettings()

    def plan(self, request: ProvisioningRequest) -> DesiredState:
        """Validate a request and render its desired state; see ``plan_request``."""
        return plan_request(request, self.settings)

    def apply(self, request: ProvisioningRequest) -> ProvisioningResult:
        """
        Validate and apply a request.

        Resources created before a backend failure stay in place until
        ``destroy`` is called for the request's handle.

        Raises:
            ValidationError: If the request is invalid (no backend call is made)
            NameConflictError: If derived names collide
            BackendError: If the backend failed
        """
        state = self.plan(request)
        logger.info(
            f"Provisioning {state.request_id}: "
            f"{len(state.scope_resources)} scope maps, "
            f"network={'yes' if state.network else 'no'}"
        )
        try:
            outputs = self.backend.apply(state)
        except AcrPlatformError:
            raise
        except Exception as e:
            raise wrap_backend_exception(
                e,
                self.settings.backend.retryable_errors,
                operation="apply",
                context={"request_id": state.request_id},
            ) from e
        return ProvisioningResult(state=state, outputs=outputs)

    def destroy(self, handle: ProvisioningHandle) -> None:
        """Destroy everything the backend holds for ``handle``."""
        logger.info(f"Destroying {handle.request_id}")
        try:
            self.backend.destroy(handle)
        except AcrPlatformError:
            raise
        except Exception as e:
            raise wrap_backend_exception(
                e,
                self.settings.backend.retryable_errors,
                operation="destroy",
                context={"request_id": handle.request_id},
            ) from e

    @contextmanager
    def provisioned(self, request: ProvisioningRequest) -> Iterator[ProvisioningResult]:
        """
        Apply a request for the duration of a ``with`` block.

        The request is destroyed on exit, including when apply itself failed
        part-way. A destroy failure during cleanup is logged and does not
        replace the error that ended the block.
        """
        state = self.plan(request)
        try:
            result = self.apply(request)
            yield result
        finally:
            self._cleanup(state.handle)

    def _cleanup(self, handle: ProvisioningHandle) -> None:
        try:
            self.destroy(handle)
        except BackendError as e:
            logger.error(
                f"Cleanup of {handle.request_id} failed, resources may remain: {e}"
            )
