"""Provisioning backend interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict

from ..desired_state import DesiredState
from ..models import ProvisioningHandle


class ProvisioningBackend(ABC):
    """Creates and destroys the resources described by a desired state.

    Implementations own their state storage, keyed by request identity, and
    raise ``BackendError`` subclasses classified as transient or permanent.
    """

    @abstractmethod
    def apply(self, state: DesiredState) -> Dict[str, Any]:
        """Reconcile the backend with ``state`` and return its outputs."""

    @abstractmethod
    def destroy(self, handle: ProvisioningHandle) -> None:
        """Remove everything created for ``handle``."""
