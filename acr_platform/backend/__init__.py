"""Provisioning backends for desired states."""

from typing import Dict, Optional

from ..config.models import BackendKind, BackendSettings
from .base import ProvisioningBackend
from .memory import InMemoryBackend
from .retry import retry_transient
from .terraform import TerraformBackend, check_terraform_installed


def create_backend(
    settings: BackendSettings, credentials: Optional[Dict[str, str]] = None
) -> ProvisioningBackend:
    """Instantiate the backend selected by ``settings.kind``."""
    if settings.kind == BackendKind.MEMORY:
        return InMemoryBackend(
            max_retries=settings.max_retries,
            initial_delay=settings.initial_delay,
            backoff=settings.backoff,
        )
    return TerraformBackend.from_settings(settings, credentials)


__all__ = [
    "InMemoryBackend",
    "ProvisioningBackend",
    "TerraformBackend",
    "check_terraform_installed",
    "create_backend",
    "retry_transient",
]
