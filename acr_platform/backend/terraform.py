"""Terraform provisioning backend.

Every request gets its own copy of the root module under the work directory,
so parallel requests with distinct names never share terraform state. Input
variables are written to ``terraform.tfvars.json`` next to the copy.
"""

import json
import os
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from ..config.models import BackendSettings
from ..desired_state import DesiredState
from ..exceptions import (
    PermanentBackendError,
    TransientBackendError,
    is_transient_message,
)
from ..models import ProvisioningHandle
from ..timeout_config import Timeouts, log_timeout_event
from .base import ProvisioningBackend
from .retry import retry_transient

logger = structlog.get_logger(__name__)

TFVARS_FILE = "terraform.tfvars.json"
STATE_FILE = "terraform.tfstate"

_CREDENTIAL_ENV = {
    "client_id": "ARM_CLIENT_ID",
    "client_secret": "ARM_CLIENT_SECRET",
    "tenant_id": "ARM_TENANT_ID",
    "subscription_id": "ARM_SUBSCRIPTION_ID",
}


class TerraformBackend(ProvisioningBackend):
    """Applies desired states by running terraform against a root module."""

    def __init__(
        self,
        module_dir: Path,
        work_dir: Path,
        credentials: Optional[Dict[str, str]] = None,
        settings: Optional[BackendSettings] = None,
    ):
        """Initialize the Terraform backend.

        Args:
            module_dir: Root module copied for every request
            work_dir: Directory holding per-request working copies
            credentials: Optional client_id, client_secret, tenant_id and
                subscription_id passed to the azurerm provider
            settings: Retry settings and retryable error patterns
        """
        self.module_dir = Path(module_dir)
        self.work_dir = Path(work_dir)
        self.credentials = credentials or {}
        self.settings = settings or BackendSettings()

        if not self.module_dir.is_dir():
            raise ValueError(f"Terraform module directory {module_dir} does not exist")

        self._retry = retry_transient(
            max_retries=self.settings.max_retries,
            initial_delay=self.settings.initial_delay,
            backoff=self.settings.backoff,
        )

    @classmethod
    def from_settings(
        cls, settings: BackendSettings, credentials: Optional[Dict[str, str]] = None
    ) -> "TerraformBackend":
        return cls(settings.module_dir, settings.work_dir, credentials, settings)

    def working_dir_for(self, handle: ProvisioningHandle) -> Path:
        return self.work_dir / handle.request_id

    def apply(self, state: DesiredState) -> Dict[str, Any]:
        """Run init and apply for ``state`` and return the stack outputs.

        Raises:
            TransientBackendError: If retries were exhausted on a transient failure
            PermanentBackendError: If terraform failed permanently
        """
        working_dir = self._prepare(state)
        logger.info(f"Applying {state.request_id} from {working_dir}")

        self._init(working_dir)
        self._retry(self._run)(
            ["apply", "-auto-approve", "-input=false", "-no-color", f"-var-file={TFVARS_FILE}"],
            working_dir,
            Timeouts.TERRAFORM_APPLY,
            "apply",
        )
        return self.outputs(state.handle)

    def outputs(self, handle: ProvisioningHandle) -> Dict[str, Any]:
        """Read the outputs recorded in a request's terraform state."""
        result = self._retry(self._run)(
            ["output", "-json", "-no-color"],
            self.working_dir_for(handle),
            Timeouts.TERRAFORM_OUTPUT,
            "output",
        )
        try:
            raw = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise PermanentBackendError(
                f"Terraform output is not valid JSON: {e}", operation="output", cause=e
            ) from e
        return {name: entry.get("value") for name, entry in raw.items()}

    def destroy(self, handle: ProvisioningHandle) -> None:
        """Destroy a request's resources and remove its working copy."""
        working_dir = self.working_dir_for(handle)
        if not working_dir.exists():
            logger.info(f"No working copy for {handle.request_id}, nothing to destroy")
            return

        if not (working_dir / STATE_FILE).exists():
            # init or the first apply failed before any state was written
            logger.info(f"No terraform state for {handle.request_id}, removing working copy")
            shutil.rmtree(working_dir, ignore_errors=True)
            return

        logger.info(f"Destroying {handle.request_id} in {working_dir}")
        if not (working_dir / ".terraform").is_dir():
            self._init(working_dir)
        self._retry(self._run)(
            ["destroy", "-auto-approve", "-input=false", "-no-color", f"-var-file={TFVARS_FILE}"],
            working_dir,
            Timeouts.TERRAFORM_DESTROY,
            "destroy",
        )
        shutil.rmtree(working_dir, ignore_errors=True)

    def _init(self, working_dir: Path) -> None:
        self._retry(self._run)(
            ["init", "-input=false", "-no-color"],
            working_dir,
            Timeouts.TERRAFORM_INIT,
            "init",
        )

    def _prepare(self, state: DesiredState) -> Path:
        """Create or refresh the working copy and write its variables."""
        working_dir = self.working_dir_for(state.handle)
        shutil.copytree(
            self.module_dir,
            working_dir,
            dirs_exist_ok=True,
            ignore=shutil.ignore_patterns(".terraform", "*.tfstate", "*.tfstate.*", TFVARS_FILE),
        )
        (working_dir / TFVARS_FILE).write_text(
            json.dumps(state.to_tfvars(), indent=2, sort_keys=True)
        )
        return working_dir

    def _get_environment(self) -> Dict[str, str]:
        """Get environment variables with Azure credentials."""
        env = os.environ.copy()
        env["TF_IN_AUTOMATION"] = "1"
        for key, env_var in _CREDENTIAL_ENV.items():
            if key in self.credentials:
                env[env_var] = self.credentials[key]
        return env

    def _run(
        self, args: List[str], cwd: Path, timeout: int, operation: str
    ) -> subprocess.CompletedProcess:
        """Run one terraform command and classify its failure."""
        cmd = ["terraform", *args]
        logger.debug(f"Running command: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                env=self._get_environment(),
                capture_output=True,
                text=True,
                check=False,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            log_timeout_event(f"terraform_{operation}", timeout, cmd)
            raise TransientBackendError(
                f"Terraform {operation} timed out after {timeout} seconds",
                operation=operation,
                cause=e,
            ) from e
        except FileNotFoundError as e:
            raise PermanentBackendError(
                "terraform executable not found",
                operation=operation,
                cause=e,
                recovery_suggestion="Install terraform and make sure it is on PATH",
            ) from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            message = f"Terraform {operation} failed: {stderr}"
            if is_transient_message(stderr, self.settings.retryable_errors):
                raise TransientBackendError(message, operation=operation)
            raise PermanentBackendError(message, operation=operation)

        return result


def check_terraform_installed() -> bool:
    """Check if terraform is installed and accessible."""
    try:
        result = subprocess.run(
            ["terraform", "version"],
            capture_output=True,
            text=True,
            timeout=Timeouts.VERSION_CHECK,
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return False
