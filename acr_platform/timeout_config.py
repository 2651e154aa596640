"""
Centralized timeout configuration for terraform subprocess calls.

Timeout values are configurable via environment variables, with defaults for
each operation category.

Usage:
    from acr_platform.timeout_config import Timeouts

    subprocess.run(cmd, timeout=Timeouts.TERRAFORM_INIT)

Environment Variables:
    - ACR_TIMEOUT_QUICK: Version checks (default: 30s)
    - ACR_TIMEOUT_STANDARD: Output queries (default: 60s)
    - ACR_TIMEOUT_INIT: Provider and module downloads (default: 120s)
    - ACR_TIMEOUT_DEPLOY: Apply and destroy (default: 1800s)
"""

import logging
import os
from typing import Final

logger = logging.getLogger(__name__)


def _get_timeout(env_var: str, default: int) -> int:
    """Get timeout value from environment variable or use default.

    Args:
        env_var: Environment variable name
        default: Default timeout in seconds

    Returns:
        Timeout value in seconds
    """
    value = os.environ.get(env_var)
    if value is not None:
        try:
            timeout = int(value)
            if timeout <= 0:
                logger.warning(
                    f"Invalid timeout value for {env_var}: {value}. "
                    f"Must be positive. Using default: {default}s"
                )
                return default
            return timeout
        except ValueError:
            logger.warning(
                f"Invalid timeout value for {env_var}: {value}. "
                f"Must be integer. Using default: {default}s"
            )
            return default
    return default


class Timeouts:
    """Timeout constants for terraform operations, in seconds."""

    QUICK: Final[int] = _get_timeout("ACR_TIMEOUT_QUICK", 30)
    VERSION_CHECK: Final[int] = QUICK

    STANDARD: Final[int] = _get_timeout("ACR_TIMEOUT_STANDARD", 60)
    TERRAFORM_OUTPUT: Final[int] = STANDARD

    INIT: Final[int] = _get_timeout("ACR_TIMEOUT_INIT", 120)
    TERRAFORM_INIT: Final[int] = INIT

    # Registry creation with geo/zone redundancy routinely takes minutes
    DEPLOY: Final[int] = _get_timeout("ACR_TIMEOUT_DEPLOY", 1800)
    TERRAFORM_APPLY: Final[int] = DEPLOY
    TERRAFORM_DESTROY: Final[int] = DEPLOY


def log_timeout_event(
    operation: str,
    timeout_value: int,
    command: str | list[str] | None = None,
    level: str = "warning",
) -> None:
    """Log a timeout event with consistent formatting.

    Args:
        operation: Name of the operation that timed out
        timeout_value: Timeout value that was exceeded
        command: Optional command that timed out
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level, logger.warning)
    cmd_str = ""
    if command:
        cmd_str = " ".join(command) if isinstance(command, list) else command
        if len(cmd_str) > 100:
            cmd_str = cmd_str[:97] + "..."
        cmd_str = f" - command: '{cmd_str}'"

    log_func(
        f"Operation '{operation}' timed out after {timeout_value} seconds{cmd_str}"
    )
