"""Retry helper for backend operations."""

import functools
import time
from typing import Any, Callable

import structlog

from ..exceptions import TransientBackendError

logger = structlog.get_logger(__name__)


def retry_transient(
    max_retries: int = 3, initial_delay: float = 5.0, backoff: float = 2.0
) -> Any:
    """
    Decorator to retry a backend operation on transient failures.

    Permanent failures and any other exception are re-raised immediately.
    After ``max_retries`` attempts the last transient error is raised.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay

            for attempt in range(1, max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except TransientBackendError as e:
                    if attempt == max_retries:
                        logger.error(
                            f"{func.__name__} failed after {attempt} attempts: {e.message}"
                        )
                        raise
                    logger.warning(
                        f"Transient backend error: {e.message}. "
                        f"Retrying {attempt}/{max_retries} after {delay}s..."
                    )
                    time.sleep(delay)
                    delay *= backoff

        return wrapper

    return decorator
