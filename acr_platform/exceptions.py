"""
Custom Exception Hierarchy for the ACR platform

This module provides the exception hierarchy shared by validation, name
derivation and the provisioning backends, carrying structured context for
logging and CLI output.
"""

import re
from typing import Any, Dict, Iterable, Optional


class AcrPlatformError(Exception):
    """
    Base exception class for all ACR platform errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


# Validation-related exceptions
class ValidationError(AcrPlatformError):
    """Raised when a provisioning request violates a validation rule.

    Validation errors are caller-fixable and are never retried.
    """

    def __init__(self, message: str, field: str, rule: str, **kwargs: Any) -> None:
        context = dict(kwargs.get("context") or {})
        context["field"] = field
        kwargs["context"] = context
        kwargs.setdefault("error_code", rule)
        super().__init__(message, **kwargs)
        self.field = field
        self.rule = rule


class NameConflictError(AcrPlatformError):
    """Raised when two derived resources resolve to the same name."""

    def __init__(
        self,
        message: str,
        name: str,
        first_owner: str,
        second_owner: str,
        **kwargs: Any,
    ) -> None:
        context = dict(kwargs.get("context") or {})
        context["name"] = name
        context["owners"] = f"{first_owner}, {second_owner}"
        kwargs["context"] = context
        kwargs.setdefault("error_code", "NAME_CONFLICT")
        kwargs.setdefault(
            "recovery_suggestion",
            "Remove the overlapping environment from one team "
            "or set validation.conflict_policy to 'merge'",
        )
        super().__init__(message, **kwargs)
        self.name = name
        self.first_owner = first_owner
        self.second_owner = second_owner


# Backend-related exceptions
class BackendError(AcrPlatformError):
    """Base class for provisioning backend failures."""

    transient = False

    def __init__(
        self, message: str, operation: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = dict(kwargs.get("context") or {})
        if operation:
            context["operation"] = operation
        kwargs["context"] = context
        kwargs.setdefault("error_code", "BACKEND_ERROR")
        super().__init__(message, **kwargs)
        self.operation = operation


class TransientBackendError(BackendError):
    """Raised for failures worth retrying (throttling, timeouts, resets)."""

    transient = True

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "BACKEND_TRANSIENT")
        kwargs.setdefault("recovery_suggestion", "Retry later")
        super().__init__(message, **kwargs)


class PermanentBackendError(BackendError):
    """Raised for failures that will not succeed on retry."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "BACKEND_PERMANENT")
        super().__init__(message, **kwargs)


# Configuration-related exceptions
class ConfigError(AcrPlatformError):
    """Configuration or request file loading/validation error."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "INVALID_CONFIG")
        kwargs.setdefault(
            "recovery_suggestion", "Check configuration file and environment variables"
        )
        super().__init__(message, **kwargs)


def is_transient_message(message: str, patterns: Iterable[str]) -> bool:
    """Check whether an error message matches any retryable pattern."""
    return any(re.search(pattern, message, re.IGNORECASE) for pattern in patterns)


def wrap_backend_exception(
    exc: Exception,
    patterns: Iterable[str],
    operation: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> BackendError:
    """
    Wrap a raw backend failure in the backend exception hierarchy.

    Args:
        exc: The original exception
        patterns: Regular expressions identifying transient failures
        operation: Backend operation that failed (apply, destroy, ...)
        context: Optional context information

    Returns:
        BackendError: TransientBackendError or PermanentBackendError
    """
    if isinstance(exc, BackendError):
        return exc

    error_message = str(exc)
    if isinstance(exc, TimeoutError) or is_transient_message(error_message, patterns):
        return TransientBackendError(
            f"Backend {operation or 'operation'} failed: {error_message}",
            operation=operation,
            context=context,
            cause=exc,
        )
    return PermanentBackendError(
        f"Backend {operation or 'operation'} failed: {error_message}",
        operation=operation,
        context=context,
        cause=exc,
    )
