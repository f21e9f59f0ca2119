"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines all custom exceptions for the conductor.

- Provides clear exception hierarchy
- Carries the operation and service involved
- Includes context for debugging and for the control plane

============================================================
EXCEPTION HIERARCHY
============================================================
ConductorError (base)
├── ConfigurationError     bad registration
├── DependencyViolation    endpoint not provided / not active / still needed
├── LifecycleError         a service's setup/start/stop failed, unknown name
├── StateError             operation invoked in the wrong conductor state
└── PersistenceError       filesystem failures

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels for logging."""

    LOW = "low"
    """Caller mistake, nothing changed."""

    MEDIUM = "medium"
    """An operation failed; the deployment is still usable."""

    HIGH = "high"
    """Serious issue, the deployment cannot proceed."""


# ============================================================
# BASE EXCEPTION
# ============================================================

class ConductorError(Exception):
    """
    Base exception for all conductor errors.

    All exceptions carry:
    - operation: the public operation that failed (setup, start, ...)
    - service: the service involved, if any
    - context: extra key/value pairs for debugging
    - cause: the underlying exception, if any
    """

    default_severity: Severity = Severity.MEDIUM

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        service: Optional[str] = None,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)

        self.message = message
        self.operation = operation
        self.service = service
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if operation:
            self.context["operation"] = operation
        if service:
            self.context["service"] = service
        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "operation": self.operation,
            "service": self.service,
            "severity": self.severity.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }

    def to_log_format(self) -> str:
        """One-line form for log output."""
        ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        line = f"[{self.severity.value.upper()}] {type(self).__name__}: {self.message}"
        if ctx_str:
            line += f" | {ctx_str}"
        return line


# ============================================================
# REGISTRATION ERRORS
# ============================================================

class ConfigurationError(ConductorError):
    """Bad registration: no services, empty or duplicate name."""

    default_severity = Severity.HIGH


class DependencyViolation(ConductorError):
    """
    An endpoint dependency is not satisfied.

    Raised when no registered service provides a required label,
    when starting before a required label is active, and when stopping
    a service whose labels are still required by an active service.
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        dependent: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if endpoint:
            context["endpoint"] = endpoint
        if dependent:
            context["dependent"] = dependent

        super().__init__(message, context=context, **kwargs)
        self.endpoint = endpoint
        self.dependent = dependent


# ============================================================
# LIFECYCLE ERRORS
# ============================================================

class LifecycleError(ConductorError):
    """A service's setup/start/stop failed, or an unknown name was used."""


class UnknownServiceError(LifecycleError):
    """Referenced service name is not registered."""

    default_severity = Severity.LOW


class StateError(ConductorError):
    """Operation invoked in the wrong conductor state."""


# ============================================================
# PERSISTENCE ERRORS
# ============================================================

class PersistenceError(ConductorError):
    """Filesystem failure on the root, a working directory or the genesis file."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if path:
            context["path"] = str(path)

        super().__init__(message, context=context, **kwargs)
        self.path = path


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "Severity",
    "ConductorError",
    "ConfigurationError",
    "DependencyViolation",
    "LifecycleError",
    "UnknownServiceError",
    "StateError",
    "PersistenceError",
]
