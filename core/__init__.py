"""
Core Module Package.

This package contains the infrastructure components
that all other packages depend on.

Components:
- exceptions: Conductor exception hierarchy
- logging_setup: Logging configuration and per-service scoping
"""

from .exceptions import (
    ConductorError,
    ConfigurationError,
    DependencyViolation,
    LifecycleError,
    PersistenceError,
    StateError,
    UnknownServiceError,
)
from .logging_setup import service_scope, setup_logging


__all__ = [
    "ConductorError",
    "ConfigurationError",
    "DependencyViolation",
    "LifecycleError",
    "PersistenceError",
    "StateError",
    "UnknownServiceError",
    "service_scope",
    "setup_logging",
]
