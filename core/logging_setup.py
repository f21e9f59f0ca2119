"""
Core Module - Logging.

============================================================
RESPONSIBILITY
============================================================
Structured logging setup and per-service log scoping.

- Configures the root logger (json or text)
- Tags every record emitted while a service call runs
  with the name of that service
- Keeps service chatter quiet by level, without touching
  process-wide output streams

============================================================
USAGE
============================================================
Services log through the ``apollo.services`` hierarchy::

    logger = logging.getLogger("apollo.services.consensus")

The conductor wraps each setup/start/stop call in
``service_scope(name)``; records emitted inside the scope
carry ``record.service == name``.

============================================================
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional


SERVICE_LOGGER_NAME = "apollo.services"

_current_service: ContextVar[str] = ContextVar("apollo_current_service", default="")


# ============================================================
# SERVICE SCOPE
# ============================================================

@contextmanager
def service_scope(name: str) -> Iterator[None]:
    """Mark the enclosed code as running on behalf of ``name``."""
    token = _current_service.set(name)
    try:
        yield
    finally:
        _current_service.reset(token)


def current_service() -> str:
    """Name of the service whose call is in progress, or ''."""
    return _current_service.get()


class ServiceContextFilter(logging.Filter):
    """Stamp records with the service in scope."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = _current_service.get() or "-"
        return True


def get_service_logger(name: str) -> logging.Logger:
    """Logger for a service implementation."""
    return logging.getLogger(f"{SERVICE_LOGGER_NAME}.{name}")


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    service_level: Optional[str] = "WARNING",
) -> logging.Logger:
    """
    Set up structured logging.

    Args:
        level: Log level for the conductor
        log_format: Output format (json or text)
        service_level: Log level for the ``apollo.services`` hierarchy

    Returns:
        Configured conductor logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "service": "%(service)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(service)s | %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(ServiceContextFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    if service_level:
        logging.getLogger(SERVICE_LOGGER_NAME).setLevel(
            getattr(logging, service_level.upper(), logging.WARNING)
        )

    return logging.getLogger("orchestrator")


__all__ = [
    "SERVICE_LOGGER_NAME",
    "service_scope",
    "current_service",
    "ServiceContextFilter",
    "get_service_logger",
    "setup_logging",
]
