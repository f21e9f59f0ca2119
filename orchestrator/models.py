"""
Orchestrator - Models.

============================================================
RESPONSIBILITY
============================================================
Defines data models for the conductor.

- Service contract every orchestrated component implements
- Registration entries and status snapshots
- Cooperative cancellation token
- Configuration dataclass

============================================================
"""

import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)

from dotenv import load_dotenv

from genesis.document import DEFAULT_CHAIN_ID, GenesisDoc, Modifier


Endpoints = Dict[str, str]
"""Endpoint label -> address."""


def format_endpoints(endpoints: Mapping[str, str]) -> str:
    """Render endpoints for log lines."""
    return ", ".join(f"{label}: {address}" for label, address in sorted(endpoints.items()))


# ============================================================
# CANCELLATION
# ============================================================

class CancellationToken:
    """
    Cooperative cancellation signal.

    Passed to every service start/stop call. Services may poll
    ``cancelled`` or ``await wait()`` to abort long startups.
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()


# ============================================================
# SERVICE CONTRACT
# ============================================================

@runtime_checkable
class Service(Protocol):
    """Protocol that all orchestrated services implement."""

    name: str

    def required_endpoints(self) -> Sequence[str]:
        """Endpoint labels that must be active before start."""
        ...

    def provided_endpoints(self) -> Sequence[str]:
        """Endpoint labels this service serves once started."""
        ...

    async def setup(self, directory: Path, pending_genesis: GenesisDoc) -> Optional[Modifier]:
        """Prepare the working directory; optionally amend the genesis."""
        ...

    async def start(
        self,
        directory: Path,
        genesis: GenesisDoc,
        endpoints: Endpoints,
        token: CancellationToken,
    ) -> Endpoints:
        """Start and return the addresses of the provided labels."""
        ...

    async def stop(self, token: CancellationToken) -> None:
        """Release everything acquired by start."""
        ...


class BaseService(ABC):
    """
    Base class for services with static endpoint declarations.

    Subclasses set ``name``, ``REQUIRED_ENDPOINTS`` and
    ``PROVIDED_ENDPOINTS`` and implement ``start`` and ``stop``.
    """

    name: str = ""
    REQUIRED_ENDPOINTS: Tuple[str, ...] = ()
    PROVIDED_ENDPOINTS: Tuple[str, ...] = ()

    def required_endpoints(self) -> Sequence[str]:
        return list(self.REQUIRED_ENDPOINTS)

    def provided_endpoints(self) -> Sequence[str]:
        return list(self.PROVIDED_ENDPOINTS)

    async def setup(self, directory: Path, pending_genesis: GenesisDoc) -> Optional[Modifier]:
        """No-op setup."""
        return None

    @abstractmethod
    async def start(
        self,
        directory: Path,
        genesis: GenesisDoc,
        endpoints: Endpoints,
        token: CancellationToken,
    ) -> Endpoints:
        """Start and return the addresses of the provided labels."""
        pass

    @abstractmethod
    async def stop(self, token: CancellationToken) -> None:
        """Release everything acquired by start."""
        pass


# ============================================================
# REGISTRATION
# ============================================================

@dataclass(frozen=True)
class ServiceEntry:
    """Immutable registration of one service."""

    name: str
    required: Tuple[str, ...]
    provided: Tuple[str, ...]
    service: Any = field(compare=False, repr=False)

    @classmethod
    def from_service(cls, service: Service) -> "ServiceEntry":
        """Snapshot the service's static declarations."""
        return cls(
            name=service.name,
            required=tuple(service.required_endpoints()),
            provided=tuple(service.provided_endpoints()),
            service=service,
        )


# ============================================================
# STATUS
# ============================================================

@dataclass
class ServiceStatus:
    """Status of one registered service."""

    running: bool
    provides_endpoints: Endpoints = field(default_factory=dict)
    required_endpoints: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "running": self.running,
            "provides_endpoints": dict(self.provides_endpoints),
            "required_endpoints": list(self.required_endpoints),
        }


# ============================================================
# ORCHESTRATOR CONFIGURATION
# ============================================================

@dataclass
class OrchestratorConfig:
    """Configuration for the conductor and its control plane."""

    root_dir: Path = field(default_factory=lambda: Path.home() / ".apollo")
    """Deployment root directory."""

    chain_id: str = DEFAULT_CHAIN_ID
    """Chain id of a freshly created genesis."""

    # Control plane
    host: str = "0.0.0.0"
    """Control plane listen host."""

    port: int = 8080
    """Control plane listen port."""

    static_dir: Optional[Path] = None
    """Directory of static assets served under '/'."""

    # Logging
    log_level: str = "INFO"
    """Conductor logging level."""

    log_format: str = "text"
    """Logging format (json or text)."""

    service_log_level: str = "WARNING"
    """Logging level for service implementations."""

    @classmethod
    def from_env(cls) -> "OrchestratorConfig":
        """Load configuration from environment variables (and .env)."""
        load_dotenv()

        static_dir = os.getenv("APOLLO_STATIC_DIR")
        root_dir = os.getenv("APOLLO_ROOT_DIR")
        return cls(
            root_dir=Path(root_dir).expanduser() if root_dir else Path.home() / ".apollo",
            chain_id=os.getenv("APOLLO_CHAIN_ID", DEFAULT_CHAIN_ID),
            host=os.getenv("APOLLO_HOST", "0.0.0.0"),
            port=int(os.getenv("APOLLO_PORT", "8080")),
            static_dir=Path(static_dir) if static_dir else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
            service_log_level=os.getenv("APOLLO_SERVICE_LOG_LEVEL", "WARNING"),
        )

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if not 0 < self.port < 65536:
            errors.append("port must be between 1 and 65535")

        if self.log_format not in ("json", "text"):
            errors.append("log_format must be 'json' or 'text'")

        if self.static_dir is not None and not Path(self.static_dir).is_dir():
            errors.append(f"static_dir {self.static_dir} is not a directory")

        if not self.chain_id:
            errors.append("chain_id must not be empty")

        return errors


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "Endpoints",
    "format_endpoints",
    "CancellationToken",
    "Service",
    "BaseService",
    "ServiceEntry",
    "ServiceStatus",
    "OrchestratorConfig",
]
