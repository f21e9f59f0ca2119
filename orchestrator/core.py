"""
Orchestrator - Core.

============================================================
RESPONSIBILITY
============================================================
The Conductor: owns the service registry, the active endpoints,
the active services and the start-order log, and drives the
setup / start / stop / cleanup lifecycle.

- Setup runs once: builds (or reloads) the genesis and the
  per-service working directories
- Services are started one at a time in the caller's order;
  a service starts only when all its required endpoints are active
- A service cannot be stopped while another active service
  still requires one of its endpoints
- Full shutdown stops services in reverse start order

============================================================
CONCURRENCY
============================================================
Every public operation runs entirely inside one asyncio.Lock,
including the awaited setup/start/stop of the service itself.
Concurrent callers queue. Private ``_`` helpers assume the
lock is held and never take it.

============================================================
"""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .models import (
    CancellationToken,
    Endpoints,
    Service,
    ServiceEntry,
    ServiceStatus,
    format_endpoints,
)
from .registry import ServiceRegistry
from core.exceptions import (
    DependencyViolation,
    LifecycleError,
    PersistenceError,
    StateError,
)
from core.logging_setup import service_scope
from genesis.document import Genesis, GenesisDoc
from genesis.pipeline import GenesisPipeline


# ============================================================
# CONDUCTOR
# ============================================================

class Conductor:
    """
    Lifecycle manager for a local multi-service deployment.

    Usage::

        conductor = Conductor(root, [consensus, bridge, light])
        await conductor.setup()
        await conductor.start_service("consensus-node", token)
        ...
        await conductor.stop()
        await conductor.cleanup()
    """

    def __init__(
        self,
        root_dir: Path,
        services: Sequence[Service],
        genesis: Optional[Genesis] = None,
    ):
        """
        Initialize conductor.

        Args:
            root_dir: Deployment root directory
            services: Services in registration order
            genesis: Base genesis (default: private chain starting now)

        Raises:
            ConfigurationError: Empty registry, empty or duplicate name
            DependencyViolation: A required endpoint has no provider
        """
        self._registry = ServiceRegistry(services)
        self._root_dir = Path(root_dir)
        self._pipeline = GenesisPipeline(self._root_dir, genesis or Genesis.default())

        self._active_endpoints: Endpoints = {}
        self._active_services: Dict[str, ServiceEntry] = {}
        self._service_endpoints: Dict[str, Endpoints] = {}
        self._start_order: List[str] = []
        self._genesis_doc: Optional[GenesisDoc] = None
        self._setup = False

        self._lock = asyncio.Lock()
        self._logger = logging.getLogger(__name__)

    # --------------------------------------------------------
    # Properties
    # --------------------------------------------------------

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    @property
    def is_setup(self) -> bool:
        return self._setup

    @property
    def genesis_doc(self) -> Optional[GenesisDoc]:
        """Frozen genesis, available after setup."""
        return self._genesis_doc

    @property
    def service_names(self) -> List[str]:
        return self._registry.names()

    @property
    def active_endpoints(self) -> Endpoints:
        return dict(self._active_endpoints)

    @property
    def start_order(self) -> List[str]:
        return list(self._start_order)

    def service_dir(self, name: str) -> Path:
        return self._pipeline.service_dir(name)

    def fresh_deployment(self) -> bool:
        """True if the root directory holds no frozen genesis yet."""
        return self._pipeline.fresh_deployment()

    # --------------------------------------------------------
    # Setup
    # --------------------------------------------------------

    async def setup(self) -> None:
        """
        Set up all services and freeze (or reload) the genesis.

        Raises:
            StateError: If setup already completed
            LifecycleError: If a service's setup fails
            PersistenceError: On filesystem failures, or when a service
                has no working directory in an existing deployment
        """
        async with self._lock:
            if self._setup:
                raise StateError(
                    message="conductor has already been set up",
                    operation="setup",
                )

            self._logger.info("Setting up services...")

            if self._pipeline.fresh_deployment():
                self._pipeline.reset()
                for entry in self._registry:
                    await self._pipeline.setup_one(entry.service)
                self._genesis_doc = self._pipeline.freeze()
            else:
                self._genesis_doc = self._pipeline.load()
                for name in self._registry.names():
                    directory = self.service_dir(name)
                    if not directory.is_dir():
                        raise PersistenceError(
                            message=(
                                f"new service {name} added has not been setup: "
                                f"{directory} is missing. Please clear {self._root_dir} and restart"
                            ),
                            operation="setup",
                            service=name,
                            path=str(directory),
                        )

            self._setup = True
            self._logger.info(f"Services setup successfully at {self._root_dir}")

    # --------------------------------------------------------
    # Start
    # --------------------------------------------------------

    async def start_service(
        self,
        name: str,
        token: Optional[CancellationToken] = None,
    ) -> Endpoints:
        """
        Start one service.

        Args:
            name: Service name
            token: Cancellation token threaded to the service

        Returns:
            The endpoints the service reported

        Raises:
            StateError: Before setup, or if already active
            LifecycleError: Unknown name, or the service failed to start
            DependencyViolation: A required endpoint is not active
        """
        async with self._lock:
            return await self._start_service(name, token or CancellationToken())

    async def _start_service(self, name: str, token: CancellationToken) -> Endpoints:
        self._logger.info(f"Starting up service {name}")

        if not self._setup:
            raise StateError(
                message="conductor has not set up all services. Call setup() first",
                operation="start",
                service=name,
            )

        entry = self._registry.get(name)

        if name in self._active_services:
            raise StateError(
                message=f"service {name} is already running",
                operation="start",
                service=name,
            )

        for label in entry.required:
            if label not in self._active_endpoints:
                raise DependencyViolation(
                    message=f"required endpoint '{label}' for service '{name}' is not active",
                    operation="start",
                    service=name,
                    endpoint=label,
                )

        try:
            with service_scope(name):
                returned = await entry.service.start(
                    self.service_dir(name),
                    self._genesis_doc,
                    dict(self._active_endpoints),
                    token,
                )
        except Exception as e:
            raise LifecycleError(
                message=f"failed to start service {name}: {e}",
                operation="start",
                service=name,
                cause=e,
            ) from e

        returned = dict(returned or {})
        undeclared = sorted(set(returned) - set(entry.provided))
        if undeclared:
            self._logger.warning(
                f"Service {name} returned undeclared endpoints {undeclared}; ignoring them"
            )

        started = {label: returned[label] for label in entry.provided if label in returned}
        self._active_endpoints.update(started)
        self._active_services[name] = entry
        self._service_endpoints[name] = started
        self._start_order.append(name)

        self._logger.info(
            f"Service {name} started successfully on endpoints: {format_endpoints(started)}"
        )
        return started

    # --------------------------------------------------------
    # Stop
    # --------------------------------------------------------

    async def stop_service(
        self,
        name: str,
        token: Optional[CancellationToken] = None,
    ) -> None:
        """
        Stop one active service.

        Raises:
            LifecycleError: Not active, or the service failed to stop
            DependencyViolation: Another active service requires its endpoints
        """
        async with self._lock:
            await self._stop_service(name, token or CancellationToken())

    async def _stop_service(self, name: str, token: CancellationToken) -> None:
        self._logger.info(f"Stopping service {name}")

        entry = self._active_services.get(name)
        if entry is None:
            raise LifecycleError(
                message=f"service {name} is not active or does not exist",
                operation="stop",
                service=name,
            )

        for other in self._active_services.values():
            if other.name == name:
                continue
            for label in other.required:
                if label in entry.provided:
                    raise DependencyViolation(
                        message=(
                            f"cannot stop service '{name}' as it provides required "
                            f"endpoint '{label}' for active service '{other.name}'"
                        ),
                        operation="stop",
                        service=name,
                        endpoint=label,
                        dependent=other.name,
                    )

        try:
            with service_scope(name):
                await entry.service.stop(token)
        except Exception as e:
            raise LifecycleError(
                message=f"failed to stop service {name}: {e}",
                operation="stop",
                service=name,
                cause=e,
            ) from e

        del self._active_services[name]
        self._service_endpoints.pop(name, None)
        for label in entry.provided:
            self._release_endpoint(label)

        self._logger.info(f"Service {name} stopped successfully")

    def _release_endpoint(self, label: str) -> None:
        # another active provider keeps the label; the latest started wins
        for other in reversed(self._start_order):
            address = self._service_endpoints.get(other, {}).get(label)
            if address is not None:
                self._active_endpoints[label] = address
                return
        self._active_endpoints.pop(label, None)

    async def stop(self, token: Optional[CancellationToken] = None) -> None:
        """
        Stop all active services in reverse start order.

        Fails fast: the first error is raised and the remaining
        services are left running. Always runs with a live token.
        """
        if token is None or token.cancelled:
            if token is not None:
                self._logger.warning("Ignoring cancelled token passed to stop(); using a fresh one")
            token = CancellationToken()

        async with self._lock:
            for name in reversed(self._start_order):
                if name not in self._active_services:
                    continue
                await self._stop_service(name, token)

    # --------------------------------------------------------
    # Cleanup
    # --------------------------------------------------------

    async def cleanup(self) -> None:
        """
        Delete the whole root directory.

        Raises:
            StateError: If any service is still active
            PersistenceError: If removal fails
        """
        async with self._lock:
            if self._active_services:
                raise StateError(
                    message="cannot cleanup conductor with active services",
                    operation="cleanup",
                    context={"active": sorted(self._active_services)},
                )

            self._logger.info(f"Cleaning up all services at {self._root_dir}")
            try:
                await asyncio.to_thread(shutil.rmtree, self._root_dir, ignore_errors=False)
            except FileNotFoundError:
                pass
            except OSError as e:
                raise PersistenceError(
                    message=f"failed to remove {self._root_dir}: {e}",
                    operation="cleanup",
                    path=str(self._root_dir),
                    cause=e,
                ) from e

    # --------------------------------------------------------
    # Status
    # --------------------------------------------------------

    async def is_service_running(self, name: str) -> bool:
        async with self._lock:
            return name in self._active_services

    async def status(self) -> Dict[str, ServiceStatus]:
        """Snapshot of every registered service, in registration order."""
        async with self._lock:
            return self._status()

    def _status(self) -> Dict[str, ServiceStatus]:
        snapshot: Dict[str, ServiceStatus] = {}
        for entry in self._registry:
            snapshot[entry.name] = ServiceStatus(
                running=entry.name in self._active_services,
                provides_endpoints=dict(self._service_endpoints.get(entry.name, {})),
                required_endpoints=list(entry.required),
            )
        return snapshot


__all__ = [
    "Conductor",
]
