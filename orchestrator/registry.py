"""
Orchestrator - Service Registry.

============================================================
RESPONSIBILITY
============================================================
Holds the registered services and validates their endpoint
dependency graph.

- Names are non-empty and unique
- Registration order is preserved (it drives genesis setup)
- Every required endpoint label has at least one provider
- The registry is immutable once constructed

No startup order is computed here: dependencies are endpoint
labels, not service-to-service edges, and the caller decides
the order in which services are started.

============================================================
"""

import logging
from typing import Dict, Iterator, List, Sequence, Set, Tuple

from .models import Service, ServiceEntry
from core.exceptions import ConfigurationError, DependencyViolation, UnknownServiceError


# ============================================================
# ENDPOINT GRAPH
# ============================================================

class EndpointGraph:
    """
    Which services provide and which require each endpoint label.
    """

    def __init__(self, entries: Sequence[ServiceEntry]):
        self._providers: Dict[str, List[str]] = {}
        self._consumers: Dict[str, List[str]] = {}

        for entry in entries:
            for label in entry.provided:
                self._providers.setdefault(label, []).append(entry.name)
            for label in entry.required:
                self._consumers.setdefault(label, []).append(entry.name)

        self._entries = tuple(entries)

    @property
    def provided_labels(self) -> Set[str]:
        """Union of all provided labels."""
        return set(self._providers)

    def providers_of(self, label: str) -> List[str]:
        return list(self._providers.get(label, []))

    def consumers_of(self, label: str) -> List[str]:
        return list(self._consumers.get(label, []))

    def check(self) -> None:
        """
        Make sure every required label has a provider.

        Raises:
            DependencyViolation: Naming the first missing label and its requester
        """
        for entry in self._entries:
            for label in entry.required:
                if label not in self._providers:
                    raise DependencyViolation(
                        message=(
                            f"required endpoint '{label}' for service '{entry.name}' "
                            f"is not provided by any service"
                        ),
                        operation="validate",
                        service=entry.name,
                        endpoint=label,
                    )


# ============================================================
# SERVICE REGISTRY
# ============================================================

class ServiceRegistry:
    """
    Immutable, ordered registry of services.

    Construction validates names and the endpoint graph; no I/O
    happens here.
    """

    def __init__(self, services: Sequence[Service]):
        self._logger = logging.getLogger(__name__)

        if not services:
            raise ConfigurationError(
                message="no services provided",
                operation="register",
            )

        entries: List[ServiceEntry] = []
        seen: Set[str] = set()
        for service in services:
            name = getattr(service, "name", None)
            if not isinstance(name, str) or not name:
                raise ConfigurationError(
                    message="service name cannot be empty",
                    operation="register",
                    context={"service_type": type(service).__name__},
                )
            if name in seen:
                raise ConfigurationError(
                    message=f"service {name} is registered twice",
                    operation="register",
                    service=name,
                )
            seen.add(name)
            entries.append(ServiceEntry.from_service(service))

        self._entries: Tuple[ServiceEntry, ...] = tuple(entries)
        self._by_name: Dict[str, ServiceEntry] = {e.name: e for e in entries}
        self._graph = EndpointGraph(self._entries)
        self._graph.check()

        self._logger.debug(f"Registered services: {', '.join(self.names())}")

    # --------------------------------------------------------
    # Lookup
    # --------------------------------------------------------

    def names(self) -> List[str]:
        """Service names in registration order."""
        return [e.name for e in self._entries]

    def entries(self) -> Tuple[ServiceEntry, ...]:
        return self._entries

    def get(self, name: str) -> ServiceEntry:
        """
        Get a registration entry.

        Raises:
            UnknownServiceError: If the name is not registered
        """
        entry = self._by_name.get(name)
        if entry is None:
            raise UnknownServiceError(
                message=f"service {name} does not exist",
                service=name,
            )
        return entry

    @property
    def graph(self) -> EndpointGraph:
        return self._graph

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[ServiceEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "EndpointGraph",
    "ServiceRegistry",
]
