"""
Orchestrator Package - Local Deployment Conductor.

============================================================
PACKAGE OVERVIEW
============================================================
Registers a fixed set of network services, validates their
endpoint dependencies, drives a two-phase setup/start lifecycle
and enforces safe shutdown ordering.

============================================================
CORE PRINCIPLES
============================================================
1. The conductor never inspects a service's internals
2. Dependencies are endpoint labels, not service names
3. Start order is the caller's; shutdown order is the reverse
   of successful starts
4. Every public operation is serialized by one lock
5. The genesis is frozen once and reloaded verbatim

============================================================
ARCHITECTURE
============================================================

    +-----------------------------------------------------+
    |                      Conductor                      |
    |-----------------------------------------------------|
    |  ServiceRegistry  |  names, endpoint validation     |
    |  GenesisPipeline  |  setup / freeze / load          |
    |  Endpoints        |  label -> address of actives    |
    |  Start-order log  |  reverse order for shutdown     |
    +-----------------------------------------------------+
                 ^
                 |  status / start / stop
    +-----------------------------------------------------+
    |                Control plane (HTTP)                 |
    +-----------------------------------------------------+

============================================================
QUICK START
============================================================
Programmatic usage::

    import asyncio
    from orchestrator import OrchestratorConfig
    from orchestrator.runner import run

    async def main():
        config = OrchestratorConfig.from_env()
        await run(config, [ConsensusService(), BridgeService(), LightService()])

    asyncio.run(main())

"""

from .models import (
    BaseService,
    CancellationToken,
    Endpoints,
    OrchestratorConfig,
    Service,
    ServiceEntry,
    ServiceStatus,
)
from .registry import EndpointGraph, ServiceRegistry
from .core import Conductor


__all__ = [
    # Models
    "BaseService",
    "CancellationToken",
    "Endpoints",
    "OrchestratorConfig",
    "Service",
    "ServiceEntry",
    "ServiceStatus",

    # Registry
    "EndpointGraph",
    "ServiceRegistry",

    # Core
    "Conductor",
]
