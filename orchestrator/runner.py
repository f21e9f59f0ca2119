"""
Orchestrator - Runner.

============================================================
RESPONSIBILITY
============================================================
Top-level run routine: the one call that brings a deployment
up, serves the control plane and tears everything down.

    construct -> setup -> start all -> serve -> stop

============================================================
COMPENSATING CLEANUP
============================================================
- Setup fails on a fresh root: the root directory is deleted
- A start fails during the initial bring-up: started services
  are stopped and the root directory is deleted
- Failures after bring-up (control plane serving) leave the
  root directory in place
- Full shutdown always runs with a fresh cancellation token

============================================================
"""

import asyncio
import logging
import signal
import sys
from typing import Optional, Sequence

from .core import Conductor
from .models import CancellationToken, OrchestratorConfig, Service
from control_plane.api import ControlPlaneServer
from core.exceptions import ConductorError, ConfigurationError
from core.logging_setup import setup_logging
from genesis.document import Genesis


logger = logging.getLogger(__name__)


# ============================================================
# SIGNALS
# ============================================================

def install_signal_handlers(token: CancellationToken) -> None:
    """Cancel ``token`` on SIGINT/SIGTERM."""
    if sys.platform == "win32":
        signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
        return

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, token.cancel)


def remove_signal_handlers() -> None:
    """Restore default SIGINT/SIGTERM handling."""
    if sys.platform == "win32":
        signal.signal(signal.SIGINT, signal.default_int_handler)
        return

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.remove_signal_handler(sig)


async def log_registration_summary(conductor: Conductor) -> None:
    """Log the registered services and their endpoint declarations."""
    status = await conductor.status()

    logger.info("=" * 70)
    logger.info("SERVICE REGISTRATION SUMMARY")
    logger.info("=" * 70)
    logger.info(f"Root directory:  {conductor.root_dir}")
    logger.info(f"Fresh:           {'YES' if conductor.fresh_deployment() else 'NO'}")
    logger.info(f"Total services:  {len(status)}")
    logger.info("-" * 70)
    for name, s in status.items():
        required = ", ".join(s.required_endpoints) or "-"
        logger.info(f"  {name:<30} requires: {required}")
    logger.info("=" * 70)


# ============================================================
# COMPENSATION
# ============================================================

async def _abort_bring_up(conductor: Conductor) -> None:
    """Stop whatever started and delete the root directory."""
    try:
        await conductor.stop()
        await conductor.cleanup()
    except ConductorError as e:
        logger.error(f"Error cleaning up: {e}")


# ============================================================
# RUN
# ============================================================

async def run(
    config: OrchestratorConfig,
    services: Sequence[Service],
    genesis: Optional[Genesis] = None,
    token: Optional[CancellationToken] = None,
) -> None:
    """
    Set up and start every service in registration order, then
    serve the control plane until ``token`` is cancelled.

    Args:
        config: Orchestrator configuration
        services: Services in registration (and start) order
        genesis: Base genesis (default: private chain with config.chain_id)
        token: Top-level cancellation token (default: cancelled on SIGINT/SIGTERM)
    """
    errors = config.validate()
    if errors:
        raise ConfigurationError(
            message=f"Invalid configuration: {', '.join(errors)}",
            operation="run",
        )

    setup_logging(config.log_level, config.log_format, config.service_log_level)

    owns_signals = token is None
    if owns_signals:
        token = CancellationToken()
        install_signal_handlers(token)

    try:
        await _run(config, services, genesis, token)
    finally:
        if owns_signals:
            remove_signal_handlers()


async def _run(
    config: OrchestratorConfig,
    services: Sequence[Service],
    genesis: Optional[Genesis],
    token: CancellationToken,
) -> None:
    if genesis is None:
        genesis = Genesis.default().with_chain_id(config.chain_id)

    conductor = Conductor(config.root_dir, services, genesis)
    await log_registration_summary(conductor)

    fresh = conductor.fresh_deployment()
    try:
        await conductor.setup()
    except ConductorError:
        if fresh:
            await _abort_bring_up(conductor)
        raise

    try:
        for name in conductor.service_names:
            await conductor.start_service(name, token)
    except ConductorError:
        await _abort_bring_up(conductor)
        raise

    server = ControlPlaneServer(
        conductor,
        host=config.host,
        port=config.port,
        static_dir=config.static_dir,
    )
    try:
        await server.serve(token)
    finally:
        try:
            await conductor.stop(CancellationToken())
        except ConductorError as e:
            logger.error(f"Error stopping conductor: {e}")


__all__ = [
    "install_signal_handlers",
    "remove_signal_handlers",
    "log_registration_summary",
    "run",
]
