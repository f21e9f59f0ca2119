"""
Control Plane - HTTP API.

============================================================
PURPOSE
============================================================
Minimal HTTP surface over the Conductor.

ENDPOINTS:
- GET /status        JSON snapshot of every service
- GET /start/{name}  start one service
- GET /stop/{name}   stop one service
- anything else      static assets, when a directory is configured

STATUS CODES:
- 200 success
- 400 missing service name
- 404 unknown service or path
- 405 method other than GET
- 500 conductor failure, error text verbatim

============================================================
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from aiohttp import web

from core.exceptions import ConductorError, StateError, UnknownServiceError
from orchestrator.core import Conductor
from orchestrator.models import CancellationToken


logger = logging.getLogger(__name__)


def json_response(data: Any, status: int = 200) -> web.Response:
    """Create JSON response."""
    return web.Response(
        text=json.dumps(data, indent=2),
        status=status,
        content_type="application/json",
    )


def text_response(text: str, status: int = 200) -> web.Response:
    return web.Response(text=text, status=status, content_type="text/plain")


# ============================================================
# API HANDLERS
# ============================================================

class ControlPlaneAPI:
    """
    HTTP handlers mapping one-to-one onto Conductor operations.
    """

    def __init__(
        self,
        conductor: Conductor,
        token: Optional[CancellationToken] = None,
    ):
        self._conductor = conductor
        self._token = token or CancellationToken()

    async def get_status(self, request: web.Request) -> web.Response:
        """
        GET /status

        Running flag, provided endpoints and required endpoints
        of every registered service.
        """
        status = await self._conductor.status()
        logger.debug("Served status response")
        return json_response({name: s.to_dict() for name, s in status.items()})

    async def start_service(self, request: web.Request) -> web.Response:
        """GET /start/{name}"""
        name = request.match_info.get("name", "")
        if not name:
            logger.info("Received bad request to start service")
            return text_response(
                "Service name is required in the URL path. For example /start/consensus-node",
                status=400,
            )

        try:
            await self._conductor.start_service(name, self._token)
        except UnknownServiceError as e:
            return text_response(str(e), status=404)
        except ConductorError as e:
            logger.warning(f"Failed to start service {name}: {e}")
            return text_response(str(e), status=500)

        return text_response(f"service {name} started")

    async def stop_service(self, request: web.Request) -> web.Response:
        """GET /stop/{name}"""
        name = request.match_info.get("name", "")
        if not name:
            logger.info("Received bad request to stop service")
            return text_response(
                "Service name is required in the URL path. For example /stop/consensus-node",
                status=400,
            )

        if name not in self._conductor.service_names:
            return text_response(f"service {name} does not exist", status=404)

        try:
            # fresh token: teardown is never cut short by the server's token
            await self._conductor.stop_service(name)
        except ConductorError as e:
            logger.warning(f"Failed to stop service {name}: {e}")
            return text_response(str(e), status=500)

        return text_response(f"service {name} stopped")


# ============================================================
# APPLICATION FACTORY
# ============================================================

def create_control_plane_app(
    conductor: Conductor,
    token: Optional[CancellationToken] = None,
    static_dir: Optional[Path] = None,
) -> web.Application:
    """
    Create the control plane application.

    Static assets are registered last so API routes win.
    """
    api = ControlPlaneAPI(conductor, token)

    app = web.Application()

    app.router.add_get("/status", api.get_status)
    app.router.add_get("/start/{name}", api.start_service)
    app.router.add_get("/start/", api.start_service)
    app.router.add_get("/start", api.start_service)
    app.router.add_get("/stop/{name}", api.stop_service)
    app.router.add_get("/stop/", api.stop_service)
    app.router.add_get("/stop", api.stop_service)

    if static_dir is not None:
        static_dir = Path(static_dir)

        async def index(request: web.Request) -> web.StreamResponse:
            index_file = static_dir / "index.html"
            if not index_file.is_file():
                raise web.HTTPNotFound()
            return web.FileResponse(index_file)

        app.router.add_get("/", index)
        app.router.add_static("/", static_dir)

    return app


# ============================================================
# SERVER
# ============================================================

class ControlPlaneServer:
    """
    Runs the control plane until the cancellation token fires.
    """

    def __init__(
        self,
        conductor: Conductor,
        host: str = "0.0.0.0",
        port: int = 8080,
        static_dir: Optional[Path] = None,
    ):
        self._conductor = conductor
        self._host = host
        self._port = port
        self._static_dir = static_dir

    async def serve(self, token: CancellationToken) -> None:
        """
        Serve requests until ``token`` is cancelled.

        Raises:
            StateError: If the conductor has not been set up
        """
        if not self._conductor.is_setup:
            raise StateError(
                message="conductor has not set up the services. Call setup() first",
                operation="serve",
            )

        app = create_control_plane_app(self._conductor, token, self._static_dir)
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, self._host, self._port)

        try:
            await site.start()
            logger.info(f"Starting service control panel on {self._host}:{self._port}")
            await token.wait()
        finally:
            await runner.cleanup()
            logger.info("Control panel server shutdown successfully")


__all__ = [
    "json_response",
    "ControlPlaneAPI",
    "create_control_plane_app",
    "ControlPlaneServer",
]
