"""
Control Plane Package.

HTTP status/start/stop surface over the Conductor.
"""

from .api import (
    ControlPlaneAPI,
    ControlPlaneServer,
    create_control_plane_app,
)

__all__ = [
    "ControlPlaneAPI",
    "ControlPlaneServer",
    "create_control_plane_app",
]
