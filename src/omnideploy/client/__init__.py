"""
Control-plane clients.

ControlPlaneClient is the interface the engine talks to;
RestControlPlaneClient implements it over httpx.
"""

from .base import ControlPlaneClient
from .rest import ClientConfig, RestControlPlaneClient

__all__ = ["ControlPlaneClient", "ClientConfig", "RestControlPlaneClient"]
