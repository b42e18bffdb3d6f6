"""
HubSpot Message Bridge - host-facing HTTP API package.

This package exposes the OAuth connection controls and message sync
ingestion consumed by the desktop UI.
"""
from .server import ApiServer, setup_logging
from .app import app, create_app

__version__ = "1.0.0"

__all__ = [
    'ApiServer',
    'setup_logging',
    'app',
    'create_app',
]
