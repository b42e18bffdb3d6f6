"""
Endpoint handlers for the host API.
"""
from .health import router as health_router
from .hubspot import router as hubspot_router

__all__ = [
    'health_router',
    'hubspot_router',
]
