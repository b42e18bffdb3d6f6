"""
FastAPI application initialization and configuration.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from hubspot import HubspotSyncPipeline
from oauth import OAuthManager
from .middleware import log_requests_middleware
from .endpoints import health_router, hubspot_router

logger = logging.getLogger(__name__)


def create_app(oauth: Optional[OAuthManager] = None) -> FastAPI:
    """Build the host API

    Args:
        oauth: Lifecycle manager to serve; created at startup when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        manager = oauth or OAuthManager()
        app.state.oauth = manager
        app.state.pipeline = HubspotSyncPipeline(manager)
        logger.debug("HubSpot OAuth manager and sync pipeline ready")
        try:
            yield
        finally:
            await manager.stop()

    app = FastAPI(title="HubSpot Message Bridge", version="1.0.0", lifespan=lifespan)

    # Add middleware
    app.middleware("http")(log_requests_middleware)

    # Register routers
    app.include_router(health_router)
    app.include_router(hubspot_router)

    logger.debug("FastAPI application initialized with all routers and middleware")
    return app


app = create_app()
