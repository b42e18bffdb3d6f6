"""
HubSpot connection endpoints consumed by the desktop UI.
"""
import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request

from config import ConfigurationError
from hubspot import HubspotSyncPipeline, SyncMessage
from oauth import OAuthManager
from ..models import SuccessResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/hubspot")


def _oauth(request: Request) -> OAuthManager:
    return request.app.state.oauth


def _pipeline(request: Request) -> HubspotSyncPipeline:
    return request.app.state.pipeline


@router.post("/oauth/start", response_model=SuccessResponse)
async def start_oauth(request: Request):
    """Open the HubSpot consent page and wait for the redirect in the background"""
    try:
        await _oauth(request).start()
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OSError as e:
        logger.error(f"Could not start OAuth callback server: {e}")
        raise HTTPException(status_code=500, detail=f"Could not start OAuth callback server: {e}")
    return SuccessResponse(message="HubSpot OAuth flow started")


@router.get("/tokens", response_model=SuccessResponse)
async def get_tokens(request: Request):
    tokens = _oauth(request).get_tokens()
    return SuccessResponse(
        message="Retrieved stored HubSpot tokens",
        data=tokens.to_dict() if tokens else None,
    )


@router.post("/disconnect", response_model=SuccessResponse)
async def disconnect(request: Request):
    _oauth(request).disconnect()
    return SuccessResponse(message="HubSpot disconnected successfully")


@router.get("/status", response_model=SuccessResponse)
async def connection_status(request: Request):
    """Connection state without exposing secrets"""
    oauth = _oauth(request)
    return SuccessResponse(
        message="Retrieved HubSpot connection status",
        data={
            "connected": oauth.is_connected and oauth.has_valid_tokens(),
            "listening": oauth.is_listening,
            "tokens": oauth.storage.get_status(),
        },
    )


@router.post("/messages", status_code=202, response_model=SuccessResponse)
async def sync_message(message: SyncMessage, request: Request, background_tasks: BackgroundTasks):
    """Queue a message for timeline sync; the response does not wait for HubSpot"""
    background_tasks.add_task(_pipeline(request).handle_new_message, message)
    return SuccessResponse(message="Message accepted for HubSpot sync")
