"""OAuth token refresh functionality"""

import logging
from typing import Optional

import httpx

from config import OAuthCredentials
from utils.storage import TokenRecord
from .token_exchange import request_tokens

logger = logging.getLogger(__name__)


async def refresh_tokens(
    refresh_token: str,
    credentials: OAuthCredentials,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> TokenRecord:
    """Trade a refresh token for a new token record

    One attempt only; retrying is up to the caller.

    Raises:
        ExchangeError: If HubSpot rejects the refresh token or is unreachable
    """
    logger.info("Attempting to refresh HubSpot OAuth tokens...")
    return await request_tokens(
        {
            "grant_type": "refresh_token",
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "refresh_token": refresh_token,
        },
        transport=transport,
        fallback_refresh_token=refresh_token,
    )
