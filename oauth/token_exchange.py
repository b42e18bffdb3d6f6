"""OAuth token exchange functionality"""

import logging
from typing import Dict, Optional

import httpx

from config import OAuthCredentials
from settings import CONNECT_TIMEOUT, HUBSPOT_TOKEN_URL, REDIRECT_URI, REQUEST_TIMEOUT
from utils.http_errors import provider_message
from utils.storage import TokenRecord

logger = logging.getLogger(__name__)


class ExchangeError(Exception):
    """The token endpoint rejected the grant or could not be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


async def request_tokens(
    form: Dict[str, str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
    fallback_refresh_token: Optional[str] = None,
) -> TokenRecord:
    """POST a grant to the HubSpot token endpoint

    Args:
        form: Form fields of the grant (grant_type, client_id, ...)
        transport: Optional httpx transport (used by tests)
        fallback_refresh_token: Refresh token to keep if the response omits one

    Returns:
        The issued token record

    Raises:
        ExchangeError: On network failure, non-200 status or malformed body
    """
    grant_type = form.get("grant_type")
    async with httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT),
    ) as client:
        try:
            response = await client.post(
                HUBSPOT_TOKEN_URL,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.RequestError as e:
            raise ExchangeError(f"{grant_type} request failed: {e}") from e

    if response.status_code != 200:
        raise ExchangeError(
            f"{grant_type} grant rejected with status {response.status_code}: {provider_message(response)}",
            status_code=response.status_code,
        )

    try:
        payload = response.json()
        if fallback_refresh_token and not payload.get("refresh_token"):
            payload["refresh_token"] = fallback_refresh_token
        return TokenRecord.from_response(payload)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise ExchangeError(f"Malformed {grant_type} response: {e!r}") from e


async def exchange_code(
    code: str,
    credentials: OAuthCredentials,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> TokenRecord:
    """Exchange an authorization code for tokens

    Args:
        code: Authorization code from the OAuth redirect
        credentials: Client id/secret of the HubSpot app

    Raises:
        ExchangeError: If the exchange fails
    """
    logger.info(f"Exchanging authorization code for tokens at {HUBSPOT_TOKEN_URL}")
    return await request_tokens(
        {
            "grant_type": "authorization_code",
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "redirect_uri": REDIRECT_URI,
            "code": code,
        },
        transport=transport,
    )
