"""OAuth authentication package for HubSpot"""

import asyncio
import enum
import logging
from typing import Callable, Optional

import httpx

from config import ConfigurationError, CredentialResolver
from settings import REFRESH_THRESHOLD_SECONDS
from utils.events import AUTH_SUCCESS_EVENT, DISCONNECTED_EVENT, EventSink, LoggingEventSink
from utils.storage import TokenRecord, TokenStorage
from hubspot.api_client import HubspotApiClient
from .authorization import AuthorizationURLBuilder
from .browser import ConsentBrowser, SystemBrowser
from .callback_server import CallbackResult, OAuthCallbackServer
from .token_exchange import ExchangeError, exchange_code
from .token_refresh import refresh_tokens

logger = logging.getLogger(__name__)


class OAuthState(enum.Enum):
    IDLE = "idle"
    LISTENING = "listening"
    AWAITING_CONSENT = "awaiting_consent"


class OAuthManager:
    """HubSpot OAuth lifecycle

    This class orchestrates the OAuth authentication flow including:
    - Authorization URL construction and the consent browser
    - The single-use redirect capture server and code exchange
    - Token refresh and disconnect
    - Ownership of the HubSpot API client, which exists only while connected
    """

    def __init__(
        self,
        storage: Optional[TokenStorage] = None,
        credentials: Optional[CredentialResolver] = None,
        events: Optional[EventSink] = None,
        browser: Optional[ConsentBrowser] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        server_factory: Callable[..., OAuthCallbackServer] = OAuthCallbackServer,
        client_factory: Callable[[TokenStorage], HubspotApiClient] = HubspotApiClient,
    ):
        self.storage = storage or TokenStorage()
        self.credentials = credentials or CredentialResolver()
        self.events = events or LoggingEventSink()
        self.browser = browser or SystemBrowser()
        self.transport = transport
        self.auth_builder = AuthorizationURLBuilder()
        self.state = OAuthState.IDLE
        self.server: Optional[OAuthCallbackServer] = None
        self._server_factory = server_factory
        self._client_factory = client_factory
        self._refresh_lock = asyncio.Lock()

        self.api_client: Optional[HubspotApiClient] = None
        if self.storage.get_tokens():
            self.api_client = self._client_factory(self.storage)
            logger.info("HubSpot API client initialized from stored tokens")

    @property
    def is_listening(self) -> bool:
        return self.state is not OAuthState.IDLE

    @property
    def is_connected(self) -> bool:
        return self.api_client is not None and self.storage.has_tokens()

    def get_authorize_url(self) -> str:
        """Build the consent URL

        Raises:
            ConfigurationError: If no client id is configured
        """
        return self.auth_builder.get_authorize_url(self.credentials.client_id)

    async def start(self) -> None:
        """Start the authorization flow

        Raises:
            ConfigurationError: If no client id is configured
            OSError: If the callback port cannot be bound
        """
        if self.is_listening:
            logger.info("HubSpot OAuth service already running.")
            if not self.browser.is_open:
                # Server is up but the consent window was closed, show it again
                await self.browser.open(self.get_authorize_url())
            return

        auth_url = self.get_authorize_url()

        logger.info("Starting HubSpot OAuth service...")
        server = self._server_factory(self._complete_authorization, on_close=self._on_server_closed)
        await server.start()

        self.server = server
        self.state = OAuthState.LISTENING

        await self.browser.open(auth_url)
        if self.state is OAuthState.LISTENING:
            self.state = OAuthState.AWAITING_CONSENT

    async def stop(self) -> None:
        """Close the callback listener; no-op when not listening"""
        if self.server is None:
            self.state = OAuthState.IDLE
            return
        await self.server.stop()

    def _on_server_closed(self) -> None:
        self.server = None
        self.state = OAuthState.IDLE

    async def wait_for_authorization(self, timeout: Optional[float] = None) -> bool:
        """Wait for the current attempt to finish

        Returns:
            True if valid tokens are stored afterwards
        """
        server = self.server
        if server is not None:
            finished = await server.wait_closed(timeout)
            if not finished:
                await self.stop()
        return self.has_valid_tokens()

    async def _complete_authorization(self, code: str) -> CallbackResult:
        """Exchange the redirect's code and connect the API client"""
        credentials = self.credentials.get_credentials()
        if not credentials.is_configured:
            logger.error("HubSpot credentials not configured")
            return CallbackResult(
                500,
                "HubSpot credentials not configured. "
                "Set HUBSPOT_CLIENT_ID and HUBSPOT_CLIENT_SECRET environment variables.",
            )

        try:
            tokens = await exchange_code(code, credentials, transport=self.transport)
            self.storage.save_tokens(tokens)
        except (ExchangeError, OSError) as e:
            logger.error(f"OAuth exchange failed: {e}")
            return CallbackResult(500, "OAuth token exchange failed.")

        if self.api_client is None:
            self.api_client = self._client_factory(self.storage)
            logger.info("HubSpot API client initialized after successful OAuth")
        else:
            self.api_client.clear_authenticated_user_cache()

        self.events.publish(AUTH_SUCCESS_EVENT, True)
        self.browser.close()

        return CallbackResult(200, "HubSpot Auth successful! You may close this window.")

    def get_tokens(self) -> Optional[TokenRecord]:
        return self.storage.get_tokens()

    def has_valid_tokens(self) -> bool:
        return self.storage.is_valid()

    def disconnect(self) -> None:
        """Forget the tokens and drop the API client"""
        logger.info("Disconnecting HubSpot OAuth...")
        self.storage.clear_tokens()

        if self.api_client is not None:
            self.api_client.clear_authenticated_user_cache()
        self.api_client = None
        logger.info("HubSpot API client cleared after disconnect")

        self.events.publish(DISCONNECTED_EVENT)

    async def refresh_token_if_needed(self, threshold_seconds: float = REFRESH_THRESHOLD_SECONDS) -> bool:
        """Refresh the access token when it is about to expire

        Returns:
            True if the caller may proceed (no refresh needed or refresh
            succeeded), False if a needed refresh failed
        """
        async with self._refresh_lock:
            # Re-check under the lock, a concurrent caller may have refreshed already
            if not self.storage.needs_refresh(threshold_seconds):
                return True
            return await self._refresh_token()

    async def refresh_token(self) -> bool:
        """Refresh the access token now

        Returns:
            True if refresh succeeded, False otherwise
        """
        async with self._refresh_lock:
            return await self._refresh_token()

    async def _refresh_token(self) -> bool:
        refresh_token = self.storage.get_refresh_token()
        if not refresh_token:
            logger.error("No refresh token available for refresh")
            return False

        credentials = self.credentials.get_credentials()
        if not credentials.is_configured:
            logger.error("HubSpot credentials not configured for token refresh")
            return False

        try:
            tokens = await refresh_tokens(refresh_token, credentials, transport=self.transport)
            self.storage.save_tokens(tokens)
        except (ExchangeError, OSError) as e:
            logger.error(f"Failed to refresh token: {e}")
            # A rejected refresh token is useless, do not keep it around
            self.storage.clear_tokens()
            if self.api_client is not None:
                self.api_client.clear_authenticated_user_cache()
            return False

        if self.api_client is not None:
            self.api_client.clear_authenticated_user_cache()

        logger.info("Successfully refreshed HubSpot tokens")
        return True


__all__ = [
    "OAuthManager",
    "OAuthState",
    "AuthorizationURLBuilder",
    "CallbackResult",
    "OAuthCallbackServer",
    "ConsentBrowser",
    "SystemBrowser",
    "ExchangeError",
    "ConfigurationError",
    "exchange_code",
    "refresh_tokens",
]
