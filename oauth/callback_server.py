"""Local HTTP server capturing the HubSpot OAuth redirect"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from aiohttp import web

from settings import (
    OAUTH_CALLBACK_HOST,
    OAUTH_CALLBACK_PATH,
    OAUTH_CALLBACK_PORT,
    OAUTH_CALLBACK_TIMEOUT,
)

logger = logging.getLogger(__name__)


class CallbackResult:
    """HTTP outcome of handling an authorization code"""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message

    @property
    def success(self) -> bool:
        return self.status == 200


CodeHandler = Callable[[str], Awaitable[CallbackResult]]


class OAuthCallbackServer:
    """Single-use local HTTP server for the OAuth redirect

    Only ``GET <path>?code=...`` is served; the code is handed to
    ``on_code`` and the server stops itself once the response is sent,
    whatever the outcome. Every other request gets a 404.
    """

    def __init__(
        self,
        on_code: CodeHandler,
        host: str = OAUTH_CALLBACK_HOST,
        port: int = OAUTH_CALLBACK_PORT,
        path: str = OAUTH_CALLBACK_PATH,
        idle_timeout: Optional[float] = OAUTH_CALLBACK_TIMEOUT,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self.on_code = on_code
        self.host = host
        self.port = port
        self.path = path
        self.idle_timeout = idle_timeout
        self.on_close = on_close
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self.bound_port: Optional[int] = None
        self._closed = asyncio.Event()
        self._closed.set()
        self._idle_task: Optional[asyncio.Task] = None
        self._stop_task: Optional[asyncio.Task] = None
        self._handling = False

        # Catch-all so unknown paths get the same plain-text 404
        self.app.router.add_route("*", "/{tail:.*}", self._handle_request)

    @property
    def is_running(self) -> bool:
        return self.runner is not None

    async def _handle_request(self, request: web.Request) -> web.StreamResponse:
        code = request.query.get("code")
        if request.method != "GET" or request.path != self.path or not code or self._handling:
            return web.Response(text="Invalid route.", status=404)

        # Claimed before the exchange so a concurrent redirect cannot reuse the listener
        self._handling = True
        try:
            result = await self.on_code(code)
        except Exception as e:
            logger.exception(f"Error in OAuth callback handler: {e}")
            result = CallbackResult(500, "OAuth token exchange failed.")

        response = web.Response(text=result.message, status=result.status)
        await response.prepare(request)
        await response.write_eof()

        # Single use: shut down after the browser got its answer
        self._stop_task = asyncio.create_task(self.stop())
        return response

    async def start(self) -> None:
        """Bind the listener

        Raises:
            OSError: If the port cannot be bound
        """
        if self.runner is not None:
            return

        runner = web.AppRunner(self.app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, host=self.host, port=self.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise

        self.runner = runner
        self.bound_port = runner.addresses[0][1] if runner.addresses else self.port
        self._handling = False
        self._closed.clear()
        logger.info(f"OAuth server listening on port {self.bound_port}")

        if self.idle_timeout:
            self._idle_task = asyncio.create_task(self._expire_after(self.idle_timeout))

    async def _expire_after(self, timeout: float) -> None:
        await asyncio.sleep(timeout)
        logger.warning(f"No OAuth callback received within {timeout} seconds, stopping listener")
        await self.stop()

    async def stop(self) -> None:
        """Stop the listener; safe to call repeatedly"""
        if self.runner is None:
            return

        runner, self.runner = self.runner, None
        if self._idle_task is not None and self._idle_task is not asyncio.current_task():
            self._idle_task.cancel()
        self._idle_task = None

        logger.info("Stopping HubSpot OAuth callback server...")
        try:
            await runner.cleanup()
        finally:
            self._closed.set()
            if self.on_close is not None:
                self.on_close()

    async def wait_closed(self, timeout: Optional[float] = None) -> bool:
        """Wait until the listener has shut down

        Returns:
            True if closed, False on timeout
        """
        try:
            await asyncio.wait_for(self._closed.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False
