"""Browser surface used to show the HubSpot consent page"""

import logging
import webbrowser
from typing import Protocol

logger = logging.getLogger(__name__)


class ConsentBrowser(Protocol):
    """A window the user completes HubSpot consent in"""

    @property
    def is_open(self) -> bool:
        ...

    async def open(self, url: str) -> None:
        ...

    def close(self) -> None:
        ...


class SystemBrowser:
    """Opens the consent page in the user's default browser

    The system browser cannot be tracked or closed from here, so the
    window is considered closed as soon as it was handed off. ``open``
    therefore returns right away instead of waiting for the user.
    """

    def __init__(self):
        self.last_url = None

    @property
    def is_open(self) -> bool:
        return False

    async def open(self, url: str) -> None:
        self.last_url = url
        if webbrowser.open(url):
            logger.info("Browser opened for HubSpot authorization")
        else:
            logger.warning(f"Could not open browser automatically, open this URL manually: {url}")

    def close(self) -> None:
        # Nothing to close, the page tells the user to close the tab
        return None
