"""Outbound notifications toward the desktop UI"""

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

AUTH_SUCCESS_EVENT = "hubspot-auth-success"
DISCONNECTED_EVENT = "hubspot-disconnected"


class EventSink(Protocol):
    """Fire-and-forget channel the UI listens on"""

    def publish(self, name: str, payload: Any = None) -> None:
        ...


class LoggingEventSink:
    """Event sink that only records events in the log

    Used when no UI is attached (CLI, headless host API).
    """

    def publish(self, name: str, payload: Any = None) -> None:
        logger.info(f"UI event: {name} payload={payload!r}")
