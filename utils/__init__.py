"""Shared utilities package for the HubSpot message bridge"""

from .storage import TokenRecord, TokenStorage
from .events import (
    AUTH_SUCCESS_EVENT,
    DISCONNECTED_EVENT,
    EventSink,
    LoggingEventSink,
)

__all__ = [
    "TokenRecord",
    "TokenStorage",
    "AUTH_SUCCESS_EVENT",
    "DISCONNECTED_EVENT",
    "EventSink",
    "LoggingEventSink",
]
