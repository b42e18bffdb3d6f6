"""HubSpot CRM integration: API client and message sync"""

from .models import AuthenticatedUser, ContactDetails, SyncMessage
from .api_client import HubspotApiClient, HubspotAuthError
from .sync import HubspotSyncPipeline, is_phone_address

__all__ = [
    "AuthenticatedUser",
    "ContactDetails",
    "SyncMessage",
    "HubspotApiClient",
    "HubspotAuthError",
    "HubspotSyncPipeline",
    "is_phone_address",
]
