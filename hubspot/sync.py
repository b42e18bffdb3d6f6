"""Mirror chat messages onto HubSpot contact and company timelines"""

import logging
import re
from typing import TYPE_CHECKING, Optional

from .api_client import HubspotApiClient, HubspotAuthError
from .models import SyncMessage

if TYPE_CHECKING:
    from oauth import OAuthManager

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-()]+$")


def is_phone_address(address: str) -> bool:
    return bool(PHONE_PATTERN.match(address))


class HubspotSyncPipeline:
    """Best-effort sync of each message to HubSpot

    Every step that comes up empty ends the sync for that message; nothing
    is retried or queued, and no exception ever reaches the caller.
    """

    def __init__(self, oauth: "OAuthManager"):
        self.oauth = oauth

    @property
    def client(self) -> Optional[HubspotApiClient]:
        return self.oauth.api_client

    async def handle_new_message(self, message: SyncMessage) -> None:
        try:
            client = self.client
            if client is None:
                logger.debug("HubSpot not connected, skipping message sync")
                return

            if not await self.oauth.refresh_token_if_needed():
                logger.warning("HubSpot token refresh failed, skipping message sync")
                return

            sender = await client.get_sender_name(not message.is_inbound, message.sender)

            text = message.text or ""
            logger.debug(
                "Processing HubSpot message event: %s",
                {
                    "address": message.address,
                    "text": text[:100] + ("..." if len(text) > 100 else ""),
                    "sender": sender,
                    "isInbound": message.is_inbound,
                },
            )

            if not message.address or not text:
                logger.warning(
                    f"Missing required data for HubSpot event: "
                    f"{{'address': {bool(message.address)}, 'text': {bool(text)}}}"
                )
                return

            await self.post_combined_contact_and_company_event(
                message.address, text, sender, message.is_inbound, timestamp=message.timestamp
            )
        except Exception as e:
            # A failed CRM sync must never disturb message delivery
            logger.error(f"Failed to handle HubSpot message event: {e!r}")

    async def post_combined_contact_and_company_event(
        self,
        address: str,
        text: str,
        sender: str,
        is_inbound: bool,
        timestamp: Optional[int] = None,
    ) -> None:
        client = self.client
        if client is None:
            logger.warning("HubSpot not connected, cannot post timeline events")
            return

        try:
            await self._post_events(client, address, text, sender, is_inbound, timestamp)
        except HubspotAuthError as e:
            logger.error(f"HubSpot sync aborted: {e}")

    async def _post_events(
        self,
        client: HubspotApiClient,
        address: str,
        text: str,
        sender: str,
        is_inbound: bool,
        timestamp: Optional[int],
    ) -> None:
        contact_id: Optional[str] = None
        contact_email: Optional[str] = None

        if is_phone_address(address):
            contact_id = await client.lookup_contact_by_phone(address)

        if not contact_id and "@" in address:
            # Unknown emails can still be addressed by email on the timeline
            contact_email = address
            contact_id = await client.lookup_contact_by_email(address)

        if not contact_id and not contact_email:
            logger.warning(f"Could not resolve contact for address: {address}")
            return

        contact_obj_id = await client.post_timeline_event_for_contact(
            text,
            sender,
            is_inbound,
            contact_id=contact_id,
            email=contact_email,
            timestamp=timestamp,
        )
        if not contact_obj_id:
            return

        company_id = await client.get_associated_company_id(contact_obj_id)
        if not company_id:
            logger.info("No company associated. Skipping company timeline event.")
            return

        details = await client.get_contact_details(contact_obj_id)

        await client.post_timeline_event_for_company(
            company_id,
            text,
            sender,
            is_inbound,
            contact_name=details.display_name,
            contact_email=details.email,
            contact_id=contact_obj_id,
            timestamp=timestamp,
        )
