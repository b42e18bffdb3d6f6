"""HubSpot REST API client used by the message sync"""

import logging
import os
import time
from typing import Any, Dict, Optional

import httpx

from settings import (
    COMPANY_EVENT_TEMPLATE_ENV,
    CONNECT_TIMEOUT,
    CONTACT_EVENT_TEMPLATE_ENV,
    HUBSPOT_API_BASE,
    MESSAGE_CHANNEL_LABEL,
    REQUEST_TIMEOUT,
)
from utils.http_errors import describe_error
from utils.storage import TokenStorage
from .models import (
    AccessTokenInfo,
    AssociationResponse,
    AuthenticatedUser,
    ContactDetails,
    ContactResponse,
    HubspotUser,
    SearchResponse,
    TimelineEventResponse,
)

logger = logging.getLogger(__name__)

CONTACT_SEARCH_PATH = "/crm/v3/objects/contacts/search"
TIMELINE_EVENTS_PATH = "/integrators/timeline/v3/events"
FALLBACK_DISPLAY_NAME = "Agent"


class HubspotAuthError(Exception):
    """No HubSpot access token is available"""


class HubspotApiClient:
    """Thin async wrapper over the HubSpot endpoints the sync needs

    Lookups treat provider failures as "not found" and return None;
    timeline posts return a failure value. Only a missing access token
    raises (HubspotAuthError), and only from lookups.
    """

    def __init__(
        self,
        storage: TokenStorage,
        base_url: str = HUBSPOT_API_BASE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.storage = storage
        self.base_url = base_url
        self.transport = transport
        self._authenticated_user: Optional[AuthenticatedUser] = None

    @property
    def access_token(self) -> str:
        token = self.storage.get_access_token()
        if not token:
            raise HubspotAuthError("HubSpot access token not found.")
        return token

    def _auth_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            transport=self.transport,
            timeout=httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT),
        )

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make an authenticated request and return the decoded JSON body

        Raises:
            HubspotAuthError: If no access token is stored
            httpx.HTTPError: On network failure or non-2xx status
            ValueError: If the body is not JSON
        """
        headers = self._auth_headers()
        async with self._client() as client:
            response = await client.request(method, path, headers=headers, json=json, params=params)
            response.raise_for_status()
            return response.json()

    async def _introspect_token(self) -> AccessTokenInfo:
        data = await self._request("GET", f"/oauth/v1/access-tokens/{self.access_token}")
        return AccessTokenInfo.model_validate(data)

    # Authenticated user

    async def get_authenticated_user(self) -> AuthenticatedUser:
        """Identify the HubSpot user behind the access token

        Never raises; falls back to the user's email, then to "Agent".
        The result is cached until clear_authenticated_user_cache().
        """
        if self._authenticated_user:
            return self._authenticated_user

        try:
            info = await self._introspect_token()
        except (HubspotAuthError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to get authenticated user info: {describe_error(e)}")
            self._authenticated_user = AuthenticatedUser(display_name=FALLBACK_DISPLAY_NAME)
            return self._authenticated_user

        user_email = info.user
        if not user_email:
            logger.warning("Could not retrieve user email from token info")
            self._authenticated_user = AuthenticatedUser(display_name=FALLBACK_DISPLAY_NAME)
            return self._authenticated_user

        if info.user_id is not None:
            try:
                data = await self._request("GET", f"/settings/v3/users/{info.user_id}")
                user = HubspotUser.model_validate(data)
                display_name = f"{user.firstName or ''} {user.lastName or ''}".strip()
                self._authenticated_user = AuthenticatedUser(
                    display_name=display_name or user_email,
                    email=user_email,
                )
                logger.info(f"Authenticated HubSpot user: {self._authenticated_user.display_name}")
                return self._authenticated_user
            except (HubspotAuthError, httpx.HTTPError, ValueError) as e:
                logger.debug(f"Could not fetch user details, using email as display name: {describe_error(e)}")

        self._authenticated_user = AuthenticatedUser(display_name=user_email, email=user_email)
        logger.info(f"Authenticated HubSpot user: {self._authenticated_user.display_name}")
        return self._authenticated_user

    async def get_user_display_name(self) -> str:
        user = await self.get_authenticated_user()
        return user.display_name or user.email or FALLBACK_DISPLAY_NAME

    def clear_authenticated_user_cache(self) -> None:
        self._authenticated_user = None
        logger.debug("Cleared authenticated user cache")

    async def get_sender_name(self, is_from_me: bool, participant_id: Optional[str] = None) -> str:
        """Label for who wrote a message: our HubSpot user or the other participant"""
        if is_from_me:
            return await self.get_user_display_name()
        return participant_id or "Unknown"

    async def get_portal_id(self) -> str:
        """HubSpot portal (hub) id of the token, "unknown" if it cannot be fetched"""
        try:
            info = await self._introspect_token()
        except (HubspotAuthError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Could not fetch portal ID: {describe_error(e)}")
            return "unknown"
        return str(info.hub_id) if info.hub_id is not None else "unknown"

    # Contacts and companies

    async def _search_contact(self, property_name: str, value: str, properties: list) -> Optional[str]:
        payload = {
            "filterGroups": [
                {
                    "filters": [{"propertyName": property_name, "operator": "EQ", "value": value}]
                }
            ],
            "properties": properties,
            "limit": 1,
        }
        try:
            data = await self._request("POST", CONTACT_SEARCH_PATH, json=payload)
            results = SearchResponse.model_validate(data).results
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"HubSpot contact lookup by {property_name} failed: {describe_error(e)}")
            return None
        return str(results[0].id) if results else None

    async def lookup_contact_by_phone(self, phone: str) -> Optional[str]:
        return await self._search_contact("phone", phone, ["hs_object_id", "email", "phone"])

    async def lookup_contact_by_email(self, email: str) -> Optional[str]:
        return await self._search_contact("email", email, ["hs_object_id", "email"])

    async def get_contact_details(self, contact_id: str) -> ContactDetails:
        """First name, last name and email of a contact (empty on failure)"""
        try:
            data = await self._request(
                "GET",
                f"/crm/v3/objects/contacts/{contact_id}",
                params={"properties": "firstname,lastname,email"},
            )
            return ContactResponse.model_validate(data).properties
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch contact details: {describe_error(e)}")
            return ContactDetails()

    async def get_associated_company_id(self, contact_id: str) -> Optional[str]:
        try:
            data = await self._request("GET", f"/crm/v4/objects/contacts/{contact_id}/associations/companies")
            results = AssociationResponse.model_validate(data).results
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch company association: {describe_error(e)}")
            return None
        return str(results[0].toObjectId) if results else None

    # Timeline events

    async def post_timeline_event_for_contact(
        self,
        text: str,
        sender: str,
        is_inbound: bool,
        contact_id: Optional[str] = None,
        email: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> Optional[str]:
        """Post a message event on a contact's timeline

        The contact is addressed by id when known, else by email.

        Returns:
            The contact object id the event was attached to, or None on failure
        """
        template_id = os.getenv(CONTACT_EVENT_TEMPLATE_ENV)
        if not template_id:
            logger.error(f"{CONTACT_EVENT_TEMPLATE_ENV} not set, cannot post contact timeline event")
            return None

        direction = f"**📨 Received from {sender}:**" if is_inbound else f"**📤 Sent by {sender}:**"
        payload: Dict[str, Any] = {
            "eventTemplateId": template_id,
            "tokens": {
                "message": text,
                "senderLabel": sender,
                "isInbound": str(is_inbound).lower(),
                "messageDirection": direction,
            },
            "timestamp": timestamp if timestamp is not None else int(time.time() * 1000),
        }

        if contact_id:
            payload["objectId"] = contact_id
        elif email:
            payload["email"] = email
        else:
            logger.error("Must provide either contact_id or email to post contact timeline event.")
            return None

        try:
            data = await self._request("POST", TIMELINE_EVENTS_PATH, json=payload)
            event = TimelineEventResponse.model_validate(data)
        except (HubspotAuthError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Error posting contact timeline event: {describe_error(e)}")
            return None

        logger.info("Posted timeline event to contact.")
        if event.objectId is not None:
            return str(event.objectId)
        return contact_id

    async def post_timeline_event_for_company(
        self,
        company_id: str,
        text: str,
        sender: str,
        is_inbound: bool,
        contact_name: Optional[str] = None,
        contact_email: Optional[str] = None,
        contact_id: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> bool:
        """Post a message event on a company's timeline, with the contact's context

        Returns:
            True if HubSpot accepted the event
        """
        template_id = os.getenv(COMPANY_EVENT_TEMPLATE_ENV)
        if not template_id:
            logger.error(f"{COMPANY_EVENT_TEMPLATE_ENV} not set, cannot post company timeline event")
            return False

        snippet = f"{text[:57]}..." if len(text) > 60 else text
        name = contact_name or "Unknown"
        portal_id = await self.get_portal_id()

        if is_inbound:
            header_direction = f"{MESSAGE_CHANNEL_LABEL} from **{name}**"
            detail_direction = f"Incoming Message (from {name})"
        else:
            header_direction = f"{MESSAGE_CHANNEL_LABEL} to **{name}** (by {sender})"
            detail_direction = f"Outgoing Message (to {name})"

        payload = {
            "eventTemplateId": template_id,
            "objectId": company_id,
            "tokens": {
                "message": text,
                "senderLabel": sender,
                "isInbound": str(is_inbound).lower(),
                "headerMessageSnippet": snippet,
                "contactDisplayName": name,
                "contactLinkEmail": contact_email or "",
                "contactHsId": contact_id or "",
                "appProvidedPortalId": portal_id,
                "headerDirection": header_direction,
                "detailDirection": detail_direction,
            },
            "timestamp": timestamp if timestamp is not None else int(time.time() * 1000),
        }

        try:
            await self._request("POST", TIMELINE_EVENTS_PATH, json=payload)
        except (HubspotAuthError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Error posting company timeline event: {describe_error(e)}")
            return False

        logger.info("Posted timeline event to company.")
        return True
