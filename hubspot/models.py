"""
Pydantic models for HubSpot API responses and sync input.

Provider responses only declare the fields this bridge reads, all optional,
so unexpected payloads degrade into "not found" instead of crashing.
"""
from typing import List, Optional, Union
from pydantic import BaseModel


ProviderId = Union[int, str]


class SyncMessage(BaseModel):
    """Normalized chat message handed over by the messaging client"""
    address: str  # phone number or email of the conversation
    text: str
    is_inbound: bool
    sender: Optional[str] = None  # participant identifier of the other side
    timestamp: Optional[int] = None  # epoch milliseconds


class AuthenticatedUser(BaseModel):
    """HubSpot user owning the current access token"""
    display_name: str
    email: Optional[str] = None


class AccessTokenInfo(BaseModel):
    """GET /oauth/v1/access-tokens/{token}"""
    user: Optional[str] = None  # email of the authorizing user
    user_id: Optional[ProviderId] = None
    hub_id: Optional[ProviderId] = None
    hub_domain: Optional[str] = None
    expires_in: Optional[int] = None


class HubspotUser(BaseModel):
    """GET /settings/v3/users/{userId}"""
    id: Optional[ProviderId] = None
    email: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None


class ObjectRef(BaseModel):
    id: ProviderId


class SearchResponse(BaseModel):
    """POST /crm/v3/objects/contacts/search"""
    total: Optional[int] = None
    results: List[ObjectRef] = []


class ContactDetails(BaseModel):
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.firstname and self.lastname:
            return f"{self.firstname} {self.lastname}"
        return self.firstname or self.email or "Unknown"


class ContactResponse(BaseModel):
    """GET /crm/v3/objects/contacts/{contactId}"""
    id: Optional[ProviderId] = None
    properties: ContactDetails = ContactDetails()


class AssociationResult(BaseModel):
    toObjectId: ProviderId


class AssociationResponse(BaseModel):
    """GET /crm/v4/objects/contacts/{contactId}/associations/companies"""
    results: List[AssociationResult] = []


class TimelineEventResponse(BaseModel):
    """POST /integrators/timeline/v3/events"""
    id: Optional[str] = None
    objectId: Optional[ProviderId] = None
    eventTemplateId: Optional[ProviderId] = None
