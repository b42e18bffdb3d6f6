"""OAuth authorization URL construction"""

from typing import List, Optional
from urllib.parse import urlencode

from config import ConfigurationError
from settings import HUBSPOT_AUTHORIZE_URL, REDIRECT_URI, SCOPES


class AuthorizationURLBuilder:
    """Builds HubSpot authorization URLs for the authorization-code grant"""

    def __init__(self, redirect_uri: str = REDIRECT_URI, scopes: Optional[List[str]] = None):
        self.redirect_uri = redirect_uri
        self.scopes = list(scopes) if scopes is not None else list(SCOPES)

    def get_authorize_url(self, client_id: str) -> str:
        """Construct the authorize URL

        Args:
            client_id: Client id of the HubSpot app

        Returns:
            Full authorization URL

        Raises:
            ConfigurationError: If no client id is configured
        """
        if not client_id:
            raise ConfigurationError(
                "HubSpot Client ID not configured. Set HUBSPOT_CLIENT_ID environment variable."
            )

        params = {
            "client_id": client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.scopes),
            "response_type": "code",
        }
        return f"{HUBSPOT_AUTHORIZE_URL}?{urlencode(params)}"
