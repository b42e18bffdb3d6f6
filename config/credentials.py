"""HubSpot OAuth client credential resolution"""

import os
from typing import NamedTuple, Optional

from .store import ConfigStore


class ConfigurationError(ValueError):
    """Required configuration (client id/secret) is missing"""


class OAuthCredentials(NamedTuple):
    """OAuth client credentials of the HubSpot app"""
    client_id: str
    client_secret: str

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class CredentialResolver:
    """Resolves client credentials: environment variable first, then the config store

    Values are looked up on every access so credentials added while the
    process is running are picked up without a restart.
    """

    def __init__(self, store: Optional[ConfigStore] = None):
        self.store = store or ConfigStore()

    def _resolve(self, env_var: str, config_key: str) -> str:
        return os.getenv(env_var) or self.store.get(config_key) or ""

    @property
    def client_id(self) -> str:
        from settings import CLIENT_ID_ENV, CLIENT_ID_CONFIG_KEY
        return self._resolve(CLIENT_ID_ENV, CLIENT_ID_CONFIG_KEY)

    @property
    def client_secret(self) -> str:
        from settings import CLIENT_SECRET_ENV, CLIENT_SECRET_CONFIG_KEY
        return self._resolve(CLIENT_SECRET_ENV, CLIENT_SECRET_CONFIG_KEY)

    def get_credentials(self) -> OAuthCredentials:
        return OAuthCredentials(client_id=self.client_id, client_secret=self.client_secret)

    def save_credentials(self, client_id: Optional[str] = None, client_secret: Optional[str] = None) -> None:
        """Persist credentials to the config store (only the values given)"""
        from settings import CLIENT_ID_CONFIG_KEY, CLIENT_SECRET_CONFIG_KEY
        if client_id is not None:
            self.store.set(CLIENT_ID_CONFIG_KEY, client_id)
        if client_secret is not None:
            self.store.set(CLIENT_SECRET_CONFIG_KEY, client_secret)
