"""Configuration management package for the HubSpot message bridge"""

from .loader import ConfigLoader, get_config_loader
from .store import ConfigStore
from .credentials import ConfigurationError, CredentialResolver, OAuthCredentials

__all__ = [
    "ConfigLoader",
    "get_config_loader",
    "ConfigStore",
    "ConfigurationError",
    "CredentialResolver",
    "OAuthCredentials",
]
