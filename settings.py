from pathlib import Path
from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# Host API server configuration
PORT = config.get("PORT", 8081)
LOG_LEVEL = config.get("LOG_LEVEL", "info")
BIND_ADDRESS = config.get("BIND_ADDRESS", "127.0.0.1")

# Per-user data directory holding the token artifact and persisted config
DATA_DIR = config.get("DATA_DIR", str(Path.home() / ".hubspot-message-bridge"))
TOKEN_FILE = config.get("TOKEN_FILE", str(Path(DATA_DIR) / "hubspot_tokens.json"))
CONFIG_FILE = config.get("CONFIG_FILE", str(Path(DATA_DIR) / "config.json"))

# Timeout configuration for provider calls
CONNECT_TIMEOUT = config.get("CONNECT_TIMEOUT", 10.0)
REQUEST_TIMEOUT = config.get("REQUEST_TIMEOUT", 30.0)

# OAuth configuration (hardcoded - not user configurable)
# The redirect URI must match the one registered on the HubSpot app
HUBSPOT_AUTHORIZE_URL = "https://app.hubspot.com/oauth/authorize"
HUBSPOT_API_BASE = "https://api.hubapi.com"
HUBSPOT_TOKEN_URL = f"{HUBSPOT_API_BASE}/oauth/v1/token"
OAUTH_CALLBACK_HOST = "localhost"
OAUTH_CALLBACK_PORT = 8642
OAUTH_CALLBACK_PATH = "/hubspot/callback"
REDIRECT_URI = f"http://{OAUTH_CALLBACK_HOST}:{OAUTH_CALLBACK_PORT}{OAUTH_CALLBACK_PATH}"
SCOPES = [
    "crm.objects.contacts.read",
    "crm.objects.contacts.write",
    "settings.users.read",
    "oauth",
    "timeline",
]

# Seconds an unanswered callback listener stays up (0 disables the timeout)
OAUTH_CALLBACK_TIMEOUT = config.get("OAUTH_CALLBACK_TIMEOUT", 600)

# Refresh tokens that expire within this many seconds
REFRESH_THRESHOLD_SECONDS = config.get("REFRESH_THRESHOLD_SECONDS", 300)

# Credential sources: environment first, then the persisted config store
CLIENT_ID_ENV = "HUBSPOT_CLIENT_ID"
CLIENT_SECRET_ENV = "HUBSPOT_CLIENT_SECRET"
CLIENT_ID_CONFIG_KEY = "hubspot_client_id"
CLIENT_SECRET_CONFIG_KEY = "hubspot_client_secret"

# Timeline event templates (environment only, read at call time)
CONTACT_EVENT_TEMPLATE_ENV = "HUBSPOT_CONTACT_EVENT_TEMPLATE_ID"
COMPANY_EVENT_TEMPLATE_ENV = "HUBSPOT_COMPANY_EVENT_TEMPLATE_ID"

# Label used in company timeline headers ("iMessage from **Jane Doe**")
MESSAGE_CHANNEL_LABEL = config.get("MESSAGE_CHANNEL_LABEL", "iMessage")
