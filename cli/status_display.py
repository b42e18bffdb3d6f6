"""Status display functionality for CLI"""

from rich.table import Table
from utils.storage import TokenStorage


def show_token_status(storage: TokenStorage, console):
    """
    Display detailed token status

    Args:
        storage: TokenStorage instance
        console: Rich console for output
    """
    status = storage.get_status()

    table = Table(title="HubSpot Token Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Has Tokens", "Yes" if status["has_tokens"] else "No")
    table.add_row("Is Expired", "Yes" if status["is_expired"] else "No")
    table.add_row("Needs Refresh", "Yes" if status["needs_refresh"] else "No")

    if status["expires_at"]:
        table.add_row("Expires At", status["expires_at"])
    table.add_row("Time Until Expiry", status["time_until_expiry"])

    table.add_row("Token File", status["token_file"])

    console.print(table)


def get_auth_status(storage: TokenStorage) -> tuple[str, str]:
    """
    Get authentication status and expiry info

    Args:
        storage: TokenStorage instance

    Returns:
        Tuple of (status, detail_message)
    """
    status = storage.get_status()

    if not status["has_tokens"]:
        return "NO AUTH", "No tokens available"

    if status["is_expired"]:
        return "EXPIRED", f"Expired {status['time_until_expiry']}"

    if status["needs_refresh"]:
        return "EXPIRING", f"Expires in {status['time_until_expiry']}"

    return "VALID", f"Valid for {status['time_until_expiry']}"
