"""Authentication handlers for CLI"""

from typing import Optional

from config import ConfigurationError, CredentialResolver
from oauth import OAuthManager
from settings import REDIRECT_URI


async def login(oauth: OAuthManager, console, timeout: Optional[float] = None) -> bool:
    """
    Run the browser login flow and wait for the redirect

    Args:
        oauth: OAuthManager instance
        console: Rich console for output
        timeout: Seconds to wait for the redirect (None waits for the server's own timeout)

    Returns:
        True if valid tokens are stored afterwards
    """
    console.print("Starting HubSpot OAuth login flow...")

    try:
        await oauth.start()
    except ConfigurationError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        console.print("Run [bold]configure --client-id ... --client-secret ...[/bold] or set the environment variables.")
        return False
    except OSError as e:
        console.print(f"[red]ERROR:[/red] Could not listen for the OAuth redirect: {e}")
        return False

    console.print("\n[bold]Complete the login process in your browser[/bold]")
    console.print(f"[dim]If no browser opened, visit:[/dim]\n{oauth.get_authorize_url()}")
    console.print(f"[dim]Waiting for the redirect to {REDIRECT_URI}...[/dim]")

    if await oauth.wait_for_authorization(timeout):
        console.print("[green]Authentication successful![/green]")
        return True

    console.print("[red]Authentication failed[/red]")
    return False


async def refresh(oauth: OAuthManager, console) -> bool:
    """
    Force a token refresh

    Args:
        oauth: OAuthManager instance
        console: Rich console for output
    """
    if not oauth.storage.get_refresh_token():
        console.print("[red]No refresh token available. Please login first.[/red]")
        return False

    console.print("Attempting to refresh token...")
    if await oauth.refresh_token():
        console.print("[green]Token refreshed successfully[/green]")
        return True

    console.print("[red]Refresh failed, stored tokens were removed. Please login again.[/red]")
    return False


def logout(oauth: OAuthManager, console) -> None:
    """
    Disconnect HubSpot and delete stored tokens

    Args:
        oauth: OAuthManager instance
        console: Rich console for output
    """
    oauth.disconnect()
    console.print("[green]HubSpot disconnected successfully[/green]")


def configure(
    resolver: CredentialResolver,
    console,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
) -> None:
    """
    Persist OAuth client credentials to the config store

    Environment variables still take precedence over stored values.
    """
    if client_id is None and client_secret is None:
        console.print("[yellow]Nothing to configure. Pass --client-id and/or --client-secret.[/yellow]")
        return

    resolver.save_credentials(client_id=client_id, client_secret=client_secret)
    console.print(f"[green]Saved credentials to {resolver.store.config_path}[/green]")
