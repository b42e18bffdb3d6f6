"""CLI entry point and argument parsing"""

import asyncio
import argparse
import sys
from rich.console import Console

from api.server import ApiServer, setup_logging
from config import CredentialResolver
from oauth import OAuthManager
from cli.auth_handlers import configure, login, logout, refresh
from cli.status_display import get_auth_status, show_token_status


console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="HubSpot Message Bridge CLI")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the host API server")
    serve.add_argument("--bind", "-b", default=None, help="Override bind address (default: from config)")

    login_parser = subparsers.add_parser("login", help="Connect a HubSpot account in the browser")
    login_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for the OAuth redirect (default: the callback server's own timeout)",
    )

    subparsers.add_parser("status", help="Show stored token status")
    subparsers.add_parser("refresh", help="Refresh the access token now")
    subparsers.add_parser("logout", help="Disconnect HubSpot and delete stored tokens")

    configure_parser = subparsers.add_parser("configure", help="Store OAuth client credentials")
    configure_parser.add_argument("--client-id", default=None, help="HubSpot app client id")
    configure_parser.add_argument("--client-secret", default=None, help="HubSpot app client secret")

    return parser


def main(argv=None):
    """Entry point for the CLI"""
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)

    if args.command == "serve":
        ApiServer(debug=args.debug, bind_address=args.bind).run()
        return

    if args.command == "configure":
        configure(CredentialResolver(), console, client_id=args.client_id, client_secret=args.client_secret)
        return

    oauth = OAuthManager()

    if args.command == "login":
        success = asyncio.run(login(oauth, console, timeout=args.timeout))
        sys.exit(0 if success else 1)

    elif args.command == "status":
        status, detail = get_auth_status(oauth.storage)
        console.print(f"[bold]{status}[/bold] - {detail}")
        show_token_status(oauth.storage, console)

    elif args.command == "refresh":
        success = asyncio.run(refresh(oauth, console))
        sys.exit(0 if success else 1)

    elif args.command == "logout":
        logout(oauth, console)


if __name__ == "__main__":
    main()
