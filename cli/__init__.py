"""CLI package for the HubSpot Message Bridge

This package provides the command-line interface for connecting a HubSpot
account, inspecting stored tokens and running the host API server.
"""

from cli.main import main

__all__ = [
    "main",
]
