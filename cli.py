"""CLI entry point - wrapper for running from a source checkout

Imports and runs the main CLI from the cli package.
"""

from cli.main import main

if __name__ == "__main__":
    main()
