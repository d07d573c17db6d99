"""Entry point for mentor-backup MCP server."""

import argparse
import asyncio
import logging
import sys

from mentor_backup import __version__
from mentor_backup.config import get_settings
from mentor_backup.server import create_server, initialize_services, shutdown_services


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="mentor-backup",
        description="Mentor backup - Versioned export and restore of tracking data via MCP",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser.parse_args()


def configure_logging(level: str) -> None:
    """Configure root logging.

    Logs go to stderr; stdout carries the MCP stdio transport.
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


async def main() -> None:
    """Main entry point for the MCP server."""
    # Load settings
    settings = get_settings()
    configure_logging(settings.log_level)

    # Initialize services
    await initialize_services(settings)

    # Create and run server
    mcp = create_server()

    try:
        # Run the server (stdio transport)
        await mcp.run_stdio_async()
    finally:
        # Cleanup
        await shutdown_services()


def cli() -> None:
    """CLI entry point."""
    # Parse args first (handles --help and --version)
    parse_args()

    # Run the MCP server
    asyncio.run(main())


if __name__ == "__main__":
    cli()
