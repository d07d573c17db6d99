"""MCP server implementation for mentor-backup."""

from typing import Any

from mcp.server.fastmcp import FastMCP

from mentor_backup.config.settings import Settings
from mentor_backup.db.database import Database
from mentor_backup.db.repositories.record_repository import RecordRepository
from mentor_backup.providers.sqlite_provider import create_sqlite_providers
from mentor_backup.services.backup_service import BackupService
from mentor_backup.services.schema_registry import build_default_registry
from mentor_backup.tools import backup_tools

# Initialize FastMCP server
mcp = FastMCP("mentor-backup")

# Global service instances (initialized in main)
backup_service: BackupService | None = None
backup_dir: str | None = None
db: Database | None = None


async def initialize_services(settings: Settings) -> None:
    """Initialize the backup service and database.

    Args:
        settings: Application settings
    """
    global backup_service, backup_dir, db

    # Initialize database
    db = Database(settings.database_path)
    await db.connect()
    await db.migrate()

    # One SQLite provider per registered collection
    registry = build_default_registry()
    providers = create_sqlite_providers(RecordRepository(db), registry.collection_names)

    backup_service = BackupService(providers, registry=registry, settings=settings)
    backup_dir = settings.backup_dir


async def shutdown_services() -> None:
    """Shutdown all services and close database."""
    global db
    if db:
        await db.close()


@mcp.tool()
async def backup_export(output_path: str | None = None) -> dict[str, Any]:
    """Export all collections to a backup file.

    Sensitive settings (API keys, tokens) are written as a redaction
    placeholder, never in plaintext.

    Args:
        output_path: File path inside the backup directory (default: timestamped name)

    Returns:
        Export statistics and file location
    """
    if not backup_service or not backup_dir:
        raise RuntimeError("Services not initialized")
    return await backup_tools.backup_export(backup_service, backup_dir, output_path)


@mcp.tool()
async def backup_import(input_path: str, mode: str | None = None) -> dict[str, Any]:
    """Restore collections from a backup file.

    Args:
        input_path: File path inside the backup directory
        mode: replace (fresh restore) or merge (import alongside existing data)

    Returns:
        Per-collection outcome report
    """
    if not backup_service or not backup_dir:
        raise RuntimeError("Services not initialized")
    return await backup_tools.backup_import(backup_service, backup_dir, input_path, mode)


@mcp.tool()
async def backup_validate(input_path: str) -> dict[str, Any]:
    """Check a backup file without importing it.

    Args:
        input_path: File path inside the backup directory

    Returns:
        Validation issues and whether the file can be imported
    """
    if not backup_service or not backup_dir:
        raise RuntimeError("Services not initialized")
    return await backup_tools.backup_validate(backup_service, backup_dir, input_path)


@mcp.tool()
async def backup_schema_info() -> dict[str, Any]:
    """Describe the backup schema version and collections.

    Returns:
        Current and minimum supported schema versions with collection details
    """
    if not backup_service:
        raise RuntimeError("Services not initialized")
    return await backup_tools.backup_schema_info(backup_service)


def create_server() -> FastMCP:
    """Create and return MCP server instance.

    Returns:
        FastMCP server instance
    """
    return mcp
