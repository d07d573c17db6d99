"""Backup export/import MCP tools."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiofiles

from mentor_backup.exceptions import (
    ImportAlreadyInProgressError,
    InvalidDocumentError,
    MalformedDocumentError,
    UnsupportedSchemaVersionError,
)
from mentor_backup.models.backup import ExportResult, ImportMode, IssueSeverity
from mentor_backup.services.backup_service import BackupService
from mentor_backup.tools import create_error_response

logger = logging.getLogger(__name__)


def resolve_backup_path(file_path: str, backup_dir: str) -> Path:
    """Resolve a user-provided path inside the backup directory.

    Relative paths are taken relative to `backup_dir`.

    Args:
        file_path: User-provided file path
        backup_dir: Directory that backup files must live in

    Returns:
        Resolved absolute Path

    Raises:
        ValueError: If path is outside backup_dir or uses path traversal
    """
    # Check for path traversal patterns before resolving
    if ".." in Path(file_path).parts:
        raise ValueError(f"Path traversal detected in {file_path}")

    base = Path(backup_dir).resolve()
    path = Path(file_path)
    if not path.is_absolute():
        path = base / path
    path_resolved = path.resolve()

    try:
        path_resolved.relative_to(base)
    except ValueError:
        raise ValueError(f"Path {file_path} is outside backup directory") from None
    return path_resolved


def default_backup_filename(now: datetime | None = None) -> str:
    """File name used when an export is requested without a path."""
    now = now or datetime.now(timezone.utc)
    return f"mentor_backup_{now.strftime('%Y%m%d_%H%M%S')}.json"


async def backup_export(
    service: BackupService,
    backup_dir: str,
    output_path: str | None = None,
) -> dict[str, Any]:
    """Export all collections to a backup file.

    Args:
        service: Backup service instance
        backup_dir: Directory backup files are confined to
        output_path: Output file path (default: timestamped file in backup_dir)

    Returns:
        Export results and statistics
    """
    try:
        path = resolve_backup_path(output_path or default_backup_filename(), backup_dir)
    except ValueError as e:
        return create_error_response(message=str(e), error_type="ValidationError")

    try:
        document = await service.build_export()
        content = document.to_json(indent=service.export_indent)
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(content)

        result = ExportResult(
            exported_at=document.exported_at,
            schema_version=document.schema_version,
            counts=document.record_counts(),
            file_path=str(path),
            file_size_bytes=path.stat().st_size,
        )
    except OSError as e:
        logger.error(f"Backup export failed: {e}", exc_info=True)
        return create_error_response(message=str(e), error_type="IOError")

    return {
        "exported_at": result.exported_at.isoformat(),
        "schema_version": result.schema_version,
        "counts": result.counts,
        "file_path": result.file_path,
        "file_size_bytes": result.file_size_bytes,
    }


async def _read_backup(input_path: str, backup_dir: str) -> bytes:
    path = resolve_backup_path(input_path, backup_dir)
    async with aiofiles.open(path, "rb") as f:
        return await f.read()


async def backup_import(
    service: BackupService,
    backup_dir: str,
    input_path: str,
    mode: str | None = None,
) -> dict[str, Any]:
    """Import a backup file.

    Args:
        service: Backup service instance
        backup_dir: Directory backup files are confined to
        input_path: Input file path
        mode: Import mode (replace/merge, default: configured mode)

    Returns:
        Import report with per-collection outcomes
    """
    if not input_path:
        return create_error_response(
            message="input_path is required",
            error_type="ValidationError",
        )

    if mode is not None and mode not in [m.value for m in ImportMode]:
        return create_error_response(
            message="mode must be 'replace' or 'merge'",
            error_type="ValidationError",
        )

    try:
        raw = await _read_backup(input_path, backup_dir)
        report = await service.import_document(raw, mode)
    except ImportAlreadyInProgressError as e:
        return create_error_response(message=str(e), error_type="ImportAlreadyInProgress")
    except MalformedDocumentError as e:
        return create_error_response(message=str(e), error_type="MalformedDocument")
    except UnsupportedSchemaVersionError as e:
        return create_error_response(
            message=str(e),
            error_type="UnsupportedSchemaVersion",
            details={"version": e.version, "current_version": e.current_version},
        )
    except InvalidDocumentError as e:
        return create_error_response(
            message=str(e),
            error_type="InvalidDocument",
            details={"issues": [issue.model_dump(mode="json") for issue in e.issues]},
        )
    except ValueError as e:
        return create_error_response(message=str(e), error_type="ValidationError")
    except OSError as e:
        return create_error_response(message=str(e), error_type="IOError")

    return {
        "imported_at": report.imported_at.isoformat(),
        "source_schema_version": report.source_schema_version,
        "schema_version": report.schema_version,
        "mode": report.mode.value,
        "summary": report.summary(),
        "records_applied": report.records_applied,
        "error_count": report.error_count,
        "cancelled": report.cancelled,
        "outcomes": [outcome.model_dump(mode="json") for outcome in report.outcomes],
        "warnings": [issue.message for issue in report.warnings],
    }


async def backup_validate(
    service: BackupService,
    backup_dir: str,
    input_path: str,
) -> dict[str, Any]:
    """Validate a backup file without importing it.

    Args:
        service: Backup service instance
        backup_dir: Directory backup files are confined to
        input_path: Input file path

    Returns:
        Validation result with the list of issues
    """
    try:
        raw = await _read_backup(input_path, backup_dir)
        issues = service.validate_document(raw)
    except MalformedDocumentError as e:
        return create_error_response(message=str(e), error_type="MalformedDocument")
    except ValueError as e:
        return create_error_response(message=str(e), error_type="ValidationError")
    except OSError as e:
        return create_error_response(message=str(e), error_type="IOError")

    return {
        "valid": not any(i.severity != IssueSeverity.WARNING for i in issues),
        "importable": not any(i.is_fatal for i in issues),
        "issues": [issue.model_dump(mode="json") for issue in issues],
    }


async def backup_schema_info(service: BackupService) -> dict[str, Any]:
    """Describe the supported schema versions and collections.

    Args:
        service: Backup service instance

    Returns:
        Schema versions and collection summaries
    """
    return service.schema_info()
