"""Service layer for backup and restore."""

from mentor_backup.services.backup_service import BackupService
from mentor_backup.services.export_service import ExportBuilder
from mentor_backup.services.import_service import ImportOrchestrator, parse_document
from mentor_backup.services.migration_service import MigrationEngine
from mentor_backup.services.redaction_service import Redactor
from mentor_backup.services.schema_registry import SchemaRegistry, build_default_registry
from mentor_backup.services.validation_service import DocumentValidator

__all__ = [
    "BackupService",
    "DocumentValidator",
    "ExportBuilder",
    "ImportOrchestrator",
    "MigrationEngine",
    "Redactor",
    "SchemaRegistry",
    "build_default_registry",
    "parse_document",
]
