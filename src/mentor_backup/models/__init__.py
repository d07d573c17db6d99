"""Data models for mentor-backup."""

from mentor_backup.models.backup import (
    BackupDocument,
    ExportResult,
    ImportMode,
    ImportOutcome,
    ImportReport,
    ImportState,
    IssueCode,
    IssueSeverity,
    RecordError,
    ValidationIssue,
    WriteResult,
)
from mentor_backup.models.schema import (
    CollectionSchema,
    FieldType,
    MigrationStep,
    Record,
    SchemaField,
)

__all__ = [
    "BackupDocument",
    "CollectionSchema",
    "ExportResult",
    "FieldType",
    "ImportMode",
    "ImportOutcome",
    "ImportReport",
    "ImportState",
    "IssueCode",
    "IssueSeverity",
    "MigrationStep",
    "Record",
    "RecordError",
    "SchemaField",
    "ValidationIssue",
    "WriteResult",
]
