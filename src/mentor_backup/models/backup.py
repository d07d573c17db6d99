"""Backup document, validation and import outcome models."""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BackupDocument(BaseModel):
    """Single versioned document holding every exportable collection."""

    model_config = ConfigDict(populate_by_name=True)

    schema_version: int = Field(alias="schemaVersion", ge=0)
    exported_at: datetime | None = Field(default=None, alias="exportedAt")
    collections: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        """Convert to the JSON wire structure (camelCase keys)."""
        return self.model_dump(by_alias=True, mode="json")

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize to the JSON wire format."""
        return json.dumps(self.to_wire(), indent=indent, ensure_ascii=False)

    def record_counts(self) -> dict[str, int]:
        """Number of records per collection."""
        return {name: len(records) for name, records in self.collections.items()}


class ImportMode(str, Enum):
    """How incoming records are applied to a collection."""

    REPLACE = "replace"
    MERGE = "merge"


class ImportState(str, Enum):
    """Lifecycle of a single import call."""

    IDLE = "idle"
    RECEIVED = "received"
    PARSED = "parsed"
    VALIDATED = "validated"
    MIGRATED = "migrated"
    APPLYING = "applying"
    COMPLETED = "completed"
    REJECTED = "rejected"


class IssueSeverity(str, Enum):
    """Validation issue severity."""

    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"


class IssueCode(str, Enum):
    """Validation issue codes."""

    NOT_AN_OBJECT = "not_an_object"
    MISSING_SCHEMA_VERSION = "missing_schema_version"
    INVALID_SCHEMA_VERSION = "invalid_schema_version"
    UNSUPPORTED_SCHEMA_VERSION = "unsupported_schema_version"
    MISSING_COLLECTIONS = "missing_collections"
    INVALID_COLLECTION = "invalid_collection"
    UNKNOWN_COLLECTION = "unknown_collection"
    INVALID_EXPORTED_AT = "invalid_exported_at"
    INVALID_RECORD = "invalid_record"
    MISSING_ID = "missing_id"
    DUPLICATE_ID = "duplicate_id"
    MISSING_FIELD = "missing_field"
    WRONG_TYPE = "wrong_type"
    INVALID_ORDER = "invalid_order"


class ValidationIssue(BaseModel):
    """A single problem found while validating a backup document."""

    model_config = ConfigDict(frozen=True)

    severity: IssueSeverity
    code: IssueCode
    message: str
    collection: str | None = None
    record_id: str | None = None
    record_index: int | None = None

    @property
    def is_fatal(self) -> bool:
        return self.severity == IssueSeverity.FATAL


class RecordError(BaseModel):
    """A record that was not applied, and why."""

    model_config = ConfigDict(frozen=True)

    record_id: str | None
    reason: str


class WriteResult(BaseModel):
    """Result of a provider's replace_all/merge_all call."""

    applied: int = Field(default=0, ge=0)
    errors: list[RecordError] = Field(default_factory=list)


class ImportOutcome(BaseModel):
    """Per-collection ledger of an import."""

    model_config = ConfigDict(frozen=True)

    collection: str
    records_attempted: int = Field(ge=0)
    records_applied: int = Field(ge=0)
    errors: tuple[RecordError, ...] = ()
    write_error: str | None = None

    @property
    def succeeded(self) -> bool:
        """True when every attempted record was applied."""
        return self.write_error is None and not self.errors


class ImportReport(BaseModel):
    """Result of an import call."""

    model_config = ConfigDict(frozen=True)

    imported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source_schema_version: int
    schema_version: int
    mode: ImportMode
    outcomes: tuple[ImportOutcome, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()
    cancelled: bool = False

    def outcome_for(self, collection: str) -> ImportOutcome | None:
        """Find the outcome of a collection."""
        for outcome in self.outcomes:
            if outcome.collection == collection:
                return outcome
        return None

    @property
    def records_applied(self) -> int:
        return sum(outcome.records_applied for outcome in self.outcomes)

    @property
    def error_count(self) -> int:
        return sum(len(outcome.errors) for outcome in self.outcomes)

    def summary(self) -> str:
        """Human readable one-line summary."""
        restored = sum(1 for outcome in self.outcomes if outcome.succeeded)
        text = (
            f"{restored} of {len(self.outcomes)} collections restored, "
            f"{self.error_count} records skipped"
        )
        if self.cancelled:
            text += " (cancelled)"
        return text


class ExportResult(BaseModel):
    """Result of writing an export to a file."""

    exported_at: datetime
    schema_version: int
    counts: dict[str, int]
    file_path: str
    file_size_bytes: int
