"""Import orchestrator: parse, validate, migrate, then apply per collection."""

import json
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from mentor_backup.exceptions import (
    CollectionWriteError,
    ImportAlreadyInProgressError,
    InvalidDocumentError,
    MalformedDocumentError,
    UnknownCollectionError,
    UnsupportedSchemaVersionError,
)
from mentor_backup.models.backup import (
    BackupDocument,
    ImportMode,
    ImportOutcome,
    ImportReport,
    ImportState,
    IssueCode,
    IssueSeverity,
    RecordError,
    ValidationIssue,
)
from mentor_backup.models.schema import Record
from mentor_backup.providers.base import CollectionProvider
from mentor_backup.schema import is_legacy_document, normalize_legacy_document
from mentor_backup.services.migration_service import MigrationEngine
from mentor_backup.services.redaction_service import Redactor
from mentor_backup.services.schema_registry import SchemaRegistry
from mentor_backup.services.validation_service import (
    DocumentValidator,
    fatal_issues,
    record_issues,
)
from mentor_backup.utils.validators import is_timestamp, is_valid_id

logger = logging.getLogger(__name__)


def parse_document(raw: bytes | str) -> dict[str, Any]:
    """Parse raw backup bytes into a wire-format dict.

    Pre-versioning documents are normalised to schema v1.

    Args:
        raw: UTF-8 encoded JSON (bytes) or JSON text

    Returns:
        Parsed document

    Raises:
        MalformedDocumentError: If the input is not a JSON object
    """
    if isinstance(raw, bytes | bytearray):
        try:
            text = bytes(raw).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedDocumentError(f"Backup is not valid UTF-8: {e}") from e
    else:
        text = raw

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(f"Backup is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedDocumentError(
            f"Backup must be a JSON object, got {type(data).__name__}"
        )

    if is_legacy_document(data):
        data = normalize_legacy_document(data)
    return data


def _record_id(record: Any) -> str | None:
    if isinstance(record, dict) and is_valid_id(record.get("id")):
        return record["id"]
    return None


class ImportOrchestrator:
    """Top-level controller of a single import call.

    Fatal problems (parse, validation, unsupported version) abort before
    any provider is called. Once the first collection is being applied the
    import always runs to `COMPLETED`: failures are recorded per
    collection and per record in the returned report, and collections
    already written are never rolled back.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        validator: DocumentValidator,
        migration_engine: MigrationEngine,
        redactor: Redactor,
        providers: Mapping[str, CollectionProvider],
    ) -> None:
        """Initialize import orchestrator.

        Args:
            registry: Schema registry
            validator: Document validator
            migration_engine: Migration engine
            redactor: Redactor used for sensitive field reconciliation
            providers: Providers keyed by canonical collection name

        Raises:
            UnknownCollectionError: If a provider is registered under an unknown name
        """
        for name in providers:
            if name not in registry.collection_names:
                raise UnknownCollectionError(name)

        self.registry = registry
        self.validator = validator
        self.migration_engine = migration_engine
        self.redactor = redactor
        self.providers = dict(providers)
        self._state = ImportState.IDLE
        self._in_progress = False
        self._cancel_requested = False

    @property
    def state(self) -> ImportState:
        """State of the current (or last) import call."""
        return self._state

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    def request_cancel(self) -> None:
        """Ask a running import to stop before its next collection.

        Collections already written stay written; the remaining ones are
        reported as cancelled.
        """
        if self._in_progress:
            logger.info("Import cancellation requested")
            self._cancel_requested = True

    async def import_document(
        self, raw: bytes | str, mode: ImportMode | str = ImportMode.REPLACE
    ) -> ImportReport:
        """Import a serialized backup document.

        Args:
            raw: Serialized backup document
            mode: REPLACE discards existing collection contents, MERGE upserts by id

        Returns:
            ImportReport with one outcome per collection in the document

        Raises:
            ImportAlreadyInProgressError: If another import is running
            MalformedDocumentError: If the document cannot be parsed
            InvalidDocumentError: If the document fails structural validation
            UnsupportedSchemaVersionError: If no migration path exists
        """
        # Check and set without awaiting in between
        if self._in_progress:
            raise ImportAlreadyInProgressError("An import is already in progress")
        self._in_progress = True
        self._cancel_requested = False

        try:
            mode = ImportMode(mode)
            self._transition(ImportState.RECEIVED)
            try:
                prepared = self._prepare(raw)
            except Exception:
                self._transition(ImportState.REJECTED)
                raise
            return await self._apply(mode, *prepared)
        finally:
            self._in_progress = False
            self._cancel_requested = False

    def _prepare(
        self, raw: bytes | str
    ) -> tuple[
        int,
        BackupDocument,
        dict[str, list[RecordError]],
        dict[str, list[Any]],
        list[ValidationIssue],
    ]:
        """Parse, validate, partition and migrate without touching storage."""
        data = parse_document(raw)
        self._transition(ImportState.PARSED)

        issues = self.validator.validate(data)
        fatal = fatal_issues(issues)
        if fatal:
            for issue in fatal:
                if issue.code == IssueCode.UNSUPPORTED_SCHEMA_VERSION:
                    raise UnsupportedSchemaVersionError(
                        data.get("schemaVersion"), self.registry.current_version()
                    )
            raise InvalidDocumentError(f"Invalid backup: {fatal[0].message}", fatal)
        self._transition(ImportState.VALIDATED)

        source_version: int = data["schemaVersion"]
        accepted: dict[str, list[Record]] = {}
        rejected: dict[str, list[RecordError]] = {}
        unknown: dict[str, list[Any]] = {}

        for name, records in data["collections"].items():
            if not self.registry.is_known(name):
                unknown[name] = records
                continue
            canonical = self.registry.canonical_name(name)
            invalid = record_issues(issues, name)
            accepted[name] = []
            rejected.setdefault(canonical, [])
            for index, record in enumerate(records):
                if index in invalid:
                    reason = "; ".join(issue.message for issue in invalid[index])
                    rejected[canonical].append(
                        RecordError(record_id=_record_id(record), reason=reason)
                    )
                else:
                    accepted[name].append(record)

        exported_at = data.get("exportedAt")
        document = BackupDocument(
            schema_version=source_version,
            exported_at=(
                datetime.fromisoformat(exported_at) if is_timestamp(exported_at) else None
            ),
            collections=accepted,
        )
        migrated = self.migration_engine.migrate(document)
        self._reject_unmigratable(migrated, rejected)
        self._transition(ImportState.MIGRATED)

        warnings = [i for i in issues if i.severity == IssueSeverity.WARNING]
        return source_version, migrated, rejected, unknown, warnings

    def _reject_unmigratable(
        self, migrated: BackupDocument, rejected: dict[str, list[RecordError]]
    ) -> None:
        """Drop migrated records that do not satisfy the current schema.

        Fields a record carried before they were declared are never checked
        at the document's own version, so migrated records are checked again
        at the current version. Records that fail are moved to `rejected`.
        """
        current = self.registry.current_version()
        for name, records in migrated.collections.items():
            if not self.registry.is_known(name):
                continue
            issues = self.validator.validate_records(
                name, records, self.registry.get_schema(name), current
            )
            invalid = record_issues(issues, name)
            if not invalid:
                continue

            for index in sorted(invalid):
                reason = "; ".join(issue.message for issue in invalid[index])
                rejected.setdefault(name, []).append(
                    RecordError(record_id=_record_id(records[index]), reason=reason)
                )
            migrated.collections[name] = [
                record for index, record in enumerate(records) if index not in invalid
            ]
            logger.warning(
                f"Skipped {len(invalid)} '{name}' records invalid after migration "
                f"to v{current}"
            )

    async def _apply(
        self,
        mode: ImportMode,
        source_version: int,
        document: BackupDocument,
        rejected: dict[str, list[RecordError]],
        unknown: dict[str, list[Any]],
        warnings: list[ValidationIssue],
    ) -> ImportReport:
        outcomes: list[ImportOutcome] = []
        cancelled = False
        self._transition(ImportState.APPLYING)
        try:
            for name in self.registry.collection_names:
                if name not in document.collections:
                    continue
                records = document.collections[name]
                prior_errors = rejected.get(name, [])
                if self._cancel_requested:
                    cancelled = True
                    outcomes.append(
                        self._unapplied_outcome(
                            name, records, prior_errors, "Import cancelled"
                        )
                    )
                    continue
                outcomes.append(
                    await self._apply_collection(name, records, prior_errors, mode)
                )

            for name, records in unknown.items():
                outcomes.append(
                    self._unapplied_outcome(name, records, [], "Unrecognized collection")
                )
        finally:
            self._transition(ImportState.COMPLETED)

        report = ImportReport(
            source_schema_version=source_version,
            schema_version=document.schema_version,
            mode=mode,
            outcomes=tuple(outcomes),
            warnings=tuple(warnings),
            cancelled=cancelled,
        )
        logger.info(f"Import finished: {report.summary()}")
        return report

    async def _apply_collection(
        self,
        name: str,
        records: list[Record],
        prior_errors: list[RecordError],
        mode: ImportMode,
    ) -> ImportOutcome:
        """Write one collection through its provider."""
        provider = self.providers.get(name)
        if provider is None:
            return self._unapplied_outcome(
                name, records, prior_errors, "No provider registered for collection"
            )

        logger.debug(f"Applying {len(records)} records to '{name}' ({mode.value})")
        sensitive_fields = self.registry.sensitive_fields(name)
        if sensitive_fields:
            records = [
                await self.redactor.reconcile_for_import(
                    record, sensitive_fields, provider.current_sensitive_value
                )
                for record in records
            ]

        attempted = len(records) + len(prior_errors)
        try:
            if mode == ImportMode.REPLACE:
                result = await provider.replace_all(records)
            else:
                result = await provider.merge_all(records)
        except Exception as e:
            error = CollectionWriteError(name, str(e))
            logger.error(str(error), exc_info=True)
            return ImportOutcome(
                collection=name,
                records_attempted=attempted,
                records_applied=0,
                errors=tuple(
                    prior_errors
                    + [
                        RecordError(record_id=_record_id(r), reason=error.reason)
                        for r in records
                    ]
                ),
                write_error=error.reason,
            )

        if result.applied + len(result.errors) != len(records):
            logger.warning(
                f"Provider for '{name}' accounted for "
                f"{result.applied + len(result.errors)} of {len(records)} records"
            )
        return ImportOutcome(
            collection=name,
            records_attempted=attempted,
            records_applied=result.applied,
            errors=tuple(prior_errors + list(result.errors)),
        )

    @staticmethod
    def _unapplied_outcome(
        name: str, records: list[Any], prior_errors: list[RecordError], reason: str
    ) -> ImportOutcome:
        """Outcome of a collection whose records were not written at all."""
        logger.warning(f"Collection '{name}' not applied: {reason}")
        return ImportOutcome(
            collection=name,
            records_attempted=len(records) + len(prior_errors),
            records_applied=0,
            errors=tuple(
                prior_errors
                + [RecordError(record_id=_record_id(r), reason=reason) for r in records]
            ),
        )

    def _transition(self, state: ImportState) -> None:
        logger.debug(f"Import state: {self._state.value} -> {state.value}")
        self._state = state
