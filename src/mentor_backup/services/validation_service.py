"""Structural and semantic validation of candidate backup documents."""

import logging
from typing import Any

from mentor_backup.models.backup import IssueCode, IssueSeverity, ValidationIssue
from mentor_backup.models.schema import CollectionSchema
from mentor_backup.services.schema_registry import SchemaRegistry
from mentor_backup.utils.validators import (
    describe_type,
    is_integer,
    is_timestamp,
    is_valid_id,
    is_valid_order,
    matches_type,
)

logger = logging.getLogger(__name__)

ORDER_FIELD = "order"


def fatal_issues(issues: list[ValidationIssue]) -> list[ValidationIssue]:
    """Filter the issues that reject a whole document."""
    return [issue for issue in issues if issue.is_fatal]


def record_issues(
    issues: list[ValidationIssue], collection: str
) -> dict[int, list[ValidationIssue]]:
    """Group the record-level errors of one collection by record index."""
    grouped: dict[int, list[ValidationIssue]] = {}
    for issue in issues:
        if (
            issue.severity == IssueSeverity.ERROR
            and issue.collection == collection
            and issue.record_index is not None
        ):
            grouped.setdefault(issue.record_index, []).append(issue)
    return grouped


class DocumentValidator:
    """Validates a parsed backup document before anything is written.

    Fatal issues short-circuit: once the top-level structure is wrong no
    record is inspected. Record-level issues are reported with the
    collection and index of the offending record so that the import can
    skip exactly that record.
    """

    def __init__(self, registry: SchemaRegistry) -> None:
        """Initialize validator.

        Args:
            registry: Schema registry with the collection shapes
        """
        self.registry = registry

    def validate(self, document: Any) -> list[ValidationIssue]:
        """Validate a parsed document.

        Args:
            document: Result of JSON parsing (any type)

        Returns:
            List of issues (empty if the document is valid)
        """
        issues = self._validate_header(document)
        if fatal_issues(issues):
            logger.debug(f"Document rejected: {issues[0].message}")
            return issues

        version: int = document["schemaVersion"]
        collections = document["collections"]
        aliases = self.registry.aliases
        # Canonical collections first, so a repeated id is reported on the alias
        names = sorted(collections, key=lambda name: name in aliases)
        seen_ids: dict[str, set[str]] = {}
        for name in names:
            records = collections[name]
            if not self.registry.is_known(name):
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.WARNING,
                        code=IssueCode.UNKNOWN_COLLECTION,
                        message=f"Unrecognized collection '{name}' will not be imported",
                        collection=name,
                    )
                )
                continue
            schema = self.registry.get_schema(name)
            ids = seen_ids.setdefault(self.registry.canonical_name(name), set())
            issues.extend(
                self.validate_records(name, records, schema, version, seen_ids=ids)
            )

        return issues

    def _validate_header(self, document: Any) -> list[ValidationIssue]:
        if not isinstance(document, dict):
            return [
                self._fatal(
                    IssueCode.NOT_AN_OBJECT,
                    f"Backup must be a JSON object, got {describe_type(document)}",
                )
            ]

        if "schemaVersion" not in document:
            return [self._fatal(IssueCode.MISSING_SCHEMA_VERSION, "Missing schemaVersion")]
        version = document["schemaVersion"]
        if not is_integer(version):
            return [
                self._fatal(
                    IssueCode.INVALID_SCHEMA_VERSION,
                    f"schemaVersion must be an integer, got {describe_type(version)}",
                )
            ]
        if not self.registry.is_supported(version):
            return [
                self._fatal(
                    IssueCode.UNSUPPORTED_SCHEMA_VERSION,
                    f"Unsupported schemaVersion {version} "
                    f"(supported: {self.registry.min_supported_version}"
                    f"..{self.registry.current_version()})",
                )
            ]

        if "collections" not in document:
            return [self._fatal(IssueCode.MISSING_COLLECTIONS, "Missing collections")]
        collections = document["collections"]
        if not isinstance(collections, dict):
            return [
                self._fatal(
                    IssueCode.MISSING_COLLECTIONS,
                    f"collections must be an object, got {describe_type(collections)}",
                )
            ]

        issues = []
        for name, records in collections.items():
            if not isinstance(records, list):
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.FATAL,
                        code=IssueCode.INVALID_COLLECTION,
                        message=(
                            f"Collection '{name}' must be an array, "
                            f"got {describe_type(records)}"
                        ),
                        collection=name,
                    )
                )
        if issues:
            return issues

        exported_at = document.get("exportedAt")
        if not is_timestamp(exported_at):
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    code=IssueCode.INVALID_EXPORTED_AT,
                    message="exportedAt is missing or not an ISO-8601 timestamp",
                )
            )
        return issues

    def validate_records(
        self,
        collection: str,
        records: list[Any],
        schema: CollectionSchema,
        version: int,
        seen_ids: set[str] | None = None,
    ) -> list[ValidationIssue]:
        """Validate the records of one collection at a schema version.

        Args:
            collection: Collection name as it appears in the document
            records: Records of the collection
            schema: Collection schema
            version: Declared schema version of the document
            seen_ids: Ids already taken by records of the same canonical
                collection; updated in place

        Returns:
            Record-level issues (severity ERROR)
        """
        issues: list[ValidationIssue] = []
        fields = [f for f in schema.fields_at(version) if f.name != "id"]
        if seen_ids is None:
            seen_ids = set()

        for index, record in enumerate(records):

            def error(code: IssueCode, message: str, record_id: str | None = None) -> None:
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.ERROR,
                        code=code,
                        message=message,
                        collection=collection,
                        record_id=record_id,
                        record_index=index,
                    )
                )

            if not isinstance(record, dict):
                error(
                    IssueCode.INVALID_RECORD,
                    f"Record must be an object, got {describe_type(record)}",
                )
                continue

            record_id = record.get("id")
            if not is_valid_id(record_id):
                error(IssueCode.MISSING_ID, "Record id is missing or not a non-empty string")
                record_id = None
            elif record_id in seen_ids:
                error(IssueCode.DUPLICATE_ID, f"Duplicate id '{record_id}'", record_id)
            else:
                seen_ids.add(record_id)

            for field in fields:
                value = record.get(field.name)
                if value is None:
                    if field.required:
                        error(
                            IssueCode.MISSING_FIELD,
                            f"Missing required field '{field.name}'",
                            record_id,
                        )
                    continue
                if field.name == ORDER_FIELD:
                    if not is_valid_order(value):
                        error(
                            IssueCode.INVALID_ORDER,
                            f"'order' must be a non-negative integer, got {value!r}",
                            record_id,
                        )
                    continue
                if not matches_type(value, field.type):
                    error(
                        IssueCode.WRONG_TYPE,
                        f"Field '{field.name}' must be {field.type.value}, "
                        f"got {describe_type(value)}",
                        record_id,
                    )

        return issues

    @staticmethod
    def _fatal(code: IssueCode, message: str) -> ValidationIssue:
        return ValidationIssue(severity=IssueSeverity.FATAL, code=code, message=message)
