"""Custom exceptions for mentor-backup."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mentor_backup.models.backup import ValidationIssue


class BackupError(Exception):
    """Base class for all backup/restore errors."""

    pass


class MalformedDocumentError(BackupError):
    """Raised when a backup cannot be parsed or is not a JSON object."""

    pass


class InvalidDocumentError(BackupError):
    """Raised when a backup fails structural validation."""

    def __init__(self, message: str, issues: list["ValidationIssue"] | None = None) -> None:
        super().__init__(message)
        self.issues = issues or []


class UnsupportedSchemaVersionError(BackupError):
    """Raised when no migration path exists for a document's schema version."""

    def __init__(self, version: object, current_version: int) -> None:
        super().__init__(
            f"Unsupported schema version: {version}. "
            f"Current version is {current_version}"
        )
        self.version = version
        self.current_version = current_version


class ImportAlreadyInProgressError(BackupError):
    """Raised when an import is requested while another one is running."""

    pass


class UnknownCollectionError(BackupError):
    """Raised when a collection name is not declared in the schema registry."""

    def __init__(self, collection: str) -> None:
        super().__init__(f"Unknown collection: {collection}")
        self.collection = collection


class CollectionWriteError(BackupError):
    """Raised when a provider rejects a whole collection batch.

    Never surfaced to import callers; the orchestrator records it in the
    collection's outcome and moves on.
    """

    def __init__(self, collection: str, reason: str) -> None:
        super().__init__(f"Failed to write collection '{collection}': {reason}")
        self.collection = collection
        self.reason = reason
