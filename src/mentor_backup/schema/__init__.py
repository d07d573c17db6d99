"""Built-in collection schemas and migration history."""

from mentor_backup.schema.collections import (
    COLLECTION_SCHEMAS,
    CURRENT_SCHEMA_VERSION,
    MIN_SUPPORTED_SCHEMA_VERSION,
)
from mentor_backup.schema.migrations import (
    declared_steps,
    is_legacy_document,
    normalize_legacy_document,
)

__all__ = [
    "COLLECTION_SCHEMAS",
    "CURRENT_SCHEMA_VERSION",
    "MIN_SUPPORTED_SCHEMA_VERSION",
    "declared_steps",
    "is_legacy_document",
    "normalize_legacy_document",
]
