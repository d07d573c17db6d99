"""Migration engine: walks a backup document forward to the current schema."""

import copy
import logging
from typing import Any

from mentor_backup.exceptions import UnsupportedSchemaVersionError
from mentor_backup.models.backup import BackupDocument
from mentor_backup.models.schema import Record
from mentor_backup.services.schema_registry import SchemaRegistry

logger = logging.getLogger(__name__)


class MigrationEngine:
    """Applies registry migration steps to every collection of a document."""

    def __init__(self, registry: SchemaRegistry) -> None:
        """Initialize migration engine.

        Args:
            registry: Schema registry providing the step chains
        """
        self.registry = registry

    def migrate(self, document: BackupDocument) -> BackupDocument:
        """Migrate a document to the current schema version.

        The input document is never mutated. Migrating a document that is
        already current returns a structurally equal copy.

        Args:
            document: Validated backup document

        Returns:
            New document at `registry.current_version()`

        Raises:
            UnsupportedSchemaVersionError: If no migration path exists
        """
        source_version = document.schema_version
        current_version = self.registry.current_version()
        if not self.registry.is_supported(source_version):
            raise UnsupportedSchemaVersionError(source_version, current_version)

        collections = self._canonicalize(document.collections)
        migrated: dict[str, list[Any]] = {}
        for name, records in collections.items():
            if not self.registry.is_known(name):
                # Unknown collections pass through untouched for reporting
                migrated[name] = copy.deepcopy(records)
                continue
            migrated[name] = self.migrate_records(name, records, source_version)

        if source_version != current_version:
            logger.info(
                f"Migrated backup from schema v{source_version} to v{current_version}"
            )

        return BackupDocument(
            schema_version=current_version,
            exported_at=document.exported_at,
            collections=migrated,
        )

    def migrate_records(
        self, collection: str, records: list[Record], from_version: int
    ) -> list[Record]:
        """Apply the step chain of one collection to a list of records.

        Args:
            collection: Collection name or alias
            records: Records at `from_version`
            from_version: Declared schema version of the records

        Returns:
            New list of records at the current version
        """
        steps = self.registry.migrations_for(collection, from_version=from_version)
        result = copy.deepcopy(list(records))
        for step in steps:
            result = step.apply_all(result)

        if steps and records:
            logger.debug(
                f"Applied {len(steps)} migration steps to "
                f"{len(records)} '{collection}' records"
            )
        return result

    def _canonicalize(self, collections: dict[str, list[Any]]) -> dict[str, list[Any]]:
        """Rename collection aliases; canonical records come first."""
        aliases = self.registry.aliases
        result: dict[str, list[Any]] = {}
        for name, records in collections.items():
            if name in aliases:
                continue
            result[name] = list(records)

        for name, records in collections.items():
            if name not in aliases:
                continue
            canonical = aliases[name]
            logger.info(
                f"Renaming legacy collection '{name}' to '{canonical}' "
                f"({len(records)} records)"
            )
            result.setdefault(canonical, []).extend(records)
        return result
