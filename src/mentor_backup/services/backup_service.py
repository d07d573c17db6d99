"""Backup service: wires the export and import pipelines together."""

import logging
from collections.abc import Mapping
from typing import Any

from mentor_backup.config import get_settings
from mentor_backup.config.settings import Settings
from mentor_backup.models.backup import (
    BackupDocument,
    ImportMode,
    ImportReport,
    ValidationIssue,
)
from mentor_backup.providers.base import CollectionProvider
from mentor_backup.services.export_service import ExportBuilder
from mentor_backup.services.import_service import ImportOrchestrator, parse_document
from mentor_backup.services.migration_service import MigrationEngine
from mentor_backup.services.redaction_service import Redactor
from mentor_backup.services.schema_registry import SchemaRegistry, build_default_registry
from mentor_backup.services.validation_service import DocumentValidator

logger = logging.getLogger(__name__)


class BackupService:
    """Service for backup export and restore."""

    def __init__(
        self,
        providers: Mapping[str, CollectionProvider],
        registry: SchemaRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize backup service.

        Args:
            providers: Providers keyed by canonical collection name
            registry: Schema registry (default: built-in collections)
            settings: Settings (default: global settings)
        """
        settings = settings or get_settings()
        self.registry = registry or build_default_registry()
        self.providers = dict(providers)
        self.export_indent = settings.export_indent
        self.default_import_mode = ImportMode(settings.default_import_mode)

        self.redactor = Redactor(sentinel=settings.redaction_sentinel)
        self.validator = DocumentValidator(self.registry)
        self.migration_engine = MigrationEngine(self.registry)
        self.export_builder = ExportBuilder(self.registry, self.redactor)
        self.orchestrator = ImportOrchestrator(
            registry=self.registry,
            validator=self.validator,
            migration_engine=self.migration_engine,
            redactor=self.redactor,
            providers=self.providers,
        )

    async def build_export(self) -> BackupDocument:
        """Build a redacted backup document of all collections."""
        return await self.export_builder.build_export(self.providers)

    async def export_json(self) -> str:
        """Build an export and serialize it to JSON text."""
        document = await self.build_export()
        return document.to_json(indent=self.export_indent)

    async def import_document(
        self, raw: bytes | str, mode: ImportMode | str | None = None
    ) -> ImportReport:
        """Import a serialized backup document.

        Args:
            raw: Serialized backup document
            mode: Import mode (default: configured default_import_mode)

        Returns:
            ImportReport with per-collection outcomes
        """
        return await self.orchestrator.import_document(
            raw, mode if mode is not None else self.default_import_mode
        )

    def request_cancel(self) -> None:
        """Ask a running import to stop before its next collection."""
        self.orchestrator.request_cancel()

    def validate_document(self, raw: bytes | str) -> list[ValidationIssue]:
        """Validate a serialized backup document without importing it.

        Raises:
            MalformedDocumentError: If the document cannot be parsed
        """
        return self.validator.validate(parse_document(raw))

    def schema_info(self) -> dict[str, Any]:
        """Describe the supported schema versions and collections."""
        return self.registry.describe()
