"""Export builder: assembles a redacted backup document from providers."""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone

from mentor_backup.exceptions import UnknownCollectionError
from mentor_backup.models.backup import BackupDocument
from mentor_backup.providers.base import CollectionProvider
from mentor_backup.services.redaction_service import Redactor
from mentor_backup.services.schema_registry import SchemaRegistry

logger = logging.getLogger(__name__)


class ExportBuilder:
    """Reads every registered collection and builds a backup document."""

    def __init__(self, registry: SchemaRegistry, redactor: Redactor) -> None:
        """Initialize export builder.

        Args:
            registry: Schema registry (collection order and sensitive fields)
            redactor: Redactor applied to every exported record
        """
        self.registry = registry
        self.redactor = redactor

    async def build_export(
        self, providers: Mapping[str, CollectionProvider]
    ) -> BackupDocument:
        """Build a backup document at the current schema version.

        Every registered collection appears in the document, empty ones as
        an empty list. Reads are per collection; no snapshot across
        collections is taken.

        Args:
            providers: Providers keyed by canonical collection name

        Returns:
            Redacted backup document

        Raises:
            UnknownCollectionError: If a provider is registered under an unknown name
        """
        known = set(self.registry.collection_names)
        for name in providers:
            if name not in known:
                raise UnknownCollectionError(name)

        exported_at = datetime.now(timezone.utc)
        collections: dict[str, list[dict]] = {}
        for name in self.registry.collection_names:
            provider = providers.get(name)
            if provider is None:
                logger.warning(f"No provider for collection '{name}', exporting it empty")
                collections[name] = []
                continue

            records = await provider.load_all()
            sensitive_fields = self.registry.sensitive_fields(name)
            collections[name] = [
                self.redactor.redact_for_export(record, sensitive_fields)
                for record in records
            ]

        document = BackupDocument(
            schema_version=self.registry.current_version(),
            exported_at=exported_at,
            collections=collections,
        )
        logger.info(
            f"Built export at schema v{document.schema_version}: "
            f"{sum(document.record_counts().values())} records "
            f"in {len(collections)} collections"
        )
        return document
