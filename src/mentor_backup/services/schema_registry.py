"""Schema registry: collection shapes and their migration chains."""

import copy
import logging
from typing import Any

from mentor_backup.exceptions import UnknownCollectionError
from mentor_backup.models.schema import CollectionSchema, MigrationStep, Record
from mentor_backup.schema import (
    COLLECTION_SCHEMAS,
    CURRENT_SCHEMA_VERSION,
    MIN_SUPPORTED_SCHEMA_VERSION,
    declared_steps,
)

logger = logging.getLogger(__name__)


def _identity(record: Record) -> Record:
    return copy.deepcopy(record)


class SchemaRegistry:
    """Pure lookup of collection schemas and migration steps.

    Collections are kept in registration order, which is also the order
    used for export and import. Each collection gets exactly one step per
    version between the minimum supported version and the current one.
    """

    def __init__(
        self,
        schemas: list[CollectionSchema],
        steps: list[MigrationStep],
        current_version: int,
        min_supported_version: int = 1,
    ) -> None:
        """Initialize the registry.

        Args:
            schemas: Collection schemas in import order
            steps: Declared migration steps (gaps are filled with identity steps)
            current_version: Schema version written by exports
            min_supported_version: Oldest version that can still be migrated

        Raises:
            ValueError: If the schemas or steps are inconsistent
        """
        if min_supported_version > current_version:
            raise ValueError(
                f"min_supported_version ({min_supported_version}) "
                f"must be <= current_version ({current_version})"
            )
        self._current_version = current_version
        self._min_supported_version = min_supported_version

        self._schemas: dict[str, CollectionSchema] = {}
        self._aliases: dict[str, str] = {}
        for schema in schemas:
            if schema.name in self._schemas or schema.name in self._aliases:
                raise ValueError(f"Duplicate collection: {schema.name}")
            self._schemas[schema.name] = schema
        for schema in schemas:
            for alias in schema.aliases:
                if alias in self._schemas or alias in self._aliases:
                    raise ValueError(f"Duplicate collection alias: {alias}")
                self._aliases[alias] = schema.name

        self._steps: dict[str, dict[int, MigrationStep]] = {
            name: {} for name in self._schemas
        }
        for step in steps:
            self._register_step(step)
        self._fill_gaps()

    def _register_step(self, step: MigrationStep) -> None:
        if step.collection not in self._schemas:
            raise UnknownCollectionError(step.collection)
        if step.to_version != step.from_version + 1:
            raise ValueError(
                f"Migration '{step.name}' must advance exactly one version "
                f"(v{step.from_version} -> v{step.to_version})"
            )
        if (
            step.from_version < self._min_supported_version
            or step.to_version > self._current_version
        ):
            raise ValueError(
                f"Migration '{step.name}' is outside the supported range "
                f"v{self._min_supported_version}..v{self._current_version}"
            )
        chain = self._steps[step.collection]
        if step.from_version in chain:
            raise ValueError(
                f"Ambiguous migrations for '{step.collection}' "
                f"from v{step.from_version}: "
                f"'{chain[step.from_version].name}' and '{step.name}'"
            )
        chain[step.from_version] = step

    def _fill_gaps(self) -> None:
        for collection, chain in self._steps.items():
            for version in range(self._min_supported_version, self._current_version):
                if version not in chain:
                    chain[version] = MigrationStep(
                        collection=collection,
                        from_version=version,
                        to_version=version + 1,
                        name=f"{collection}_v{version}_identity",
                        description="No record shape change",
                        transform=_identity,
                    )

    def current_version(self) -> int:
        """Schema version produced by exports of this build."""
        return self._current_version

    @property
    def min_supported_version(self) -> int:
        return self._min_supported_version

    def is_supported(self, version: int) -> bool:
        """Check whether a migration path exists from a version."""
        return self._min_supported_version <= version <= self._current_version

    @property
    def collection_names(self) -> list[str]:
        """Canonical collection names in import order."""
        return list(self._schemas)

    @property
    def aliases(self) -> dict[str, str]:
        """Mapping of historical collection names to canonical ones."""
        return dict(self._aliases)

    def is_known(self, name: str) -> bool:
        """Check whether a name is a registered collection or alias."""
        return name in self._schemas or name in self._aliases

    def canonical_name(self, name: str) -> str:
        """Resolve an alias to its canonical collection name.

        Raises:
            UnknownCollectionError: If the name is not registered
        """
        if name in self._schemas:
            return name
        if name in self._aliases:
            return self._aliases[name]
        raise UnknownCollectionError(name)

    def get_schema(self, collection: str) -> CollectionSchema:
        """Get a collection schema by canonical name or alias.

        Raises:
            UnknownCollectionError: If the collection is not registered
        """
        return self._schemas[self.canonical_name(collection)]

    def migrations_for(
        self, collection: str, from_version: int | None = None
    ) -> list[MigrationStep]:
        """Ordered migration steps of a collection.

        Args:
            collection: Collection name or alias
            from_version: First version of the chain (default: oldest supported)

        Returns:
            Steps connecting `from_version` to the current version

        Raises:
            UnknownCollectionError: If the collection is not registered
        """
        chain = self._steps[self.canonical_name(collection)]
        start = self._min_supported_version if from_version is None else from_version
        return [chain[v] for v in sorted(chain) if v >= start]

    def sensitive_fields(self, collection: str) -> list[str]:
        """Names of sensitive fields of a collection at the current version."""
        return self.get_schema(collection).sensitive_fields(self._current_version)

    def describe(self) -> dict[str, Any]:
        """Summarise the registry for display."""
        return {
            "current_version": self._current_version,
            "min_supported_version": self._min_supported_version,
            "collections": [
                {
                    "name": schema.name,
                    "aliases": list(schema.aliases),
                    "fields": [f.name for f in schema.fields_at(self._current_version)],
                    "sensitive_fields": schema.sensitive_fields(self._current_version),
                    "migrations": [
                        step.name
                        for step in self.migrations_for(schema.name)
                        if step.transform is not _identity
                    ],
                }
                for schema in self._schemas.values()
            ],
        }


def build_default_registry() -> SchemaRegistry:
    """Create the registry of the built-in collections."""
    registry = SchemaRegistry(
        schemas=COLLECTION_SCHEMAS,
        steps=declared_steps(),
        current_version=CURRENT_SCHEMA_VERSION,
        min_supported_version=MIN_SUPPORTED_SCHEMA_VERSION,
    )
    logger.debug(
        f"Schema registry ready: v{registry.current_version()}, "
        f"{len(registry.collection_names)} collections"
    )
    return registry
