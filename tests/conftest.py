"""Pytest configuration and fixtures for mentor-backup tests."""

import json
import os
import tempfile
from collections.abc import AsyncIterator, Callable, Iterator
from typing import Any

import pytest
import pytest_asyncio

from mentor_backup.config import reset_settings
from mentor_backup.config.settings import Settings
from mentor_backup.db.database import Database
from mentor_backup.db.repositories.record_repository import RecordRepository
from mentor_backup.models.backup import RecordError, WriteResult
from mentor_backup.models.schema import Record
from mentor_backup.providers.base import CollectionProvider
from mentor_backup.providers.sqlite_provider import create_sqlite_providers
from mentor_backup.services.backup_service import BackupService
from mentor_backup.services.migration_service import MigrationEngine
from mentor_backup.services.redaction_service import Redactor
from mentor_backup.services.schema_registry import SchemaRegistry, build_default_registry
from mentor_backup.services.validation_service import DocumentValidator


class InMemoryProvider(CollectionProvider):
    """Test double keeping records in a list.

    Args:
        reject_ids: Record ids rejected individually (like a constraint violation)
        fail_with: Exception raised for every write (whole batch rejected)
    """

    def __init__(
        self,
        collection: str,
        records: list[Record] | None = None,
        reject_ids: set[str] | None = None,
        fail_with: Exception | None = None,
    ) -> None:
        super().__init__(collection)
        self.records: list[Record] = [dict(r) for r in records or []]
        self.reject_ids = reject_ids or set()
        self.fail_with = fail_with
        self.write_calls: list[tuple[str, list[Record]]] = []
        self.on_write = None

    async def load_all(self) -> list[Record]:
        return [dict(r) for r in self.records]

    async def replace_all(self, records: list[Record]) -> WriteResult:
        return await self._write("replace", records)

    async def merge_all(self, records: list[Record]) -> WriteResult:
        return await self._write("merge", records)

    async def current_sensitive_value(self, field_name: str) -> Any | None:
        for record in self.records:
            value = record.get(field_name)
            if value:
                return value
        return None

    async def _write(self, mode: str, records: list[Record]) -> WriteResult:
        self.write_calls.append((mode, records))
        if self.on_write is not None:
            self.on_write(self.collection)
        if self.fail_with is not None:
            raise self.fail_with

        accepted = [r for r in records if r["id"] not in self.reject_ids]
        errors = [
            RecordError(record_id=r["id"], reason="Rejected by provider")
            for r in records
            if r["id"] in self.reject_ids
        ]
        if mode == "replace":
            self.records = [dict(r) for r in accepted]
        else:
            by_id = {r["id"]: r for r in self.records}
            for record in accepted:
                if record["id"] in by_id:
                    by_id[record["id"]].clear()
                    by_id[record["id"]].update(record)
                else:
                    self.records.append(dict(record))
                    by_id[record["id"]] = self.records[-1]
        await self.notify_changed()
        return WriteResult(applied=len(accepted), errors=errors)


@pytest.fixture(autouse=True)
def clean_settings() -> Iterator[None]:
    """Reset the global settings singleton between tests."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def test_settings() -> Settings:
    """Test configuration settings."""
    return Settings(
        database_path=":memory:",
        backup_dir=tempfile.gettempdir(),
        export_indent=2,
        redaction_sentinel="***REDACTED***",
        default_import_mode="replace",
        log_level="DEBUG",
    )


@pytest_asyncio.fixture
async def temp_db_path() -> AsyncIterator[str]:
    """Create temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    yield db_path

    # Cleanup
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest_asyncio.fixture
async def memory_db() -> AsyncIterator[Database]:
    """In-memory database for fast tests."""
    db = Database(database_path=":memory:")
    await db.connect()
    await db.migrate()

    yield db

    await db.close()


@pytest_asyncio.fixture
async def temp_db(temp_db_path: str) -> AsyncIterator[Database]:
    """Temporary file-based database."""
    db = Database(database_path=temp_db_path)
    await db.connect()
    await db.migrate()

    yield db

    await db.close()


@pytest.fixture
def registry() -> SchemaRegistry:
    """Default schema registry."""
    return build_default_registry()


@pytest.fixture
def validator(registry: SchemaRegistry) -> DocumentValidator:
    """Document validator fixture."""
    return DocumentValidator(registry)


@pytest.fixture
def migration_engine(registry: SchemaRegistry) -> MigrationEngine:
    """Migration engine fixture."""
    return MigrationEngine(registry)


@pytest.fixture
def redactor() -> Redactor:
    """Redactor fixture."""
    return Redactor()


@pytest.fixture
def record_repository(memory_db: Database) -> RecordRepository:
    """Record repository fixture."""
    return RecordRepository(memory_db)


@pytest.fixture
def sqlite_providers(
    record_repository: RecordRepository, registry: SchemaRegistry
) -> dict[str, CollectionProvider]:
    """SQLite providers for every registered collection."""
    return create_sqlite_providers(record_repository, registry.collection_names)


@pytest.fixture
def memory_providers(registry: SchemaRegistry) -> dict[str, InMemoryProvider]:
    """Empty in-memory providers for every registered collection."""
    return {name: InMemoryProvider(name) for name in registry.collection_names}


@pytest.fixture
def backup_service(
    memory_providers: dict[str, InMemoryProvider],
    registry: SchemaRegistry,
    test_settings: Settings,
) -> BackupService:
    """Backup service over in-memory providers."""
    return BackupService(memory_providers, registry=registry, settings=test_settings)


@pytest.fixture
def sqlite_backup_service(
    sqlite_providers: dict[str, CollectionProvider],
    registry: SchemaRegistry,
    test_settings: Settings,
) -> BackupService:
    """Backup service over SQLite providers."""
    return BackupService(sqlite_providers, registry=registry, settings=test_settings)


def _sample_dataset() -> dict[str, list[Record]]:
    return {
        "settings": [{"id": "settings", "theme": "dark", "claudeApiKey": None}],
        "goals": [
            {
                "id": "g1",
                "title": "Run a marathon",
                "description": "Finish under 4 hours",
                "category": "GoalCategory.health",
                "createdAt": "2024-01-05T09:00:00.000",
                "targetDate": "2024-10-01T00:00:00.000",
                "currentProgress": 35,
                "isActive": True,
                "status": "GoalStatus.active",
                "order": 0,
            },
            {
                "id": "g2",
                "title": "Read 20 books",
                "createdAt": "2024-01-06T09:00:00.000",
                "isActive": False,
                "order": 3,
            },
        ],
        "milestones": [
            {"id": "m1", "goalId": "g1", "title": "Run 10k", "order": 0, "isCompleted": True},
            {"id": "m2", "goalId": "g1", "title": "Run 21k", "order": 1, "isCompleted": False},
        ],
        "habits": [
            {
                "id": "h1",
                "title": "Stretch",
                "frequency": "HabitFrequency.daily",
                "isActive": True,
                "createdAt": "2024-01-07T07:00:00.000",
                "order": 0,
            }
        ],
        "habitCompletions": [
            {"id": "hc1", "habitId": "h1", "completedAt": "2024-02-01T07:10:00.000"}
        ],
        "journalEntries": [
            {
                "id": "j1",
                "createdAt": "2024-02-01T21:00:00.000",
                "type": "quickNote",
                "content": "Felt strong today",
                "goalIds": ["g1"],
            }
        ],
        "pulseTypes": [
            {
                "id": "pt1",
                "name": "Mood",
                "iconName": "mood",
                "colorHex": "FF9800",
                "isActive": True,
                "order": 0,
                "createdAt": "2024-01-01T00:00:00.000",
            }
        ],
        "pulseEntries": [
            {
                "id": "p1",
                "timestamp": "2024-02-01T21:05:00.000",
                "customMetrics": {"Mood": 4, "Energy": 3},
                "journalEntryId": "j1",
            }
        ],
        "checkin": [
            {
                "id": "checkin",
                "nextCheckinTime": 1706860800000,
                "lastCompletedAt": None,
                "responses": {},
            }
        ],
    }


def _make_document(
    collections: dict[str, Any], schema_version: int = 4, **extra: Any
) -> dict[str, Any]:
    document = {
        "schemaVersion": schema_version,
        "exportedAt": "2024-03-01T12:00:00+00:00",
        "collections": collections,
    }
    document.update(extra)
    return document


@pytest.fixture
def sample_dataset() -> dict[str, list[Record]]:
    """A current-version dataset touching every collection."""
    return _sample_dataset()


@pytest.fixture
def make_document() -> Callable[..., dict[str, Any]]:
    """Factory for wire-format document dicts."""
    return _make_document


@pytest.fixture
def make_raw() -> Callable[..., bytes]:
    """Factory for serialized documents."""

    def factory(collections: dict[str, Any], schema_version: int = 4, **extra: Any) -> bytes:
        return json.dumps(_make_document(collections, schema_version, **extra)).encode("utf-8")

    return factory


@pytest.fixture
def provider_factory() -> type[InMemoryProvider]:
    """In-memory provider class for tests that need custom behaviour."""
    return InMemoryProvider
