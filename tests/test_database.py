"""Tests for database operations."""

import aiosqlite
import pytest

from mentor_backup.db.database import Database
from mentor_backup.db.repositories.record_repository import RecordRepository


class TestDatabase:
    """Test Database class."""

    @pytest.mark.asyncio
    async def test_database_initialization(self, memory_db: Database):
        """Test database initialization and migration."""
        cursor = await memory_db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
        tables = {row["name"] for row in await cursor.fetchall()}

        assert {"schema_version", "records"}.issubset(tables)

    @pytest.mark.asyncio
    async def test_migrate_is_repeatable(self, memory_db: Database):
        """Test that running migrations twice records version 1 once."""
        await memory_db.migrate()

        cursor = await memory_db.execute("SELECT COUNT(*) FROM schema_version")
        row = await cursor.fetchone()
        assert row[0] == 1

    @pytest.mark.asyncio
    async def test_transaction_commit(self, memory_db: Database):
        """Test transaction commit."""
        repo = RecordRepository(memory_db)
        async with memory_db.transaction():
            await repo.insert("goals", {"id": "g1", "title": "Run"}, 0)

        assert await repo.find_by_id("goals", "g1") == {"id": "g1", "title": "Run"}

    @pytest.mark.asyncio
    async def test_transaction_rollback(self, memory_db: Database):
        """Test transaction rollback on error."""
        repo = RecordRepository(memory_db)

        with pytest.raises(RuntimeError):
            async with memory_db.transaction():
                await repo.insert("goals", {"id": "g1", "title": "Run"}, 0)
                raise RuntimeError("boom")

        assert await repo.count("goals") == 0

    @pytest.mark.asyncio
    async def test_empty_id_rejected(self, memory_db: Database):
        """Test the non-empty id constraint."""
        repo = RecordRepository(memory_db)

        with pytest.raises(aiosqlite.IntegrityError):
            async with memory_db.transaction():
                await repo.insert("goals", {"id": ""}, 0)

    @pytest.mark.asyncio
    async def test_execute_requires_connection(self):
        """Test that a closed database refuses statements."""
        db = Database(database_path=":memory:")

        with pytest.raises(RuntimeError):
            await db.execute("SELECT 1")

    @pytest.mark.asyncio
    async def test_file_database_persists(self, temp_db_path: str):
        """Test that records survive reconnecting to a file database."""
        db = Database(database_path=temp_db_path)
        await db.connect()
        await db.migrate()
        async with db.transaction():
            await RecordRepository(db).insert("habits", {"id": "h1", "title": "Walk"}, 0)
        await db.close()

        reopened = Database(database_path=temp_db_path)
        await reopened.connect()
        await reopened.migrate()
        try:
            assert await RecordRepository(reopened).find_all("habits") == [
                {"id": "h1", "title": "Walk"}
            ]
        finally:
            await reopened.close()


class TestRecordRepository:
    """Test RecordRepository."""

    @pytest.mark.asyncio
    async def test_find_all_ordered_by_position(self, record_repository: RecordRepository):
        """Test that records come back in position order, per collection."""
        async with record_repository.db.transaction():
            await record_repository.insert("goals", {"id": "b"}, 1)
            await record_repository.insert("goals", {"id": "a"}, 0)
            await record_repository.insert("habits", {"id": "h"}, 0)

        assert [r["id"] for r in await record_repository.find_all("goals")] == ["a", "b"]
        assert await record_repository.count("habits") == 1
        assert await record_repository.next_position("goals") == 2
        assert await record_repository.next_position("milestones") == 0

    @pytest.mark.asyncio
    async def test_upsert_keeps_position(self, record_repository: RecordRepository):
        """Test that upserting an existing id updates data, not position."""
        async with record_repository.db.transaction():
            await record_repository.insert("goals", {"id": "g1", "title": "Old"}, 0)
            await record_repository.insert("goals", {"id": "g2", "title": "Other"}, 1)
            await record_repository.upsert("goals", {"id": "g1", "title": "New"}, 5)

        records = await record_repository.find_all("goals")
        assert records == [{"id": "g1", "title": "New"}, {"id": "g2", "title": "Other"}]

    @pytest.mark.asyncio
    async def test_delete_collection(self, record_repository: RecordRepository):
        """Test deleting one collection leaves the others."""
        async with record_repository.db.transaction():
            await record_repository.insert("goals", {"id": "g1"}, 0)
            await record_repository.insert("goals", {"id": "g2"}, 1)
            await record_repository.insert("habits", {"id": "h1"}, 0)
            deleted = await record_repository.delete_collection("goals")

        assert deleted == 2
        assert await record_repository.find_all("goals") == []
        assert await record_repository.find_by_id("habits", "h1") == {"id": "h1"}
        assert await record_repository.find_by_id("goals", "g1") is None
