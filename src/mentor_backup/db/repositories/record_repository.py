"""Record repository for database operations.

Methods do not commit; callers group writes with `Database.transaction()`.
"""

from datetime import datetime, timezone
from typing import Any

from mentor_backup.db.database import Database
from mentor_backup.models.schema import Record


class RecordRepository:
    """Repository for collection records stored as JSON documents."""

    def __init__(self, db: Database) -> None:
        """Initialize repository.

        Args:
            db: Database instance
        """
        self.db = db

    async def find_all(self, collection: str) -> list[Record]:
        """Find every record of a collection in stored order.

        Args:
            collection: Collection name

        Returns:
            Records ordered by position
        """
        cursor = await self.db.execute(
            "SELECT data FROM records WHERE collection = ? ORDER BY position, rowid",
            (collection,),
        )
        rows = await cursor.fetchall()
        return [self.db.deserialize_json(row["data"]) for row in rows]

    async def find_by_id(self, collection: str, record_id: str) -> Record | None:
        """Find a record by id.

        Args:
            collection: Collection name
            record_id: Record ID

        Returns:
            Record or None if not found
        """
        cursor = await self.db.execute(
            "SELECT data FROM records WHERE collection = ? AND id = ?",
            (collection, record_id),
        )
        row = await cursor.fetchone()
        if not row:
            return None
        return self.db.deserialize_json(row["data"])

    async def count(self, collection: str) -> int:
        """Count the records of a collection."""
        cursor = await self.db.execute(
            "SELECT COUNT(*) FROM records WHERE collection = ?", (collection,)
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def next_position(self, collection: str) -> int:
        """Get the position after the last stored record."""
        cursor = await self.db.execute(
            "SELECT COALESCE(MAX(position) + 1, 0) FROM records WHERE collection = ?",
            (collection,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def delete_collection(self, collection: str) -> int:
        """Delete every record of a collection.

        Returns:
            Number of deleted records
        """
        cursor = await self.db.execute(
            "DELETE FROM records WHERE collection = ?", (collection,)
        )
        return cursor.rowcount

    async def insert(self, collection: str, record: Record, position: int) -> None:
        """Insert a new record.

        Raises:
            sqlite3.IntegrityError: If the id already exists in the collection
        """
        await self.db.execute(
            """
            INSERT INTO records (collection, id, position, data, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            self._params(collection, record, position),
        )

    async def upsert(self, collection: str, record: Record, position: int) -> None:
        """Insert a record or replace the data of an existing one.

        Existing records keep their position.
        """
        await self.db.execute(
            """
            INSERT INTO records (collection, id, position, data, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (collection, id) DO UPDATE SET
                data = excluded.data,
                updated_at = excluded.updated_at
            """,
            self._params(collection, record, position),
        )

    def _params(
        self, collection: str, record: Record, position: int
    ) -> tuple[Any, ...]:
        return (
            collection,
            record["id"],
            position,
            self.db.serialize_json(record),
            datetime.now(timezone.utc).isoformat(),
        )
