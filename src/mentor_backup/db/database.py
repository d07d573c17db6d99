"""Database connection and migration management."""

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite

MEMORY_DATABASE = ":memory:"


class Database:
    """Database connection and operations manager."""

    def __init__(self, database_path: str) -> None:
        """Initialize database manager.

        Args:
            database_path: Path to SQLite database file (or ":memory:")
        """
        self.database_path = database_path
        self.conn: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()
        self._in_transaction = False

    async def connect(self) -> None:
        """Connect to database."""
        if self.database_path != MEMORY_DATABASE:
            # Ensure data directory exists
            db_dir = Path(self.database_path).parent
            db_dir.mkdir(parents=True, exist_ok=True)

        self.conn = await aiosqlite.connect(self.database_path)
        self.conn.row_factory = aiosqlite.Row

    async def close(self) -> None:
        """Close database connection."""
        if self.conn:
            await self.conn.close()
            self.conn = None

    async def execute(
        self, sql: str, parameters: tuple[Any, ...] | dict[str, Any] = ()
    ) -> aiosqlite.Cursor:
        """Execute a SQL statement.

        Args:
            sql: SQL statement
            parameters: Query parameters

        Returns:
            Database cursor
        """
        if not self.conn:
            raise RuntimeError("Database not connected")
        return await self.conn.execute(sql, parameters)

    async def executemany(self, sql: str, parameters: list[tuple[Any, ...]]) -> None:
        """Execute a SQL statement with multiple parameter sets.

        Args:
            sql: SQL statement
            parameters: List of parameter tuples
        """
        if not self.conn:
            raise RuntimeError("Database not connected")
        await self.conn.executemany(sql, parameters)

    async def commit(self) -> None:
        """Commit current transaction."""
        if not self.conn:
            raise RuntimeError("Database not connected")
        await self.conn.commit()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Context manager for database transactions.

        Provides exclusive write access with proper nesting detection.
        If already in a transaction, yields without starting a new one
        to prevent "cannot start a transaction within a transaction" errors.

        Yields:
            None

        Example:
            async with db.transaction():
                await db.execute(...)
        """
        if not self.conn:
            raise RuntimeError("Database not connected")

        # If already in a transaction, just yield without nesting
        if self._in_transaction:
            yield
            return

        # Acquire write lock for exclusive access
        async with self._write_lock:
            self._in_transaction = True
            await self.conn.execute("BEGIN")
            try:
                yield
                await self.conn.commit()
            except BaseException:
                await self.conn.rollback()
                raise
            finally:
                self._in_transaction = False

    async def migrate(self) -> None:
        """Run database migrations."""
        # Check current schema version
        try:
            cursor = await self.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
            row = await cursor.fetchone()
            current_version = row[0] if row else 0
        except aiosqlite.OperationalError:
            current_version = 0

        # Run migrations if needed
        if current_version < 1:
            await self._migrate_v1()

    async def _migrate_v1(self) -> None:
        """Initial database schema migration."""
        async with self.transaction():
            # Create schema_version table
            await self.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at DATETIME NOT NULL
                )
            """)

            # Create records table (one row per record of every collection)
            await self.execute("""
                CREATE TABLE IF NOT EXISTS records (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL CHECK (length(id) > 0),
                    position INTEGER NOT NULL,
                    data TEXT NOT NULL CHECK (json_valid(data)),
                    updated_at DATETIME NOT NULL,
                    PRIMARY KEY (collection, id)
                )
            """)

            await self.execute(
                "CREATE INDEX IF NOT EXISTS idx_records_position "
                "ON records(collection, position)"
            )

            # Record migration
            await self.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (1, datetime.now(timezone.utc).isoformat()),
            )

    @staticmethod
    def serialize_json(data: Any) -> str:
        """Serialize data to JSON string.

        Args:
            data: Data to serialize

        Returns:
            JSON string
        """
        return json.dumps(data, ensure_ascii=False)

    @staticmethod
    def deserialize_json(data: str) -> Any:
        """Deserialize JSON string to data.

        Args:
            data: JSON string

        Returns:
            Deserialized data
        """
        return json.loads(data) if data else {}
