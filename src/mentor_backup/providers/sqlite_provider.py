"""Collection provider storing records in the local SQLite database."""

import logging
from typing import Any

import aiosqlite

from mentor_backup.db.repositories.record_repository import RecordRepository
from mentor_backup.models.backup import RecordError, WriteResult
from mentor_backup.models.schema import Record
from mentor_backup.providers.base import CollectionProvider
from mentor_backup.utils.validators import is_valid_id

logger = logging.getLogger(__name__)


class SqliteCollectionProvider(CollectionProvider):
    """Provider for one collection, backed by the `records` table.

    Each write runs in a single transaction, so a batch either lands
    completely (minus the records rejected individually) or not at all.
    """

    def __init__(self, collection: str, repository: RecordRepository) -> None:
        """Initialize provider.

        Args:
            collection: Collection name
            repository: Record repository
        """
        super().__init__(collection)
        self.repository = repository

    async def load_all(self) -> list[Record]:
        return await self.repository.find_all(self.collection)

    async def replace_all(self, records: list[Record]) -> WriteResult:
        applied = 0
        errors: list[RecordError] = []

        async with self.repository.db.transaction():
            deleted = await self.repository.delete_collection(self.collection)
            for record in records:
                error = await self._write(record, applied, upsert=False)
                if error:
                    errors.append(error)
                else:
                    applied += 1

        logger.debug(
            f"Replaced '{self.collection}': {deleted} removed, "
            f"{applied} written, {len(errors)} rejected"
        )
        if applied or deleted:
            await self.notify_changed()
        return WriteResult(applied=applied, errors=errors)

    async def merge_all(self, records: list[Record]) -> WriteResult:
        applied = 0
        errors: list[RecordError] = []

        async with self.repository.db.transaction():
            position = await self.repository.next_position(self.collection)
            for record in records:
                error = await self._write(record, position, upsert=True)
                if error:
                    errors.append(error)
                else:
                    applied += 1
                    position += 1

        logger.debug(
            f"Merged '{self.collection}': {applied} written, {len(errors)} rejected"
        )
        if applied:
            await self.notify_changed()
        return WriteResult(applied=applied, errors=errors)

    async def current_sensitive_value(self, field_name: str) -> Any | None:
        for record in await self.repository.find_all(self.collection):
            value = record.get(field_name)
            if value is not None and value != "":
                return value
        return None

    async def _write(
        self, record: Record, position: int, *, upsert: bool
    ) -> RecordError | None:
        """Write one record inside the current transaction.

        Returns:
            RecordError if the record was rejected, None on success
        """
        if not isinstance(record, dict) or not is_valid_id(record.get("id")):
            return RecordError(record_id=None, reason="Record has no usable id")

        record_id = record["id"]
        try:
            if upsert:
                await self.repository.upsert(self.collection, record, position)
            else:
                await self.repository.insert(self.collection, record, position)
        except aiosqlite.IntegrityError as e:
            return RecordError(record_id=record_id, reason=f"Constraint violation: {e}")
        except (TypeError, ValueError) as e:
            return RecordError(record_id=record_id, reason=f"Not serializable: {e}")
        return None


def create_sqlite_providers(
    repository: RecordRepository, collections: list[str]
) -> dict[str, CollectionProvider]:
    """Create one SQLite provider per collection name."""
    return {name: SqliteCollectionProvider(name, repository) for name in collections}
