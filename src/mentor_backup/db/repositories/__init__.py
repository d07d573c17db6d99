"""Repository modules for data access."""

from mentor_backup.db.repositories.record_repository import RecordRepository

__all__ = ["RecordRepository"]
