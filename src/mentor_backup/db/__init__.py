"""SQLite persistence layer."""

from mentor_backup.db.database import Database

__all__ = ["Database"]
