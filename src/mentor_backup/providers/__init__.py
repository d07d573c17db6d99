"""Collection providers: the load/save contract used by export and import."""

from mentor_backup.providers.base import ChangeListener, CollectionProvider
from mentor_backup.providers.sqlite_provider import (
    SqliteCollectionProvider,
    create_sqlite_providers,
)

__all__ = [
    "ChangeListener",
    "CollectionProvider",
    "SqliteCollectionProvider",
    "create_sqlite_providers",
]
