"""Abstract base class for collection providers."""

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from mentor_backup.models.backup import WriteResult
from mentor_backup.models.schema import Record

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str], Awaitable[None] | None]


class CollectionProvider(ABC):
    """Load/save contract of one collection, as seen by export and import.

    Implementations call `notify_changed()` after every write that
    changed stored data. Listeners receive the collection name.
    """

    def __init__(self, collection: str) -> None:
        """Initialize provider.

        Args:
            collection: Canonical name of the collection this provider serves
        """
        self.collection = collection
        self._listeners: list[ChangeListener] = []

    @abstractmethod
    async def load_all(self) -> list[Record]:
        """Load every record, including inactive and soft-deleted ones.

        Returns:
            Records in their stored sequence order
        """
        pass

    @abstractmethod
    async def replace_all(self, records: list[Record]) -> WriteResult:
        """Discard the collection's contents and write the given records.

        Args:
            records: Records to store

        Returns:
            Applied count and per-record errors
        """
        pass

    @abstractmethod
    async def merge_all(self, records: list[Record]) -> WriteResult:
        """Upsert records by id, leaving records not in the input untouched.

        Args:
            records: Records to upsert

        Returns:
            Applied count and per-record errors
        """
        pass

    @abstractmethod
    async def current_sensitive_value(self, field_name: str) -> Any | None:
        """Get the locally configured value of a sensitive field.

        Args:
            field_name: Sensitive field name

        Returns:
            The stored value, or None if nothing is configured
        """
        pass

    def add_listener(self, listener: ChangeListener) -> None:
        """Subscribe to the collection's "changed" signal."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        """Unsubscribe from the collection's "changed" signal."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def notify_changed(self) -> None:
        """Signal listeners that the stored collection changed.

        A failing listener is logged and does not affect the write that
        triggered it or the other listeners.
        """
        for listener in list(self._listeners):
            try:
                result = listener(self.collection)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Change listener failed for '{self.collection}'")
