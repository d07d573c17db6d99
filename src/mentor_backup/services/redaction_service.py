"""Sensitive field redaction on export and reconciliation on import."""

import copy
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from mentor_backup.models.schema import Record

logger = logging.getLogger(__name__)

DEFAULT_REDACTION_SENTINEL = "***REDACTED***"

LocalValueLookup = Callable[[str], Awaitable[Any]]


def _has_value(value: Any) -> bool:
    return value is not None and value != ""


class Redactor:
    """Withholds secrets from exports and protects local secrets on import.

    An export never carries a secret in plaintext, and an import never
    replaces a secret that is already configured locally.
    """

    def __init__(self, sentinel: str = DEFAULT_REDACTION_SENTINEL) -> None:
        """Initialize redactor.

        Args:
            sentinel: Placeholder written in place of sensitive values
        """
        self.sentinel = sentinel

    def is_redacted(self, value: Any) -> bool:
        """Check whether a value is the redaction placeholder."""
        return value == self.sentinel

    def redact_for_export(self, record: Record, sensitive_fields: list[str]) -> Record:
        """Replace sensitive values with the redaction sentinel.

        The field stays in the record so importers still see the schema
        shape. Absent fields stay absent and empty values stay empty.

        Args:
            record: Record as loaded from a provider
            sensitive_fields: Names of the collection's sensitive fields

        Returns:
            New record safe to export
        """
        result = copy.deepcopy(record)
        for field in sensitive_fields:
            if field in result and _has_value(result[field]):
                result[field] = self.sentinel
        return result

    async def reconcile_for_import(
        self,
        record: Record,
        sensitive_fields: list[str],
        local_value: LocalValueLookup,
    ) -> Record:
        """Decide which sensitive values of an incoming record take effect.

        A value configured locally always wins. Without one, the incoming
        value is accepted unless it is the redaction sentinel, which never
        reaches storage.

        Args:
            record: Incoming (migrated) record
            sensitive_fields: Names of the collection's sensitive fields
            local_value: Async lookup of the locally configured value by field name

        Returns:
            New record with reconciled sensitive fields
        """
        result = copy.deepcopy(record)
        for field in sensitive_fields:
            existing = await local_value(field)
            if _has_value(existing):
                if field in result and result[field] != existing:
                    logger.info(f"Keeping locally configured value for '{field}'")
                result[field] = existing
            elif field in result and self.is_redacted(result[field]):
                logger.debug(f"Dropping redacted placeholder for '{field}'")
                result[field] = None
        return result
