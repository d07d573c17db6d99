"""Validation utilities for backup record values.

This module provides the coarse type checks shared by the document
validator and the migration tests. Values are the plain Python objects
produced by `json.loads`.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from mentor_backup.models.schema import FieldType


def is_timestamp(value: Any) -> bool:
    """Check that a value is an ISO-8601 timestamp string.

    Args:
        value: The value to check

    Returns:
        True if `datetime.fromisoformat` accepts the value
    """
    if not isinstance(value, str) or not value:
        return False
    try:
        datetime.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_number(value: Any) -> bool:
    """Check for an int or float, excluding booleans."""
    return isinstance(value, int | float) and not isinstance(value, bool)


def is_integer(value: Any) -> bool:
    """Check for an int, excluding booleans."""
    return isinstance(value, int) and not isinstance(value, bool)


def is_valid_id(value: Any) -> bool:
    """Check that a value can be used as a record id."""
    return isinstance(value, str) and bool(value.strip())


def is_valid_order(value: Any) -> bool:
    """Check that a value is a usable `order` hint (non-negative integer)."""
    return is_integer(value) and value >= 0


def matches_type(value: Any, field_type: FieldType) -> bool:
    """Check a value against a coarse field type.

    Args:
        value: The value to check (never None; callers handle nulls)
        field_type: Expected coarse type

    Returns:
        True if the value has the expected type
    """
    if field_type == FieldType.STRING:
        return isinstance(value, str)
    if field_type == FieldType.NUMBER:
        return is_number(value)
    if field_type == FieldType.INTEGER:
        return is_integer(value)
    if field_type == FieldType.BOOLEAN:
        return isinstance(value, bool)
    if field_type == FieldType.TIMESTAMP:
        return is_timestamp(value)
    if field_type == FieldType.OBJECT:
        return isinstance(value, Mapping)
    if field_type == FieldType.ARRAY:
        return isinstance(value, list | tuple)
    return False


def describe_type(value: Any) -> str:
    """Name the JSON type of a value for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, list | tuple):
        return "array"
    return type(value).__name__
