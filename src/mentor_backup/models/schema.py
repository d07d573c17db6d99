"""Collection schema and migration step models."""

from collections.abc import Callable
from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

Record = dict[str, Any]


class FieldType(str, Enum):
    """Coarse field types checked by the validator."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    OBJECT = "object"
    ARRAY = "array"


class SchemaField(BaseModel):
    """Schema field definition.

    A field exists from `since_version` up to (not including) `until_version`.
    """

    name: str
    type: FieldType
    required: bool = False
    sensitive: bool = False
    since_version: int = Field(default=1, ge=0)
    until_version: int | None = None
    description: str | None = None

    @model_validator(mode="after")
    def validate_version_range(self) -> Self:
        """Ensure the field's lifetime is non-empty."""
        if self.until_version is not None and self.until_version <= self.since_version:
            raise ValueError(
                f"Field '{self.name}': until_version ({self.until_version}) "
                f"must be > since_version ({self.since_version})"
            )
        return self

    def exists_in(self, version: int) -> bool:
        """Check whether the field is part of the schema at a version."""
        if version < self.since_version:
            return False
        return self.until_version is None or version < self.until_version


class CollectionSchema(BaseModel):
    """Record shape of one collection across all schema versions."""

    name: str
    fields: list[SchemaField]
    description: str | None = None
    aliases: list[str] = Field(default_factory=list)

    def fields_at(self, version: int) -> list[SchemaField]:
        """Get the fields declared for a given schema version."""
        return [field for field in self.fields if field.exists_in(version)]

    def has_field(self, name: str, version: int) -> bool:
        """Check whether a named field exists at a given schema version."""
        return any(field.name == name for field in self.fields_at(version))

    def sensitive_fields(self, version: int) -> list[str]:
        """Names of sensitive fields at a given schema version."""
        return [field.name for field in self.fields_at(version) if field.sensitive]


class MigrationStep(BaseModel):
    """Pure transform moving one collection between two versions.

    Most steps transform one record at a time (`transform`). Steps that
    derive values from a record's position among its siblings work on
    the whole collection (`batch_transform`) and must return one record
    per input record, in the same sequence.
    """

    model_config = ConfigDict(frozen=True)

    collection: str
    from_version: int = Field(ge=0)
    to_version: int = Field(ge=1)
    name: str
    description: str = ""
    transform: Callable[[Record], Record] | None = Field(default=None, exclude=True)
    batch_transform: Callable[[list[Record]], list[Record]] | None = Field(
        default=None, exclude=True
    )

    @model_validator(mode="after")
    def validate_direction(self) -> Self:
        """Steps only move forward."""
        if self.to_version <= self.from_version:
            raise ValueError(
                f"Migration '{self.name}' must move forward "
                f"(v{self.from_version} -> v{self.to_version})"
            )
        return self

    @model_validator(mode="after")
    def validate_transform(self) -> Self:
        """Exactly one kind of transform is set."""
        if (self.transform is None) == (self.batch_transform is None):
            raise ValueError(
                f"Migration '{self.name}' needs exactly one of transform "
                f"or batch_transform"
            )
        return self

    def apply(self, record: Record) -> Record:
        """Apply the step to a single record."""
        if self.batch_transform is not None:
            return self.batch_transform([record])[0]
        return self.transform(record)

    def apply_all(self, records: list[Any]) -> list[Any]:
        """Apply the step to every record of a collection.

        Entries that are not records are passed through untouched.
        """
        if self.batch_transform is not None:
            return self.batch_transform(records)
        return [self.transform(r) if isinstance(r, dict) else r for r in records]
