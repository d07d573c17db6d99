"""Tests for the schema registry."""

import pytest

from mentor_backup.exceptions import UnknownCollectionError
from mentor_backup.models.schema import (
    CollectionSchema,
    FieldType,
    MigrationStep,
    SchemaField,
)
from mentor_backup.services.schema_registry import SchemaRegistry


def _schema(name: str, aliases: list[str] | None = None) -> CollectionSchema:
    return CollectionSchema(
        name=name,
        aliases=aliases or [],
        fields=[SchemaField(name="id", type=FieldType.STRING, required=True)],
    )


def _step(collection: str, from_version: int, name: str = "step") -> MigrationStep:
    return MigrationStep(
        collection=collection,
        from_version=from_version,
        to_version=from_version + 1,
        name=name,
        transform=lambda record: {**record, "touched": True},
    )


class TestDefaultRegistry:
    """Test the built-in collections and migration history."""

    def test_versions(self, registry):
        """Test current and minimum supported versions."""
        assert registry.current_version() == 4
        assert registry.min_supported_version == 1
        assert registry.is_supported(1)
        assert registry.is_supported(4)
        assert not registry.is_supported(0)
        assert not registry.is_supported(5)

    def test_collection_order_is_dependency_aware(self, registry):
        """Test that parent collections are imported before dependents."""
        names = registry.collection_names

        assert names == [
            "settings",
            "goals",
            "milestones",
            "habits",
            "habitCompletions",
            "journalEntries",
            "pulseTypes",
            "pulseEntries",
            "checkin",
        ]
        assert names.index("goals") < names.index("milestones")
        assert names.index("habits") < names.index("habitCompletions")
        assert names.index("journalEntries") < names.index("pulseEntries")

    def test_migrations_form_a_gapless_chain(self, registry):
        """Test that every collection has exactly one step per version."""
        for name in registry.collection_names:
            steps = registry.migrations_for(name)

            assert [s.from_version for s in steps] == [1, 2, 3]
            assert [s.to_version for s in steps] == [2, 3, 4]
            assert all(s.collection == name for s in steps)

    def test_migrations_from_version(self, registry):
        """Test slicing the chain from a given version."""
        steps = registry.migrations_for("goals", from_version=2)
        assert [s.from_version for s in steps] == [2, 3]
        assert steps[0].name == "goal_order"

        assert registry.migrations_for("goals", from_version=4) == []

    def test_unknown_collection(self, registry):
        """Test that unknown collection lookups raise."""
        with pytest.raises(UnknownCollectionError) as exc_info:
            registry.migrations_for("conversations")
        assert exc_info.value.collection == "conversations"

        with pytest.raises(UnknownCollectionError):
            registry.get_schema("conversations")

    def test_alias_resolution(self, registry):
        """Test that the legacy moodEntries name resolves to pulseEntries."""
        assert registry.is_known("moodEntries")
        assert registry.canonical_name("moodEntries") == "pulseEntries"
        assert registry.get_schema("moodEntries").name == "pulseEntries"
        assert registry.aliases == {"moodEntries": "pulseEntries"}
        assert "moodEntries" not in registry.collection_names

    def test_sensitive_fields(self, registry):
        """Test that API credentials are declared sensitive."""
        assert registry.sensitive_fields("settings") == [
            "claudeApiKey",
            "huggingfaceToken",
        ]
        assert registry.sensitive_fields("goals") == []

    def test_field_history(self, registry):
        """Test that fields are tagged with the versions they exist in."""
        goals = registry.get_schema("goals")
        assert not goals.has_field("order", 2)
        assert goals.has_field("order", 3)

        pulse = registry.get_schema("pulseEntries")
        assert pulse.has_field("mood", 3)
        assert not pulse.has_field("mood", 4)
        assert pulse.has_field("customMetrics", 4)

    def test_describe(self, registry):
        """Test the registry summary."""
        info = registry.describe()

        assert info["current_version"] == 4
        assert info["min_supported_version"] == 1
        goals = next(c for c in info["collections"] if c["name"] == "goals")
        assert goals["migrations"] == ["goal_order"]
        assert "order" in goals["fields"]
        settings = next(c for c in info["collections"] if c["name"] == "settings")
        assert settings["sensitive_fields"] == ["claudeApiKey", "huggingfaceToken"]


class TestRegistryConstruction:
    """Test registry consistency checks."""

    def test_identity_steps_fill_gaps(self):
        """Test that undeclared versions get identity steps."""
        registry = SchemaRegistry(
            schemas=[_schema("notes")],
            steps=[_step("notes", 2, name="notes_touch")],
            current_version=4,
        )

        steps = registry.migrations_for("notes")
        assert [s.name for s in steps] == [
            "notes_v1_identity",
            "notes_touch",
            "notes_v3_identity",
        ]
        record = {"id": "n1"}
        assert steps[0].apply(record) == record
        assert steps[0].apply(record) is not record

    def test_duplicate_steps_rejected(self):
        """Test that two steps from the same version are ambiguous."""
        with pytest.raises(ValueError, match="Ambiguous"):
            SchemaRegistry(
                schemas=[_schema("notes")],
                steps=[_step("notes", 1, "a"), _step("notes", 1, "b")],
                current_version=2,
            )

    def test_step_for_unknown_collection_rejected(self):
        """Test that steps must target a registered collection."""
        with pytest.raises(UnknownCollectionError):
            SchemaRegistry(
                schemas=[_schema("notes")],
                steps=[_step("tasks", 1)],
                current_version=2,
            )

    def test_multi_version_step_rejected(self):
        """Test that steps advance exactly one version."""
        step = MigrationStep(
            collection="notes",
            from_version=1,
            to_version=3,
            name="jump",
            transform=dict,
        )
        with pytest.raises(ValueError, match="exactly one version"):
            SchemaRegistry(schemas=[_schema("notes")], steps=[step], current_version=3)

    def test_step_beyond_current_version_rejected(self):
        """Test that steps cannot lead past the current version."""
        with pytest.raises(ValueError, match="outside the supported range"):
            SchemaRegistry(
                schemas=[_schema("notes")],
                steps=[_step("notes", 2)],
                current_version=2,
            )

    def test_backward_step_rejected(self):
        """Test that migration steps only move forward."""
        with pytest.raises(ValueError):
            MigrationStep(
                collection="notes",
                from_version=3,
                to_version=2,
                name="backwards",
                transform=dict,
            )

    def test_duplicate_alias_rejected(self):
        """Test that an alias cannot shadow another collection."""
        with pytest.raises(ValueError, match="Duplicate collection alias"):
            SchemaRegistry(
                schemas=[_schema("notes"), _schema("tasks", aliases=["notes"])],
                steps=[],
                current_version=1,
            )

    def test_min_version_above_current_rejected(self):
        """Test that the supported range cannot be empty."""
        with pytest.raises(ValueError):
            SchemaRegistry(
                schemas=[_schema("notes")],
                steps=[],
                current_version=1,
                min_supported_version=2,
            )
