"""Collection schemas of the backup document.

Collections are listed in import order: parents before the collections
that reference them by id (goals before milestones, journal entries
before the pulse entries that link to them).
"""

from mentor_backup.models.schema import CollectionSchema, FieldType, SchemaField

CURRENT_SCHEMA_VERSION = 4
MIN_SUPPORTED_SCHEMA_VERSION = 1

SETTINGS = CollectionSchema(
    name="settings",
    description="Singleton app configuration record",
    fields=[
        SchemaField(name="id", type=FieldType.STRING, required=True),
        SchemaField(
            name="claudeApiKey",
            type=FieldType.STRING,
            sensitive=True,
            description="Anthropic API key",
        ),
        SchemaField(
            name="huggingfaceToken",
            type=FieldType.STRING,
            sensitive=True,
            description="Hugging Face access token for model downloads",
        ),
    ],
)

GOALS = CollectionSchema(
    name="goals",
    fields=[
        SchemaField(name="id", type=FieldType.STRING, required=True),
        SchemaField(name="title", type=FieldType.STRING, required=True),
        SchemaField(name="description", type=FieldType.STRING),
        SchemaField(name="category", type=FieldType.STRING),
        SchemaField(name="createdAt", type=FieldType.TIMESTAMP, required=True),
        SchemaField(name="targetDate", type=FieldType.TIMESTAMP),
        SchemaField(name="currentProgress", type=FieldType.NUMBER),
        SchemaField(name="isActive", type=FieldType.BOOLEAN),
        SchemaField(name="status", type=FieldType.STRING),
        SchemaField(name="order", type=FieldType.INTEGER, required=True, since_version=3),
    ],
)

MILESTONES = CollectionSchema(
    name="milestones",
    fields=[
        SchemaField(name="id", type=FieldType.STRING, required=True),
        SchemaField(name="goalId", type=FieldType.STRING, required=True),
        SchemaField(name="title", type=FieldType.STRING, required=True),
        SchemaField(name="description", type=FieldType.STRING),
        SchemaField(name="targetDate", type=FieldType.TIMESTAMP),
        SchemaField(name="completedDate", type=FieldType.TIMESTAMP),
        SchemaField(name="order", type=FieldType.INTEGER, required=True),
        SchemaField(name="isCompleted", type=FieldType.BOOLEAN),
    ],
)

HABITS = CollectionSchema(
    name="habits",
    fields=[
        SchemaField(name="id", type=FieldType.STRING, required=True),
        SchemaField(name="title", type=FieldType.STRING, required=True),
        SchemaField(name="description", type=FieldType.STRING),
        SchemaField(name="frequency", type=FieldType.STRING),
        SchemaField(name="isActive", type=FieldType.BOOLEAN),
        SchemaField(name="status", type=FieldType.STRING),
        SchemaField(name="createdAt", type=FieldType.TIMESTAMP, required=True),
        SchemaField(name="order", type=FieldType.INTEGER, required=True, since_version=3),
    ],
)

HABIT_COMPLETIONS = CollectionSchema(
    name="habitCompletions",
    fields=[
        SchemaField(name="id", type=FieldType.STRING, required=True),
        SchemaField(name="habitId", type=FieldType.STRING, required=True),
        SchemaField(name="completedAt", type=FieldType.TIMESTAMP, required=True),
        SchemaField(name="note", type=FieldType.STRING),
    ],
)

JOURNAL_ENTRIES = CollectionSchema(
    name="journalEntries",
    fields=[
        SchemaField(name="id", type=FieldType.STRING, required=True),
        SchemaField(name="createdAt", type=FieldType.TIMESTAMP, required=True),
        SchemaField(name="type", type=FieldType.STRING, required=True),
        SchemaField(name="content", type=FieldType.STRING),
        SchemaField(name="reflectionType", type=FieldType.STRING),
        SchemaField(name="qaPairs", type=FieldType.ARRAY),
        SchemaField(name="goalIds", type=FieldType.ARRAY),
        SchemaField(name="structuredData", type=FieldType.OBJECT),
    ],
)

PULSE_TYPES = CollectionSchema(
    name="pulseTypes",
    fields=[
        SchemaField(name="id", type=FieldType.STRING, required=True),
        SchemaField(name="name", type=FieldType.STRING, required=True),
        SchemaField(name="iconName", type=FieldType.STRING),
        SchemaField(name="colorHex", type=FieldType.STRING),
        SchemaField(name="isActive", type=FieldType.BOOLEAN),
        SchemaField(name="order", type=FieldType.INTEGER, required=True),
        SchemaField(name="createdAt", type=FieldType.TIMESTAMP, required=True),
        SchemaField(name="updatedAt", type=FieldType.TIMESTAMP),
    ],
)

PULSE_ENTRIES = CollectionSchema(
    name="pulseEntries",
    aliases=["moodEntries"],
    fields=[
        SchemaField(name="id", type=FieldType.STRING, required=True),
        SchemaField(name="timestamp", type=FieldType.TIMESTAMP, required=True),
        SchemaField(
            name="customMetrics", type=FieldType.OBJECT, required=True, since_version=4
        ),
        SchemaField(name="journalEntryId", type=FieldType.STRING),
        SchemaField(name="notes", type=FieldType.STRING),
        SchemaField(name="mood", type=FieldType.STRING, until_version=4),
        SchemaField(name="energyLevel", type=FieldType.NUMBER, until_version=4),
    ],
)

CHECKIN = CollectionSchema(
    name="checkin",
    description="Scheduled check-in state (epoch milliseconds)",
    fields=[
        SchemaField(name="id", type=FieldType.STRING, required=True),
        SchemaField(name="nextCheckinTime", type=FieldType.INTEGER),
        SchemaField(name="lastCompletedAt", type=FieldType.INTEGER),
        SchemaField(name="responses", type=FieldType.OBJECT),
    ],
)

COLLECTION_SCHEMAS: list[CollectionSchema] = [
    SETTINGS,
    GOALS,
    MILESTONES,
    HABITS,
    HABIT_COMPLETIONS,
    JOURNAL_ENTRIES,
    PULSE_TYPES,
    PULSE_ENTRIES,
    CHECKIN,
]
