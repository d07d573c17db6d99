"""Declared migration steps and legacy document normalisation.

Every transform is a pure function: it returns new records and never
mutates its input. Steps only need to be declared where a collection's
record shape actually changed; the registry fills the remaining gaps
with identity steps.
"""

import copy
import logging
from typing import Any

from mentor_backup.models.schema import MigrationStep, Record
from mentor_backup.utils.validators import is_valid_order

logger = logging.getLogger(__name__)

STRUCTURED_JOURNAL_TYPE = "structuredJournal"

# MoodRating enum names; the index is the 1..5 rating, notSet means no rating
MOOD_RATINGS = ["notSet", "veryBad", "bad", "neutral", "good", "excellent"]

LEGACY_DROPPED_KEYS = ("statistics", "buildInfo")
LEGACY_SETTINGS_DROPPED_KEYS = ("debug_logs",)
SETTINGS_RECORD_ID = "settings"
CHECKIN_RECORD_ID = "checkin"


def _humanize_key(key: str) -> str:
    """Turn `sleepQuality` / `sleep_quality` into `Sleep quality`."""
    words: list[str] = []
    current = ""
    for char in key.replace("_", " "):
        if char == " ":
            if current:
                words.append(current)
            current = ""
        elif char.isupper() and current:
            words.append(current)
            current = char
        else:
            current += char
    if current:
        words.append(current)
    text = " ".join(word.lower() for word in words)
    return text[:1].upper() + text[1:]


def backfill_journal_content(record: Record) -> Record:
    """v1 -> v2: give structured journal entries readable content.

    Older builds stored guided journals only as `structuredData`. Entries
    with empty content get one `Key: value` line per non-empty answer.
    """
    result = copy.deepcopy(record)
    if result.get("type") != STRUCTURED_JOURNAL_TYPE:
        return result
    if result.get("content"):
        return result

    data = result.get("structuredData")
    if not isinstance(data, dict):
        return result

    lines = []
    for key, value in data.items():
        if value is None or value == "" or value == []:
            continue
        if isinstance(value, list):
            value = ", ".join(str(item) for item in value)
        lines.append(f"{_humanize_key(str(key))}: {value}")
    result["content"] = "\n".join(lines)
    return result


def assign_default_order(records: list[Any]) -> list[Any]:
    """v2 -> v3: supply the `order` display hint for goals and habits.

    Records without a usable `order` are numbered 0, 1, 2... within their
    `status` group, keeping their sequence in the collection. Records that
    already carry a non-negative integer keep it.
    """
    result = copy.deepcopy(records)
    next_order: dict[str | None, int] = {}
    for record in result:
        if not isinstance(record, dict) or is_valid_order(record.get("order")):
            continue
        status = record.get("status")
        group = status if isinstance(status, str) else None
        if record.get("order") is not None:
            logger.debug(
                f"Replacing unusable order {record['order']!r} of record {record.get('id')!r}"
            )
        record["order"] = next_order.get(group, 0)
        next_order[group] = record["order"] + 1
    return result


def _mood_to_rating(mood: Any) -> int | None:
    """Map a legacy `MoodRating.<name>` value (or bare index) to 1..5."""
    if isinstance(mood, bool):
        return None
    if isinstance(mood, int):
        return mood if 1 <= mood <= 5 else None
    if not isinstance(mood, str):
        return None
    name = mood.rsplit(".", 1)[-1]
    if name in MOOD_RATINGS:
        return MOOD_RATINGS.index(name) or None
    return None


def fold_legacy_pulse_metrics(record: Record) -> Record:
    """v3 -> v4: fold legacy mood/energy into `customMetrics`.

    Existing `customMetrics` values win over the legacy fields. A
    `customMetrics` value that is not an object is left as is, so the
    record fails validation at the current version instead of losing it.
    """
    result = copy.deepcopy(record)
    metrics = result.get("customMetrics")
    if metrics is None:
        metrics = {}
    elif not isinstance(metrics, dict):
        return result

    mood = result.pop("mood", None)
    energy = result.pop("energyLevel", None)

    rating = _mood_to_rating(mood)
    if rating is not None:
        metrics.setdefault("Mood", rating)
    if isinstance(energy, int | float) and not isinstance(energy, bool) and energy > 0:
        metrics.setdefault("Energy", int(energy))

    result["customMetrics"] = metrics
    return result


def declared_steps() -> list[MigrationStep]:
    """Migration steps for record shape changes across releases."""
    return [
        MigrationStep(
            collection="journalEntries",
            from_version=1,
            to_version=2,
            name="journal_content_backfill",
            description="Generate content for structured journal entries",
            transform=backfill_journal_content,
        ),
        MigrationStep(
            collection="goals",
            from_version=2,
            to_version=3,
            name="goal_order",
            description="Add order display hint, numbered per status",
            batch_transform=assign_default_order,
        ),
        MigrationStep(
            collection="habits",
            from_version=2,
            to_version=3,
            name="habit_order",
            description="Add order display hint, numbered per status",
            batch_transform=assign_default_order,
        ),
        MigrationStep(
            collection="pulseEntries",
            from_version=3,
            to_version=4,
            name="pulse_custom_metrics",
            description="Fold mood and energy level into customMetrics",
            transform=fold_legacy_pulse_metrics,
        ),
    ]


def is_legacy_document(data: Any) -> bool:
    """Check for the pre-versioning `{version, data}` document layout."""
    return (
        isinstance(data, dict)
        and "schemaVersion" not in data
        and "version" in data
        and isinstance(data.get("data"), dict)
    )


def normalize_legacy_document(data: dict[str, Any]) -> dict[str, Any]:
    """Convert a pre-versioning document into a schema v1 document.

    Args:
        data: Parsed legacy document (`version`, `exportedAt`, `data`)

    Returns:
        New dict in the versioned wire layout
    """
    legacy = copy.deepcopy(data["data"])
    for key in LEGACY_DROPPED_KEYS:
        legacy.pop(key, None)

    collections: dict[str, Any] = {}
    for name, value in legacy.items():
        if name == "settings" and isinstance(value, dict):
            settings = {
                k: v for k, v in value.items() if k not in LEGACY_SETTINGS_DROPPED_KEYS
            }
            settings.setdefault("id", SETTINGS_RECORD_ID)
            collections[name] = [settings]
        elif name == "checkin" and isinstance(value, dict):
            checkin = dict(value)
            checkin.setdefault("id", CHECKIN_RECORD_ID)
            collections[name] = [checkin]
        elif value is None:
            collections[name] = []
        else:
            collections[name] = value

    logger.info(
        f"Normalised legacy backup (version {data.get('version')}) "
        f"with {len(collections)} collections"
    )
    return {
        "schemaVersion": 1,
        "exportedAt": data.get("exportedAt"),
        "collections": collections,
    }
