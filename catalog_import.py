"""Import exercises from a free-exercise-db ``exercises.json`` dump."""

from __future__ import annotations

import json
import logging
import re
from typing import Iterable, List, Optional

from models import ExerciseRecord
from rules import MUSCLE_TO_BODY_PART, canonical_muscle

logger = logging.getLogger(__name__)

# free-exercise-db equipment vocabulary -> catalog vocabulary
EQUIPMENT_MAP = {
    "body only": "body weight",
    "machine": "leverage machine",
    "e-z curl bar": "ez barbell",
    "bands": "band",
    "kettlebells": "kettlebell",
    "exercise ball": "stability ball",
    "foam roll": "roller",
    "other": "other",
}

LEVELS = ("beginner", "intermediate", "expert")

PILOT_EXERCISES = (
    "Barbell Bench Press - Medium Grip",
    "Dumbbell Flyes",
    "Push-Ups - Close Triceps Position",
    "Bent Over Barbell Row",
    "Pullups",
    "Seated Cable Rows",
    "Barbell Squat",
    "Leg Press",
    "Romanian Deadlift",
    "Leg Extensions",
    "Standing Military Press",
    "Side Lateral Raise",
    "Barbell Curl",
    "Reverse Grip Triceps Pushdown",
    "Hammer Curls",
    "Plank",
    "Crunches",
    "Barbell Deadlift",
)


def generate_exercise_id(name: str) -> str:
    """Return a stable slug such as ``barbell-squat`` for ``name``."""
    slug = re.sub(r"[^a-z0-9\s_-]", "", name.lower())
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def normalize_exercise_name(name: str) -> str:
    return " ".join(w[:1].upper() + w[1:].lower() for w in name.split(" "))


def is_valid_entry(entry: dict) -> bool:
    return bool(
        entry.get("name")
        and entry.get("primaryMuscles")
        and entry.get("instructions")
    )


def transform_entry(entry: dict) -> ExerciseRecord:
    primary = str(entry["primaryMuscles"][0]).strip().lower()
    target = canonical_muscle(primary)
    equipment = str(entry.get("equipment") or "body only").strip().lower()
    level = str(entry.get("level") or "intermediate").strip().lower()
    if level not in LEVELS:
        level = "intermediate"
    return ExerciseRecord.create(
        id=generate_exercise_id(entry.get("id") or entry["name"]),
        name=normalize_exercise_name(entry["name"]),
        body_part=MUSCLE_TO_BODY_PART.get(target, "waist"),
        target=target,
        equipment=EQUIPMENT_MAP.get(equipment, equipment),
        secondary_muscles=entry.get("secondaryMuscles") or [],
        difficulty=level,
        mechanic=entry.get("mechanic"),
        instructions=entry.get("instructions") or [],
    )


def transform_entries(
    entries: Iterable[dict], names: Optional[Iterable[str]] = None
) -> List[ExerciseRecord]:
    wanted = {n.lower() for n in names} if names is not None else None
    records: List[ExerciseRecord] = []
    seen: set[str] = set()
    skipped = 0
    for entry in entries:
        if wanted is not None and str(entry.get("name", "")).lower() not in wanted:
            continue
        if not is_valid_entry(entry):
            skipped += 1
            continue
        record = transform_entry(entry)
        if record.id in seen:
            skipped += 1
            continue
        seen.add(record.id)
        records.append(record)
    if skipped:
        logger.info("Skipped %d invalid or duplicate exercises", skipped)
    return records


def load_file(path: str, pilot: bool = False) -> List[ExerciseRecord]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("exercise dump must be a JSON list")
    return transform_entries(data, PILOT_EXERCISES if pilot else None)


def import_file(catalog_repo, path: str, pilot: bool = False, dry_run: bool = False) -> int:
    """Upsert the exercises of ``path`` into ``catalog_repo``."""
    records = load_file(path, pilot)
    if dry_run:
        logger.info("Dry run: %d exercises would be imported", len(records))
        return len(records)
    count = catalog_repo.bulk_upsert(records)
    logger.info("Imported %d exercises from %s", count, path)
    return count
