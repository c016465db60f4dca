from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field, asdict
from typing import Iterable, Optional

from rules import DIFFICULTY_ORDER, EQUIPMENT_ALLOWED, canonical_muscle


def equipment_allowed(equipment: str, category: Optional[str]) -> bool:
    """Return whether an exercise needing ``equipment`` fits ``category``.

    Body weight work is always available, ``home_gym`` adds free weights and
    ``full_gym`` (or no category) accepts anything.
    """
    allowed = EQUIPMENT_ALLOWED.get(category or "full_gym")
    if allowed is None:
        return True
    return equipment.strip().lower() in allowed


def difficulty_allowed(difficulty: str, max_difficulty: Optional[str]) -> bool:
    if max_difficulty is None:
        return True
    return DIFFICULTY_ORDER.get(difficulty, 2) <= DIFFICULTY_ORDER[max_difficulty]


@dataclass(frozen=True)
class ExerciseRecord:
    """Catalog entry. Muscle names are canonical group names."""

    id: str
    name: str
    body_part: str
    target: str
    equipment: str
    secondary_muscles: tuple[str, ...] = ()
    difficulty: str = "intermediate"
    mechanic: Optional[str] = None
    instructions: tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        id: str,
        name: str,
        body_part: str,
        target: str,
        equipment: str,
        secondary_muscles: Iterable[str] = (),
        difficulty: str | None = None,
        mechanic: str | None = None,
        instructions: Iterable[str] = (),
    ) -> "ExerciseRecord":
        return cls(
            id=id,
            name=name,
            body_part=body_part.strip().lower(),
            target=canonical_muscle(target),
            equipment=equipment.strip().lower(),
            secondary_muscles=tuple(
                canonical_muscle(m) for m in secondary_muscles if m and m.strip()
            ),
            difficulty=(difficulty or "intermediate").strip().lower(),
            mechanic=(mechanic.strip().lower() or None) if mechanic else None,
            instructions=tuple(instructions),
        )

    @property
    def is_compound(self) -> bool:
        if self.mechanic is None:
            return self.equipment == "barbell"
        return self.mechanic == "compound"

    @property
    def muscles(self) -> tuple[str, ...]:
        return (self.target,) + self.secondary_muscles

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "body_part": self.body_part,
            "target": self.target,
            "equipment": self.equipment,
            "secondary_muscles": list(self.secondary_muscles),
            "difficulty": self.difficulty,
            "mechanic": self.mechanic,
            "instructions": list(self.instructions),
        }


@dataclass(frozen=True)
class CatalogFilter:
    equipment: Optional[str] = None
    max_difficulty: Optional[str] = None
    body_part: Optional[str] = None
    target: Optional[str] = None
    query: Optional[str] = None

    def matches(self, record: ExerciseRecord) -> bool:
        if not equipment_allowed(record.equipment, self.equipment):
            return False
        if not difficulty_allowed(record.difficulty, self.max_difficulty):
            return False
        if self.body_part and record.body_part != self.body_part.strip().lower():
            return False
        if self.target and record.target != canonical_muscle(self.target):
            return False
        if self.query and self.query.strip().lower() not in record.name.lower():
            return False
        return True


@dataclass(frozen=True)
class CatalogSnapshot:
    """Immutable view of the catalog used for one generation run."""

    exercises: tuple[ExerciseRecord, ...]
    version: str

    @classmethod
    def from_records(cls, records: Iterable[ExerciseRecord]) -> "CatalogSnapshot":
        exercises = tuple(records)
        digest = hashlib.sha1()
        for ex in exercises:
            digest.update(json.dumps(ex.to_dict(), sort_keys=True).encode("utf-8"))
        return cls(exercises, digest.hexdigest())

    def __len__(self) -> int:
        return len(self.exercises)

    def __iter__(self):
        return iter(self.exercises)


@dataclass(frozen=True)
class DaySpec:
    """Resolved split assignment for one training day."""

    day_of_week: int
    name: str
    split: str
    primary_muscles: tuple[str, ...]
    secondary_muscles: tuple[str, ...] = ()
    excluded_muscles: frozenset[str] = frozenset()
    excluded_patterns: tuple[str, ...] = ()
    exercise_count: int = 5

    @property
    def target_muscles(self) -> list[str]:
        return list(self.primary_muscles) + list(self.secondary_muscles)

    @property
    def muscles_to_cover(self) -> list[str]:
        return [m for m in self.target_muscles if m not in self.excluded_muscles]


@dataclass
class PlannedExercise:
    exercise_id: str
    exercise_name: str
    order_index: int
    target_sets: int
    target_reps: str
    target_rpe: Optional[float]
    rest_seconds: int
    notes: Optional[str] = None
    target_muscle: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GeneratedWorkout:
    name: str
    type: str
    day_of_week: int
    estimated_duration_min: int
    target_muscles: list[str]
    exercises: list[PlannedExercise] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type,
            "day_of_week": self.day_of_week,
            "estimated_duration_min": self.estimated_duration_min,
            "target_muscles": list(self.target_muscles),
            "exercises": [ex.to_dict() for ex in self.exercises],
        }
