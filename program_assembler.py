"""Select and prescribe the exercises for a single training day."""

from __future__ import annotations

from typing import Iterable, Sequence

from errors import InsufficientExercisesError
from models import (
    DaySpec,
    ExerciseRecord,
    PlannedExercise,
    difficulty_allowed,
    equipment_allowed,
)
from rules import DIFFICULTY_BY_EXPERIENCE, EXPERIENCE_MODIFIERS, PRESCRIPTIONS
from schemas import UserPreferences
from tools import MathTools


def is_equipment_allowed(equipment: str, category: str) -> bool:
    return equipment_allowed(equipment, category)


def is_difficulty_allowed(difficulty: str, experience: str) -> bool:
    return difficulty_allowed(difficulty, DIFFICULTY_BY_EXPERIENCE[experience])


def is_injury_excluded(
    exercise: ExerciseRecord,
    excluded_muscles: Iterable[str],
    excluded_patterns: Iterable[str] = (),
) -> bool:
    excluded = set(excluded_muscles)
    if any(m in excluded for m in exercise.muscles):
        return True
    name = exercise.name.lower()
    return any(p in name for p in excluded_patterns)


def eligible_exercises(
    spec: DaySpec, prefs: UserPreferences, catalog: Iterable[ExerciseRecord]
) -> list[ExerciseRecord]:
    return [
        ex
        for ex in catalog
        if is_equipment_allowed(ex.equipment, prefs.equipment)
        and is_difficulty_allowed(ex.difficulty, prefs.experience)
        and not is_injury_excluded(ex, spec.excluded_muscles, spec.excluded_patterns)
    ]


def _candidates(
    spec: DaySpec,
    eligible: Sequence[ExerciseRecord],
    avoid_ids: set[str],
) -> list[ExerciseRecord]:
    muscles = set(spec.muscles_to_cover)
    indexed = [(pos, ex) for pos, ex in enumerate(eligible) if ex.target in muscles]
    # compound lifts come first in a session; catalog order breaks ties
    indexed.sort(key=lambda item: (not item[1].is_compound, item[1].id in avoid_ids, item[0]))
    return [ex for _pos, ex in indexed]


def prescribe(
    exercise: ExerciseRecord, order_index: int, prefs: UserPreferences
) -> PlannedExercise:
    track = PRESCRIPTIONS.get(prefs.goal, PRESCRIPTIONS["general"])
    scheme = track["compound"] if exercise.is_compound else track["isolation"]
    _, set_modifier = EXPERIENCE_MODIFIERS[prefs.experience]
    low, high = track["set_range"]
    sets = int(MathTools.clamp(scheme["sets"] + set_modifier, low, high))
    return PlannedExercise(
        exercise_id=exercise.id,
        exercise_name=exercise.name,
        order_index=order_index,
        target_sets=sets,
        target_reps=scheme["reps"],
        target_rpe=scheme["rpe"],
        rest_seconds=scheme["rest"],
        notes=track["notes"] if exercise.is_compound else None,
        target_muscle=exercise.target,
    )


def assemble_day(
    spec: DaySpec,
    prefs: UserPreferences,
    catalog: Iterable[ExerciseRecord],
    avoid_ids: Iterable[str] = (),
) -> list[PlannedExercise]:
    """Pick ``spec.exercise_count`` exercises covering every muscle of the day.

    ``avoid_ids`` are pushed behind other candidates of the same kind so that
    repeated splits (e.g. ``UPPER A`` and ``UPPER B``) vary where the catalog
    allows it.
    """
    to_cover = spec.muscles_to_cover
    if not to_cover:
        raise InsufficientExercisesError(
            spec.primary_muscles[0],
            spec.split,
            f"every muscle of the {spec.split} day is excluded",
        )
    eligible = eligible_exercises(spec, prefs, catalog)
    candidates = _candidates(spec, eligible, set(avoid_ids))
    positions = {ex.id: pos for pos, ex in enumerate(eligible)}

    selected: list[ExerciseRecord] = []
    used: set[str] = set()

    def take(muscle: str | None) -> bool:
        for ex in candidates:
            if ex.id in used:
                continue
            if muscle is None or ex.target == muscle:
                selected.append(ex)
                used.add(ex.id)
                return True
        return False

    for muscle in to_cover:
        if not take(muscle):
            raise InsufficientExercisesError(muscle, spec.split)

    primary = [m for m in spec.primary_muscles if m not in spec.excluded_muscles]
    exhausted: list[str] = []
    while len(selected) < spec.exercise_count:
        progressed = False
        for muscle in primary:
            if len(selected) >= spec.exercise_count:
                break
            if muscle in exhausted:
                continue
            if take(muscle):
                progressed = True
            else:
                exhausted.append(muscle)
        if not progressed:
            break
    while len(selected) < spec.exercise_count:
        if not take(None):
            missing = exhausted[0] if exhausted else to_cover[0]
            raise InsufficientExercisesError(
                missing,
                spec.split,
                f"only {len(selected)} of {spec.exercise_count} exercises available "
                f"for {spec.split} day (ran out of {missing} exercises)",
            )

    selected.sort(key=lambda ex: (not ex.is_compound, positions[ex.id]))
    return [prescribe(ex, idx, prefs) for idx, ex in enumerate(selected)]


def estimate_duration(
    exercises: Iterable[PlannedExercise],
    set_duration: int | None = None,
    warmup_minutes: int | None = None,
) -> int:
    return MathTools.session_minutes(
        ((ex.target_sets, ex.rest_seconds or 0) for ex in exercises),
        set_duration,
        warmup_minutes,
    )
