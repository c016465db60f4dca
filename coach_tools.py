"""Tool boundary used by the AI coach to modify a user's program.

Tools receive human readable names (``"bench press"``, ``"monday"``) and
resolve them to ids here; the generator and repositories only see ids.
Every call returns a ``{"success", "message", "data"}`` dict.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from db import ExerciseCatalogRepository, WorkoutExerciseRepository, WorkoutRepository
from errors import GeneratorError
from generator_service import ProgramGeneratorService
from models import CatalogFilter
from schemas import parse_constraints
from tools import DayTools

logger = logging.getLogger(__name__)


def tool_result(success: bool, message: str, data: Optional[dict] = None) -> dict:
    result = {"success": success, "message": message}
    if data is not None:
        result["data"] = data
    return result


def _arg(args: dict, name: str, default=None):
    """Return ``args[name]`` accepting the camelCase spelling as well."""
    if name in args:
        return args[name]
    head, *rest = name.split("_")
    camel = head + "".join(p.title() for p in rest)
    return args.get(camel, default)


class CoachToolExecutor:
    """Executes coach tool calls against a user's program."""

    def __init__(
        self,
        generator: ProgramGeneratorService,
        catalog_repo: ExerciseCatalogRepository,
        workout_repo: WorkoutRepository,
        workout_exercise_repo: WorkoutExerciseRepository,
    ) -> None:
        self.generator = generator
        self.catalog = catalog_repo
        self.workouts = workout_repo
        self.workout_exercises = workout_exercise_repo
        self._tools: dict[str, Callable[[dict, int], dict]] = {
            "swap_exercise": self.swap_exercise,
            "adjust_volume": self.adjust_volume,
            "explain_exercise": self.explain_exercise,
            "get_alternatives": self.get_alternatives,
            "regenerate_program": self.regenerate_program,
            "restore_program": self.restore_program,
        }

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def execute(self, tool_name: str, args: dict, user_id: int) -> dict:
        handler = self._tools.get(tool_name)
        if handler is None:
            return tool_result(False, f"Unknown tool: {tool_name}")
        logger.info("Executing coach tool %s for user %s", tool_name, user_id)
        try:
            return handler(args or {}, user_id)
        except (GeneratorError, ValueError) as e:
            logger.warning("Coach tool %s failed: %s", tool_name, e)
            return tool_result(False, f"Failed to run {tool_name}: {e}")

    def _find_workout_exercise(
        self, user_id: int, exercise_name: str, day: int
    ) -> Optional[dict]:
        workout = next(
            (w for w in self.workouts.fetch_for_user(user_id) if w["day_of_week"] == day),
            None,
        )
        if workout is None:
            return None
        query = exercise_name.strip().lower()
        for ex in self.workout_exercises.fetch_for_workout(workout["id"]):
            name = ex["exercise_name"].lower()
            if name == query or query in name or name in query:
                return ex
        return None

    def _day(self, args: dict) -> tuple[Optional[int], str]:
        raw = _arg(args, "day_of_week", "")
        return DayTools.parse(raw), str(raw)

    def swap_exercise(self, args: dict, user_id: int) -> dict:
        current = _arg(args, "current_exercise_name", "")
        replacement = _arg(args, "new_exercise_name", "")
        reason = _arg(args, "reason")
        day, raw_day = self._day(args)
        if day is None:
            return tool_result(
                False,
                f"Invalid day: {raw_day}. Use day names like Monday, Tuesday, etc.",
            )
        entry = self._find_workout_exercise(user_id, current, day)
        if entry is None:
            return tool_result(
                False,
                f'Could not find "{current}" in the workout for {raw_day}. '
                "Check the exercise name matches exactly.",
            )
        new_exercise = self.catalog.find_by_name(replacement)
        if new_exercise is None:
            return tool_result(
                False,
                f'Could not find "{replacement}" in the exercise database. '
                "Try a different exercise name.",
            )
        self.workout_exercises.update(
            entry["id"], exercise_id=new_exercise.id, exercise_name=new_exercise.name
        )
        message = f'Swapped "{current}" for "{new_exercise.name}" on {raw_day}'
        if reason:
            message += f". Reason: {reason}"
        return tool_result(
            True,
            message,
            {
                "old_exercise": current,
                "new_exercise": new_exercise.name,
                "new_exercise_id": new_exercise.id,
                "day_of_week": day,
            },
        )

    def adjust_volume(self, args: dict, user_id: int) -> dict:
        name = _arg(args, "exercise_name", "")
        reason = _arg(args, "reason")
        day, raw_day = self._day(args)
        if day is None:
            return tool_result(False, f"Invalid day: {raw_day}")
        entry = self._find_workout_exercise(user_id, name, day)
        if entry is None:
            return tool_result(
                False, f'Could not find "{name}" in the workout for {raw_day}'
            )
        updates = {}
        sets = _arg(args, "target_sets")
        reps = _arg(args, "target_reps")
        rest = _arg(args, "rest_seconds")
        if sets is not None:
            if int(sets) < 1:
                return tool_result(False, "target_sets must be at least 1")
            updates["target_sets"] = int(sets)
        if reps is not None:
            updates["target_reps"] = str(reps)
        if rest is not None:
            if int(rest) < 0:
                return tool_result(False, "rest_seconds must not be negative")
            updates["rest_seconds"] = int(rest)
        if not updates:
            return tool_result(
                False,
                "No volume changes specified. Provide target_sets, target_reps, or rest_seconds.",
            )
        self.workout_exercises.update(entry["id"], **updates)
        changes = []
        if "target_sets" in updates:
            changes.append(f"{updates['target_sets']} sets")
        if "target_reps" in updates:
            changes.append(f"{updates['target_reps']} reps")
        if "rest_seconds" in updates:
            changes.append(f"{updates['rest_seconds']}s rest")
        message = f"Updated {name} on {raw_day}: {', '.join(changes)}"
        if reason:
            message += f". {reason}"
        return tool_result(True, message, updates)

    def explain_exercise(self, args: dict, user_id: int) -> dict:
        name = _arg(args, "exercise_name", "")
        exercise = self.catalog.find_by_name(name)
        if exercise is None:
            return self._not_found(name)
        return tool_result(True, "Exercise details retrieved", exercise.to_dict())

    def _not_found(self, name: str) -> dict:
        message = f'Could not find exercise "{name}" in the database'
        suggestions = self.catalog.search(name, limit=3)
        if suggestions:
            message += f". Did you mean: {', '.join(suggestions)}?"
        return tool_result(False, message)

    def get_alternatives(self, args: dict, user_id: int) -> dict:
        name = _arg(args, "exercise_name", "")
        limit = int(_arg(args, "limit", 5) or 5)
        exercise = self.catalog.find_by_name(name)
        if exercise is None:
            return self._not_found(name)
        prefs = self.generator.users.fetch_preferences(user_id)
        catalog_filter = CatalogFilter(equipment=prefs.equipment) if prefs else None
        alternatives = [
            {"id": alt.id, "name": alt.name, "equipment": alt.equipment, "body_part": alt.body_part}
            for alt in self.catalog.alternatives(exercise.id, limit, catalog_filter)
        ]
        return tool_result(
            True,
            f"Found {len(alternatives)} alternatives for {exercise.name} "
            f"(targets: {exercise.target})",
            {
                "original_exercise": exercise.name,
                "target_muscle": exercise.target,
                "alternatives": alternatives,
            },
        )

    def regenerate_program(self, args: dict, user_id: int) -> dict:
        constraints = parse_constraints(
            {
                "temporary_equipment": _arg(args, "temporary_equipment") or [],
                "focus_muscles": _arg(args, "focus_muscles") or [],
                "exclude_muscles": _arg(args, "exclude_muscles") or [],
                "is_temporary": _arg(args, "is_temporary") or False,
                "duration_days": _arg(args, "duration_days"),
                "reason": _arg(args, "reason") or "",
            }
        )
        result = self.generator.regenerate_with_constraints(user_id, constraints)
        return tool_result(
            True,
            result["message"],
            {"workouts_created": result["workouts_created"], "changes": result["changes"]},
        )

    def restore_program(self, args: dict, user_id: int) -> dict:
        program = self.generator.restore_program(user_id)
        return tool_result(
            True,
            f"Restored {len(program)} workouts from the archived program",
            {"workouts": [w["name"] for w in program]},
        )
