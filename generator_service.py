from __future__ import annotations

import logging
from typing import Iterable, Optional

from constraint_resolver import expand_muscles, resolve_split, validate_preferences
from db import (
    ExerciseCatalogRepository,
    GenerationLogRepository,
    UserRepository,
    WorkoutRepository,
)
from errors import ValidationError
from models import CatalogSnapshot, GeneratedWorkout
from program_assembler import assemble_day, estimate_duration
from rules import BODYWEIGHT_MARKERS, FULL_GYM_MARKERS, HOME_GYM_MARKERS
from schemas import RegenerateConstraints, UserPreferences, parse_preferences
from settings_schema import SettingsSchema

logger = logging.getLogger(__name__)


def equipment_category(equipment: Iterable[str]) -> str:
    """Map an ad-hoc equipment list to the closest equipment category."""
    items = {e.strip().lower() for e in equipment if e and e.strip()}
    if items & FULL_GYM_MARKERS:
        return "full_gym"
    if items & HOME_GYM_MARKERS:
        return "home_gym"
    if items and items <= BODYWEIGHT_MARKERS:
        return "bodyweight"
    return "home_gym"


class ProgramGeneratorService:
    """Generates weekly programs and persists them for users."""

    def __init__(
        self,
        catalog_repo: ExerciseCatalogRepository,
        workout_repo: WorkoutRepository,
        user_repo: UserRepository,
        log_repo: GenerationLogRepository | None = None,
        settings: SettingsSchema | None = None,
    ) -> None:
        self.catalog = catalog_repo
        self.workouts = workout_repo
        self.users = user_repo
        self.log_repo = log_repo
        self.settings = settings or SettingsSchema()

    def preferences_from(self, data: dict) -> UserPreferences:
        """Build preferences from request data, filling configured defaults."""
        payload = dict(data)
        payload.setdefault(
            "session_length_min", self.settings.default_session_length_min
        )
        return parse_preferences(payload)

    def generate(
        self,
        prefs: UserPreferences,
        snapshot: CatalogSnapshot,
        exclude_muscles: Iterable[str] = (),
        focus_muscles: Iterable[str] = (),
    ) -> list[GeneratedWorkout]:
        """Build the program for ``prefs`` from ``snapshot`` without side effects.

        Identical inputs always produce an identical program.
        """
        specs = resolve_split(
            prefs,
            exclude_muscles,
            self.settings.warmup_minutes,
            self.settings.minutes_per_exercise,
        )
        focus = expand_muscles(focus_muscles)
        last_ids: dict[tuple, list[str]] = {}
        program: list[GeneratedWorkout] = []
        for spec in specs:
            key = (spec.split, spec.primary_muscles)
            exercises = assemble_day(spec, prefs, snapshot, last_ids.get(key, ()))
            last_ids[key] = [ex.exercise_id for ex in exercises]
            for ex in exercises:
                if ex.target_muscle in focus:
                    ex.target_sets += 1
            program.append(
                GeneratedWorkout(
                    name=spec.name,
                    type=spec.split,
                    day_of_week=spec.day_of_week,
                    estimated_duration_min=estimate_duration(
                        exercises,
                        self.settings.set_duration_seconds,
                        self.settings.warmup_minutes,
                    ),
                    target_muscles=spec.muscles_to_cover,
                    exercises=exercises,
                )
            )
        return program

    def _stored_preferences(self, user_id: int) -> UserPreferences:
        prefs = self.users.fetch_preferences(user_id)
        if prefs is None:
            raise ValidationError("user has not completed onboarding")
        return prefs

    def _persist(
        self,
        user_id: int,
        prefs: UserPreferences,
        exclude_muscles: Iterable[str] = (),
        focus_muscles: Iterable[str] = (),
        archive: bool = False,
        restore_after_days: Optional[int] = None,
    ) -> list[int]:
        validate_preferences(prefs)
        snapshot = self.catalog.snapshot()
        logger.info(
            "Generating program for user %s from catalog %s (%d exercises)",
            user_id,
            snapshot.version[:8],
            len(snapshot),
        )
        try:
            program = self.generate(prefs, snapshot, exclude_muscles, focus_muscles)
            ids = self.workouts.replace_program(
                user_id, program, archive=archive, restore_after_days=restore_after_days
            )
        except Exception as e:
            logger.exception("Program generation failed for user %s", user_id)
            if self.log_repo is not None:
                self.log_repo.log_error(user_id, str(e), snapshot.version)
            raise
        if self.log_repo is not None:
            self.log_repo.log_success(
                user_id, snapshot.version, f"{len(ids)} workouts created"
            )
        logger.info("Created %d workouts for user %s", len(ids), user_id)
        return ids

    def generate_for_user(
        self,
        user_id: int,
        prefs: UserPreferences | None = None,
        store_preferences: bool = False,
    ) -> list[dict]:
        """Replace the user's program and return it with its exercises.

        ``prefs`` defaults to the stored preferences. With
        ``store_preferences`` the given preferences are saved (and onboarding
        marked complete) once the new program was written.
        """
        self.users.fetch_detail(user_id)
        if prefs is None:
            prefs = self._stored_preferences(user_id)
        self._persist(user_id, prefs)
        if store_preferences:
            self.users.save_preferences(user_id, prefs)
        return self.workouts.fetch_program(user_id)

    def regenerate_with_constraints(
        self, user_id: int, constraints: RegenerateConstraints
    ) -> dict:
        """Rebuild the program with temporary constraints layered on top.

        Stored preferences are never modified. Temporary programs archive the
        current one so it can be restored later.
        """
        self.users.fetch_detail(user_id)
        prefs = self._stored_preferences(user_id)
        exclude = expand_muscles(constraints.exclude_muscles)
        focus = expand_muscles(constraints.focus_muscles)
        changes: list[str] = []
        if constraints.temporary_equipment:
            prefs = prefs.model_copy(
                update={"equipment": equipment_category(constraints.temporary_equipment)}
            )
            changes.append(f"Equipment: {', '.join(constraints.temporary_equipment)}")
        if constraints.focus_muscles:
            changes.append(f"Focus: {', '.join(constraints.focus_muscles)} (+1 set)")
        if constraints.exclude_muscles:
            changes.append(f"Avoiding: {', '.join(constraints.exclude_muscles)}")
        if constraints.is_temporary:
            changes.append(
                f"Temporary ({constraints.duration_days} days)"
                if constraints.duration_days
                else "Temporary (until restored)"
            )
        ids = self._persist(
            user_id,
            prefs,
            sorted(exclude),
            sorted(focus),
            archive=constraints.is_temporary,
            restore_after_days=constraints.duration_days,
        )
        message = f"Created {len(ids)} new workouts."
        if constraints.reason:
            message = f"{message} {constraints.reason}"
        return {
            "success": True,
            "message": message,
            "workouts_created": len(ids),
            "changes": changes,
        }

    def restore_program(self, user_id: int) -> list[dict]:
        """Reactivate the most recently archived program."""
        ids = self.workouts.restore_archived(user_id)
        logger.info("Restored %d archived workouts for user %s", len(ids), user_id)
        return self.workouts.fetch_program(user_id)
