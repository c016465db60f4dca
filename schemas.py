from __future__ import annotations

import re
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from errors import ValidationError


class UserPreferences(BaseModel):
    goal: Literal["hypertrophy", "strength", "fat_loss", "general", "endurance"] = "general"
    experience: Literal["beginner", "intermediate", "advanced"] = "intermediate"
    equipment: Literal["full_gym", "home_gym", "bodyweight"] = "full_gym"
    injuries: str = "none"
    frequency: int = 3
    workout_days: List[int] = Field(default_factory=list)
    session_length_min: int = Field(default=60, ge=20, le=180)

    @property
    def injury_tags(self) -> list[str]:
        tags = []
        for raw in re.split(r"[,;/]", self.injuries or ""):
            tag = re.sub(r"[\s\-]+", "_", raw.strip().lower())
            if tag:
                tags.append(tag)
        return tags


class RegenerateConstraints(BaseModel):
    temporary_equipment: List[str] = Field(default_factory=list)
    focus_muscles: List[str] = Field(default_factory=list)
    exclude_muscles: List[str] = Field(default_factory=list)
    is_temporary: bool = False
    duration_days: Optional[int] = Field(default=None, ge=1)
    reason: str = ""


class WorkoutIn(BaseModel):
    name: str
    type: str
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    estimated_duration_min: Optional[int] = None
    target_muscles: List[str] = Field(default_factory=list)
    is_active: bool = True


class WorkoutUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    estimated_duration_min: Optional[int] = None
    target_muscles: Optional[List[str]] = None
    is_active: Optional[bool] = None


class WorkoutExerciseIn(BaseModel):
    exercise_id: str
    exercise_name: Optional[str] = None
    target_sets: int = Field(default=3, ge=1)
    target_reps: str = "8-12"
    target_rpe: Optional[float] = Field(default=None, ge=1, le=10)
    rest_seconds: Optional[int] = Field(default=90, ge=0)
    notes: Optional[str] = None


class WorkoutExerciseUpdate(BaseModel):
    exercise_id: Optional[str] = None
    exercise_name: Optional[str] = None
    target_sets: Optional[int] = Field(default=None, ge=1)
    target_reps: Optional[str] = None
    target_rpe: Optional[float] = Field(default=None, ge=1, le=10)
    rest_seconds: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


def parse_preferences(data: dict) -> UserPreferences:
    """Build preferences from untrusted input, raising ``ValidationError``."""
    try:
        return UserPreferences(**data)
    except PydanticValidationError as e:
        raise ValidationError(str(e))


def parse_constraints(data: dict) -> RegenerateConstraints:
    """Build regeneration constraints, coercing strings such as ``"false"``."""
    try:
        return RegenerateConstraints(**data)
    except PydanticValidationError as e:
        raise ValidationError(str(e))
