import datetime
from typing import Iterable, Optional

from rules import DAY_NAMES


class MathTools:
    """Provides small numeric helpers for program calculations."""

    SET_DURATION_SECONDS: int = 45
    WARMUP_MINUTES: int = 5

    @staticmethod
    def clamp(value: float, min_value: float, max_value: float) -> float:
        """Clamp ``value`` to the inclusive range [min_value, max_value]."""
        if min_value > max_value:
            raise ValueError("min_value must not exceed max_value")
        return max(min_value, min(value, max_value))

    @classmethod
    def session_minutes(
        cls,
        sets_and_rest: Iterable[tuple[int, int]],
        set_duration: int | None = None,
        warmup_minutes: int | None = None,
    ) -> int:
        """Estimate session length from ``(sets, rest_seconds)`` pairs.

        Every set costs its working time plus the prescribed rest; a fixed
        warm-up is added once.
        """
        per_set = cls.SET_DURATION_SECONDS if set_duration is None else set_duration
        warmup = cls.WARMUP_MINUTES if warmup_minutes is None else warmup_minutes
        total = 0
        for sets, rest in sets_and_rest:
            if sets < 0 or rest < 0:
                raise ValueError("sets and rest must be non-negative")
            total += sets * per_set + sets * rest
        return int(round((total + warmup * 60) / 60))

    @staticmethod
    def max_exercises(session_length_min: int, warmup_minutes: int, per_exercise: int) -> int:
        """Return how many exercises fit in a session, never fewer than 3."""
        if per_exercise <= 0:
            raise ValueError("per_exercise must be positive")
        return max(3, (session_length_min - warmup_minutes) // per_exercise)


class DayTools:
    """Convert between weekday numbers (0 = Sunday) and names."""

    DAY_NAME_TO_NUMBER = {
        "sunday": 0, "sun": 0,
        "monday": 1, "mon": 1,
        "tuesday": 2, "tue": 2, "tues": 2,
        "wednesday": 3, "wed": 3,
        "thursday": 4, "thu": 4, "thurs": 4,
        "friday": 5, "fri": 5,
        "saturday": 6, "sat": 6,
    }

    @staticmethod
    def today(date: Optional[datetime.date] = None) -> int:
        date = date or datetime.date.today()
        return (date.weekday() + 1) % 7

    @classmethod
    def parse(cls, day, today: Optional[datetime.date] = None) -> Optional[int]:
        """Return the weekday number for ``day`` or ``None`` if unknown."""
        if isinstance(day, bool):
            return None
        if isinstance(day, int):
            return day if 0 <= day <= 6 else None
        normalized = str(day).strip().lower()
        if normalized == "today":
            return cls.today(today)
        if normalized.isdigit():
            return cls.parse(int(normalized))
        return cls.DAY_NAME_TO_NUMBER.get(normalized)

    @staticmethod
    def name(day: int) -> str:
        return DAY_NAMES[day]

    @staticmethod
    def adjacent(day_a: int, day_b: int) -> bool:
        """True when the weekdays follow each other, Saturday wrapping to Sunday."""
        return (day_b - day_a) % 7 in (1, 6)
