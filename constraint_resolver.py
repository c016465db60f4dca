"""Turn user preferences into one ``DaySpec`` per training day."""

from __future__ import annotations

import logging
from typing import Iterable

from errors import ValidationError
from models import DaySpec
from rules import (
    BEGINNER_SPLIT_BY_FREQUENCY,
    DEFAULT_WORKOUT_DAYS,
    EXPERIENCE_MODIFIERS,
    INJURY_ALIASES,
    INJURY_EXCLUSIONS,
    MAX_FREQUENCY,
    MIN_FREQUENCY,
    MUSCLE_REGIONS,
    MUSCLE_TO_BODY_PART,
    NO_INJURY_TAGS,
    SPLIT_BY_FREQUENCY,
    SPLIT_TEMPLATES,
    SUBSTITUTE_TEMPLATES,
    canonical_muscle,
)
from schemas import UserPreferences
from tools import DayTools, MathTools

logger = logging.getLogger(__name__)


def validate_preferences(prefs: UserPreferences) -> list[int]:
    """Check the frequency/day invariants and return the sorted workout days."""
    frequency = prefs.frequency
    if isinstance(frequency, bool) or not isinstance(frequency, int):
        raise ValidationError("frequency must be an integer")
    if not MIN_FREQUENCY <= frequency <= MAX_FREQUENCY:
        raise ValidationError(
            f"frequency must be between {MIN_FREQUENCY} and {MAX_FREQUENCY}, got {frequency}"
        )
    days = list(prefs.workout_days or [])
    if not days:
        return list(DEFAULT_WORKOUT_DAYS[frequency])
    invalid = [d for d in days if isinstance(d, bool) or not isinstance(d, int) or not 0 <= d <= 6]
    if invalid:
        raise ValidationError(f"workout days must be weekdays 0-6, got {invalid}")
    if len(set(days)) != len(days):
        raise ValidationError("workout days must not repeat")
    if len(days) != frequency:
        raise ValidationError(
            f"{len(days)} workout days selected for a frequency of {frequency}"
        )
    return sorted(days)


def expand_muscles(names: Iterable[str]) -> set[str]:
    """Canonicalize muscle names, expanding regions such as ``legs``.

    Unknown names raise ``ValidationError``.
    """
    muscles: set[str] = set()
    unknown = []
    for name in names:
        if not name or not name.strip():
            continue
        muscle = canonical_muscle(name)
        if muscle in MUSCLE_REGIONS:
            muscles.update(MUSCLE_REGIONS[muscle])
        elif muscle in MUSCLE_TO_BODY_PART:
            muscles.add(muscle)
        else:
            unknown.append(name)
    if unknown:
        raise ValidationError(f"unknown muscle or body region: {', '.join(unknown)}")
    return muscles


def injury_exclusions(
    prefs: UserPreferences, extra_muscles: Iterable[str] = ()
) -> tuple[frozenset[str], tuple[str, ...]]:
    """Return the excluded muscles and movement patterns for ``prefs``."""
    muscles: set[str] = set()
    patterns: list[str] = []
    for tag in prefs.injury_tags:
        if tag in NO_INJURY_TAGS:
            continue
        region = INJURY_ALIASES.get(tag, tag)
        rule = INJURY_EXCLUSIONS.get(region)
        if rule is not None:
            muscles.update(rule["muscles"])
            for pattern in rule["patterns"]:
                if pattern not in patterns:
                    patterns.append(pattern)
            continue
        muscle = canonical_muscle(tag.replace("_", " "))
        if muscle in MUSCLE_TO_BODY_PART:
            muscles.add(muscle)
        else:
            logger.warning("Ignoring unknown injury tag %r", tag)
    muscles.update(expand_muscles(extra_muscles))
    return frozenset(muscles), tuple(patterns)


def _templates_for(prefs: UserPreferences) -> list[tuple[str, str]]:
    if prefs.experience == "beginner" and prefs.frequency in BEGINNER_SPLIT_BY_FREQUENCY:
        return list(BEGINNER_SPLIT_BY_FREQUENCY[prefs.frequency])
    return list(SPLIT_BY_FREQUENCY[prefs.frequency])


def _emphasis(template_key: str) -> frozenset[str]:
    return frozenset(SPLIT_TEMPLATES[template_key][1])


def _has_adjacent_repeat(days: list[int], templates: list[tuple[str, str]]) -> bool:
    n = len(days)
    for i in range(n):
        j = (i + 1) % n
        if i == j:
            continue
        if DayTools.adjacent(days[i], days[j]) and _emphasis(templates[i][1]) == _emphasis(templates[j][1]):
            return True
    return False


def _order_templates(days: list[int], templates: list[tuple[str, str]]) -> list[tuple[str, str]]:
    for shift in range(len(templates)):
        rotated = templates[shift:] + templates[:shift]
        if not _has_adjacent_repeat(days, rotated):
            return rotated
    logger.warning(
        "Could not avoid repeating muscle emphasis on adjacent days %s", days
    )
    return templates


def _coverable(template_key: str, excluded: frozenset[str]) -> bool:
    return not any(m in excluded for m in SPLIT_TEMPLATES[template_key][1])


def _substitute_templates(
    days: list[int], templates: list[tuple[str, str]], excluded: frozenset[str]
) -> list[tuple[str, str]]:
    """Swap days whose primary muscles are all excluded for a coverable template.

    A neighbouring day's emphasis is skipped where another option exists.
    """
    result = list(templates)
    for i, (name, key) in enumerate(result):
        if any(m not in excluded for m in SPLIT_TEMPLATES[key][1]):
            continue
        options = [k for k in SUBSTITUTE_TEMPLATES if _coverable(k, excluded)]
        if not options:
            continue
        neighbours = {
            _emphasis(result[j][1])
            for j in (i - 1, (i + 1) % len(result))
            if j != i and DayTools.adjacent(days[i], days[j])
        }
        replacement = next(
            (k for k in options if _emphasis(k) not in neighbours), options[0]
        )
        logger.info("Replacing %s on day %s with %s", name, days[i], replacement)
        result[i] = (replacement, replacement)
    return result


def exercise_count(
    base_count: int,
    prefs: UserPreferences,
    cover: int,
    warmup_minutes: int = MathTools.WARMUP_MINUTES,
    minutes_per_exercise: int = 8,
) -> int:
    modifier, _ = EXPERIENCE_MODIFIERS[prefs.experience]
    cap = MathTools.max_exercises(prefs.session_length_min, warmup_minutes, minutes_per_exercise)
    return max(min(base_count + modifier, cap), cover)


def resolve_split(
    prefs: UserPreferences,
    exclude_muscles: Iterable[str] = (),
    warmup_minutes: int = MathTools.WARMUP_MINUTES,
    minutes_per_exercise: int = 8,
) -> list[DaySpec]:
    days = validate_preferences(prefs)
    avoided = frozenset(expand_muscles(exclude_muscles))
    excluded, patterns = injury_exclusions(prefs, avoided)
    templates = _order_templates(days, _templates_for(prefs))
    if avoided:
        templates = _substitute_templates(days, templates, excluded)

    specs = []
    for day, (name, key) in zip(days, templates):
        split, primary, secondary, base_count = SPLIT_TEMPLATES[key]
        cover = len([m for m in primary + secondary if m not in excluded])
        specs.append(
            DaySpec(
                day_of_week=day,
                name=name,
                split=split,
                primary_muscles=primary,
                secondary_muscles=secondary,
                excluded_muscles=excluded,
                excluded_patterns=patterns,
                exercise_count=exercise_count(
                    base_count, prefs, cover, warmup_minutes, minutes_per_exercise
                ),
            )
        )
    logger.debug("Resolved split %s", [(s.day_of_week, s.name) for s in specs])
    return specs
