"""Lookup tables driving program generation.

Everything that decides *what* a program looks like lives here as data so
that the resolver and assembler only contain selection logic.
"""

# Weekdays use 0 = Sunday ... 6 = Saturday.
DAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]

MIN_FREQUENCY = 3
MAX_FREQUENCY = 6


# name -> (split, primary muscles, secondary muscles, base exercise count)
SPLIT_TEMPLATES: dict[str, tuple[str, tuple[str, ...], tuple[str, ...], int]] = {
    "PUSH": ("push", ("chest", "shoulders", "triceps"), (), 5),
    "PULL": ("pull", ("back", "biceps"), ("core",), 5),
    "LEGS": ("legs", ("quads", "hamstrings", "glutes"), ("calves",), 5),
    "UPPER": ("upper", ("chest", "back", "shoulders"), ("biceps", "triceps"), 6),
    "LOWER": ("lower", ("quads", "hamstrings", "glutes"), ("calves", "core"), 5),
    "FULL BODY A": ("full_body", ("chest", "quads", "back"), ("core",), 5),
    "FULL BODY B": ("full_body", ("back", "hamstrings", "shoulders"), ("core",), 5),
    "FULL BODY C": ("full_body", ("chest", "glutes", "back"), ("triceps",), 5),
}

# Display name -> template key. Suffixed names reuse a template.
SPLIT_BY_FREQUENCY: dict[int, list[tuple[str, str]]] = {
    3: [("PUSH", "PUSH"), ("PULL", "PULL"), ("LEGS", "LEGS")],
    4: [
        ("UPPER A", "UPPER"),
        ("LOWER A", "LOWER"),
        ("UPPER B", "UPPER"),
        ("LOWER B", "LOWER"),
    ],
    5: [
        ("PUSH", "PUSH"),
        ("PULL", "PULL"),
        ("LEGS", "LEGS"),
        ("UPPER", "UPPER"),
        ("LOWER", "LOWER"),
    ],
    6: [
        ("PUSH A", "PUSH"),
        ("PULL A", "PULL"),
        ("LEGS A", "LEGS"),
        ("PUSH B", "PUSH"),
        ("PULL B", "PULL"),
        ("LEGS B", "LEGS"),
    ],
}

BEGINNER_SPLIT_BY_FREQUENCY: dict[int, list[tuple[str, str]]] = {
    3: [
        ("FULL BODY A", "FULL BODY A"),
        ("FULL BODY B", "FULL BODY B"),
        ("FULL BODY C", "FULL BODY C"),
    ],
}

DEFAULT_WORKOUT_DAYS: dict[int, list[int]] = {
    3: [1, 3, 5],
    4: [1, 2, 4, 5],
    5: [1, 2, 3, 4, 5],
    6: [1, 2, 3, 4, 5, 6],
}

# goal -> prescription scheme. ``set_range`` bounds the experience modifier.
PRESCRIPTIONS: dict[str, dict] = {
    "hypertrophy": {
        "compound": {"sets": 4, "reps": "8-10", "rpe": 8.0, "rest": 90},
        "isolation": {"sets": 3, "reps": "10-12", "rpe": 9.0, "rest": 60},
        "set_range": (3, 4),
        "notes": "Focus on time under tension and muscle contraction.",
    },
    "strength": {
        "compound": {"sets": 5, "reps": "3-5", "rpe": 8.5, "rest": 180},
        "isolation": {"sets": 3, "reps": "5-6", "rpe": 8.0, "rest": 120},
        "set_range": (3, 5),
        "notes": "Focus on heavy weight and perfect form. Rest fully.",
    },
    "fat_loss": {
        "compound": {"sets": 3, "reps": "12-15", "rpe": 7.5, "rest": 60},
        "isolation": {"sets": 3, "reps": "12-15", "rpe": 8.0, "rest": 45},
        "set_range": (3, 3),
        "notes": "Keep heart rate up. Short rests.",
    },
    "general": {
        "compound": {"sets": 3, "reps": "10", "rpe": 8.0, "rest": 90},
        "isolation": {"sets": 3, "reps": "10", "rpe": 8.0, "rest": 60},
        "set_range": (3, 3),
        "notes": "Balanced approach for strength and fitness.",
    },
    "endurance": {
        "compound": {"sets": 3, "reps": "15-20", "rpe": 7.0, "rest": 45},
        "isolation": {"sets": 2, "reps": "20", "rpe": 8.0, "rest": 30},
        "set_range": (2, 3),
        "notes": "Focus on muscular endurance. Minimize rest.",
    },
}

# experience -> (exercise count modifier, set modifier)
EXPERIENCE_MODIFIERS: dict[str, tuple[int, int]] = {
    "beginner": (-1, -1),
    "intermediate": (0, 0),
    "advanced": (1, 1),
}

DIFFICULTY_ORDER: dict[str, int] = {"beginner": 1, "intermediate": 2, "expert": 3}

DIFFICULTY_BY_EXPERIENCE: dict[str, str] = {
    "beginner": "beginner",
    "intermediate": "intermediate",
    "advanced": "expert",
}

BODYWEIGHT_EQUIPMENT = frozenset({"body weight"})

# full_gym is unrestricted and therefore has no entry.
EQUIPMENT_ALLOWED: dict[str, frozenset[str]] = {
    "bodyweight": BODYWEIGHT_EQUIPMENT,
    "home_gym": BODYWEIGHT_EQUIPMENT
    | {
        "barbell",
        "dumbbell",
        "kettlebell",
        "band",
        "resistance band",
        "medicine ball",
        "stability ball",
        "ez barbell",
        "weighted",
    },
}

# region -> excluded muscles and excluded movement name fragments
INJURY_EXCLUSIONS: dict[str, dict[str, tuple[str, ...]]] = {
    "lower_back": {
        "muscles": ("lower_back",),
        "patterns": ("deadlift", "good morning", "back extension", "hyperextension"),
    },
    "shoulder": {
        "muscles": ("shoulders",),
        "patterns": ("overhead", "military press", "upright row", "handstand", "dip"),
    },
    "knee": {
        "muscles": ("quads",),
        "patterns": ("jump", "pistol", "sissy", "leg extension", "lunge"),
    },
    "elbow": {
        "muscles": ("triceps",),
        "patterns": ("skull crusher", "dip", "close-grip"),
    },
    "wrist": {
        "muscles": ("forearms",),
        "patterns": ("wrist curl", "front squat"),
    },
}

INJURY_ALIASES: dict[str, str] = {
    "back": "lower_back",
    "lower_back_pain": "lower_back",
    "lumbar": "lower_back",
    "upper": "shoulder",
    "shoulders": "shoulder",
    "rotator_cuff": "shoulder",
    "lower": "knee",
    "knees": "knee",
    "elbows": "elbow",
    "wrists": "wrist",
}

NO_INJURY_TAGS = frozenset({"", "none", "no", "n/a", "na"})

MUSCLE_ALIASES: dict[str, str] = {
    "pectorals": "chest",
    "pecs": "chest",
    "delts": "shoulders",
    "deltoids": "shoulders",
    "rear delts": "shoulders",
    "lats": "back",
    "middle back": "back",
    "upper back": "back",
    "traps": "back",
    "lower back": "lower_back",
    "spine": "lower_back",
    "quadriceps": "quads",
    "abdominals": "core",
    "abs": "core",
    "obliques": "core",
    "adductors": "hips",
    "abductors": "hips",
    "hip flexors": "hips",
}

MUSCLE_TO_BODY_PART: dict[str, str] = {
    "chest": "chest",
    "back": "back",
    "lower_back": "back",
    "shoulders": "shoulders",
    "biceps": "upper arms",
    "triceps": "upper arms",
    "forearms": "lower arms",
    "quads": "upper legs",
    "hamstrings": "upper legs",
    "glutes": "upper legs",
    "hips": "upper legs",
    "calves": "lower legs",
    "core": "waist",
    "neck": "neck",
}

# Body regions accepted wherever a list of muscles is expected.
MUSCLE_REGIONS: dict[str, tuple[str, ...]] = {
    "legs": ("quads", "hamstrings", "glutes", "calves", "hips"),
    "lower_body": ("quads", "hamstrings", "glutes", "calves", "hips"),
    "upper_body": ("chest", "back", "shoulders", "biceps", "triceps"),
    "arms": ("biceps", "triceps", "forearms"),
}

# Templates tried, in order, for a day whose primary muscles are all avoided.
SUBSTITUTE_TEMPLATES: tuple[str, ...] = (
    "UPPER",
    "PUSH",
    "PULL",
    "FULL BODY A",
    "FULL BODY B",
    "FULL BODY C",
    "LOWER",
    "LEGS",
)

# Equipment keywords used when an AI coach supplies ad-hoc equipment.
FULL_GYM_MARKERS = frozenset({"barbell", "cable", "machine", "leverage machine", "smith machine"})
HOME_GYM_MARKERS = frozenset({"dumbbell", "kettlebell"})
BODYWEIGHT_MARKERS = frozenset({"body weight", "bodyweight"})


def canonical_muscle(name: str) -> str:
    key = name.strip().lower()
    return MUSCLE_ALIASES.get(key, key.replace(" ", "_"))
