"""Exercise definitions and metadata."""

from dataclasses import dataclass, field
from enum import Enum


class MuscleGroup(str, Enum):
    """Muscle groups tracked for volume."""

    CHEST = "CHEST"
    BACK = "BACK"
    SHOULDERS = "SHOULDERS"
    BICEPS = "BICEPS"
    TRICEPS = "TRICEPS"
    QUADRICEPS = "QUADRICEPS"
    HAMSTRINGS = "HAMSTRINGS"
    GLUTES = "GLUTES"
    CALVES = "CALVES"
    ABS = "ABS"
    FOREARMS = "FOREARMS"
    ADDUCTORS = "ADDUCTORS"


class ExerciseType(str, Enum):
    """How an exercise loads the body."""

    COMPOUND = "COMPOUND"  # Multi-joint
    ISOLATION = "ISOLATION"  # Single-joint
    UNILATERAL = "UNILATERAL"  # One limb at a time


class ExerciseCategory(str, Enum):
    """Admin review state of an exercise."""

    APPROVED = "APPROVED"
    PENDING = "PENDING"
    DEPRECATED = "DEPRECATED"


@dataclass
class Exercise:
    """An exercise in the validated library."""

    name: str
    exercise_type: ExerciseType
    primary_muscle_group: MuscleGroup
    secondary_muscle_groups: list[MuscleGroup] = field(default_factory=list)
    equipment: list[str] = field(default_factory=list)
    # muscle -> 1.0 (direct) or 0.5 (indirect); derived when left empty
    volume_contributions: dict[str, float] = field(default_factory=dict)
    category: ExerciseCategory = ExerciseCategory.APPROVED
    is_active: bool = True
    is_recommended: bool = False
    description: str = ""
    id: int | None = None

    def __post_init__(self):
        if not self.volume_contributions:
            contributions = {self.primary_muscle_group.value: 1.0}
            for muscle in self.secondary_muscle_groups:
                contributions.setdefault(muscle.value, 0.5)
            self.volume_contributions = contributions

    @property
    def muscle_groups(self) -> set[MuscleGroup]:
        """Primary and secondary muscles together."""
        return {self.primary_muscle_group, *self.secondary_muscle_groups}

    @property
    def is_approved(self) -> bool:
        return self.category == ExerciseCategory.APPROVED and self.is_active

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "name": self.name,
            "exercise_type": self.exercise_type.value,
            "primary_muscle_group": self.primary_muscle_group.value,
            "secondary_muscle_groups": [mg.value for mg in self.secondary_muscle_groups],
            "equipment": self.equipment,
            "volume_contributions": self.volume_contributions,
            "category": self.category.value,
            "is_active": self.is_active,
            "is_recommended": self.is_recommended,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "Exercise":
        """Create from dictionary."""
        return cls(
            id=id,
            name=data["name"],
            exercise_type=ExerciseType(data["exercise_type"]),
            primary_muscle_group=MuscleGroup(data["primary_muscle_group"]),
            secondary_muscle_groups=[
                MuscleGroup(mg) for mg in data.get("secondary_muscle_groups", [])
            ],
            equipment=data.get("equipment", []),
            volume_contributions=data.get("volume_contributions", {}),
            category=ExerciseCategory(data.get("category", "APPROVED")),
            is_active=data.get("is_active", True),
            is_recommended=data.get("is_recommended", False),
            description=data.get("description", ""),
        )


def _ex(
    name: str,
    exercise_type: ExerciseType,
    primary: MuscleGroup,
    secondary: list[MuscleGroup],
    equipment: list[str],
    recommended: bool = False,
) -> Exercise:
    return Exercise(
        name=name,
        exercise_type=exercise_type,
        primary_muscle_group=primary,
        secondary_muscle_groups=secondary,
        equipment=equipment,
        is_recommended=recommended,
    )


C, I, U = ExerciseType.COMPOUND, ExerciseType.ISOLATION, ExerciseType.UNILATERAL
M = MuscleGroup

# Seed library, machine and cable work first
APPROVED_EXERCISES: list[Exercise] = [
    # Chest
    _ex("Chest Press Machine", C, M.CHEST, [M.TRICEPS, M.SHOULDERS], ["machine"], recommended=True),
    _ex("Incline Chest Press Machine", C, M.CHEST, [M.SHOULDERS, M.TRICEPS], ["machine"]),
    _ex("Incline Dumbbell Press", C, M.CHEST, [M.SHOULDERS, M.TRICEPS], ["dumbbell", "bench"]),
    _ex("Cable Crossover", I, M.CHEST, [M.SHOULDERS], ["cable"], recommended=True),
    _ex("Pec Deck", I, M.CHEST, [], ["machine"]),
    # Back
    _ex("Lat Pulldown", C, M.BACK, [M.BICEPS], ["cable"], recommended=True),
    _ex("Seated Cable Row", C, M.BACK, [M.BICEPS, M.SHOULDERS], ["cable"], recommended=True),
    _ex("Chest Supported Row Machine", C, M.BACK, [M.BICEPS, M.SHOULDERS], ["machine"]),
    _ex("Single Arm Cable Row", U, M.BACK, [M.BICEPS], ["cable"]),
    _ex("Assisted Pull Up", C, M.BACK, [M.BICEPS], ["machine"]),
    # Shoulders
    _ex("Shoulder Press Machine", C, M.SHOULDERS, [M.TRICEPS], ["machine"], recommended=True),
    _ex("Cable Lateral Raise", I, M.SHOULDERS, [], ["cable"], recommended=True),
    _ex("Reverse Pec Deck", I, M.SHOULDERS, [M.BACK], ["machine"]),
    # Arms
    _ex("Dumbbell Bicep Curl", I, M.BICEPS, [M.FOREARMS], ["dumbbell"]),
    _ex("Cable Bicep Curl", I, M.BICEPS, [M.FOREARMS], ["cable"], recommended=True),
    _ex("Preacher Curl Machine", I, M.BICEPS, [], ["machine"]),
    _ex("Cable Tricep Pushdown", I, M.TRICEPS, [], ["cable"], recommended=True),
    _ex("Overhead Cable Tricep Extension", I, M.TRICEPS, [], ["cable"]),
    _ex("Reverse Curl", I, M.FOREARMS, [M.BICEPS], ["cable"]),
    # Legs
    _ex("Hack Squat", C, M.QUADRICEPS, [M.GLUTES, M.ADDUCTORS], ["machine"], recommended=True),
    _ex("Leg Press", C, M.QUADRICEPS, [M.GLUTES, M.ADDUCTORS], ["machine"], recommended=True),
    _ex("Leg Extension", I, M.QUADRICEPS, [], ["machine"]),
    _ex("Bulgarian Split Squat", U, M.QUADRICEPS, [M.GLUTES], ["dumbbell", "bench"]),
    _ex("Romanian Deadlift", C, M.HAMSTRINGS, [M.GLUTES, M.BACK], ["barbell"]),
    _ex("Seated Leg Curl", I, M.HAMSTRINGS, [], ["machine"], recommended=True),
    _ex("Lying Leg Curl", I, M.HAMSTRINGS, [], ["machine"]),
    _ex("Hip Thrust Machine", C, M.GLUTES, [M.HAMSTRINGS], ["machine"]),
    _ex("Hip Adduction Machine", I, M.ADDUCTORS, [], ["machine"]),
    _ex("Standing Calf Raise", I, M.CALVES, [], ["machine"], recommended=True),
    _ex("Seated Calf Raise", I, M.CALVES, [], ["machine"]),
    # Core
    _ex("Cable Crunch", I, M.ABS, [], ["cable"], recommended=True),
    _ex("Hanging Leg Raise", I, M.ABS, [M.FOREARMS], ["bodyweight"]),
]

del C, I, U, M
