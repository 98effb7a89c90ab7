"""Training program templates."""

from dataclasses import dataclass, field
from enum import Enum

from .exercises import MuscleGroup


class ProgramCategory(str, Enum):
    """How many exercises a user wants per workout."""

    MINIMALIST = "MINIMALIST"  # 3-4 exercises
    ESSENTIALIST = "ESSENTIALIST"  # 4-6 exercises
    MAXIMALIST = "MAXIMALIST"  # 6-8 exercises


@dataclass(frozen=True)
class ExerciseLimits:
    min: int
    max: int


EXERCISE_LIMITS: dict[ProgramCategory, ExerciseLimits] = {
    ProgramCategory.MINIMALIST: ExerciseLimits(min=3, max=4),
    ProgramCategory.ESSENTIALIST: ExerciseLimits(min=4, max=6),
    ProgramCategory.MAXIMALIST: ExerciseLimits(min=6, max=8),
}


@dataclass
class WorkoutTemplate:
    """A single workout slot within a program."""

    id: str
    name: str
    order: int
    required_muscle_groups: list[MuscleGroup] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "order": self.order,
            "required_muscle_groups": [mg.value for mg in self.required_muscle_groups],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkoutTemplate":
        return cls(
            id=data["id"],
            name=data["name"],
            order=data.get("order", 0),
            required_muscle_groups=[
                MuscleGroup(mg) for mg in data.get("required_muscle_groups", [])
            ],
        )


@dataclass
class TrainingProgram:
    """A program template users configure with exercises."""

    id: str
    name: str
    description: str = ""
    session_count: int = 1  # Sessions per week
    workout_templates: list[WorkoutTemplate] = field(default_factory=list)

    def get_template(self, template_id: str) -> WorkoutTemplate | None:
        for template in self.workout_templates:
            if template.id == template_id:
                return template
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "session_count": self.session_count,
            "workout_templates": [t.to_dict() for t in self.workout_templates],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrainingProgram":
        """Create from dictionary."""
        templates = [WorkoutTemplate.from_dict(t) for t in data.get("workout_templates", [])]
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            session_count=data.get("session_count") or 1,
            workout_templates=sorted(templates, key=lambda t: t.order),
        )


_UPPER = [MuscleGroup.CHEST, MuscleGroup.BACK, MuscleGroup.SHOULDERS, MuscleGroup.BICEPS, MuscleGroup.TRICEPS]
_LOWER = [MuscleGroup.QUADRICEPS, MuscleGroup.HAMSTRINGS, MuscleGroup.GLUTES, MuscleGroup.CALVES]

DEFAULT_PROGRAMS: list[TrainingProgram] = [
    TrainingProgram(
        id="upper-lower",
        name="Upper/Lower",
        description="Four sessions a week alternating upper and lower body, each muscle hit every ~72h.",
        session_count=4,
        workout_templates=[
            WorkoutTemplate("upper-1", "Upper 1", 1, list(_UPPER)),
            WorkoutTemplate("lower-1", "Lower 1", 2, list(_LOWER)),
            WorkoutTemplate("upper-2", "Upper 2", 3, list(_UPPER)),
            WorkoutTemplate("lower-2", "Lower 2", 4, list(_LOWER)),
        ],
    ),
    TrainingProgram(
        id="full-body",
        name="Full Body",
        description="Three full body sessions a week, each muscle hit every ~48h.",
        session_count=3,
        workout_templates=[
            WorkoutTemplate(
                f"full-body-{i}",
                f"Full Body {i}",
                i,
                [MuscleGroup.CHEST, MuscleGroup.BACK, MuscleGroup.SHOULDERS, MuscleGroup.QUADRICEPS, MuscleGroup.HAMSTRINGS],
            )
            for i in range(1, 4)
        ],
    ),
    TrainingProgram(
        id="push-pull-legs",
        name="Push/Pull/Legs",
        description="Six sessions a week split by movement pattern.",
        session_count=6,
        workout_templates=[
            WorkoutTemplate("push", "Push", 1, [MuscleGroup.CHEST, MuscleGroup.SHOULDERS, MuscleGroup.TRICEPS]),
            WorkoutTemplate("pull", "Pull", 2, [MuscleGroup.BACK, MuscleGroup.BICEPS]),
            WorkoutTemplate("legs", "Legs", 3, list(_LOWER)),
        ],
    ),
]
