"""Per-session set volume distribution.

Sets are allotted per muscle group according to training frequency, then
split across the exercises hitting that muscle:

- 72h frequency (upper/lower): 2-4 sets per muscle group per session
- 48h frequency (full body): 1-3 sets per muscle group per session
- about 20 total sets per session at most
"""

import math
from dataclasses import dataclass, field

import structlog

from ..errors import ValidationError

logger = structlog.get_logger(__name__)

SESSION_SET_LIMIT = 20

VOLUME_LIMITS: dict[str, tuple[int, int]] = {
    "72h": (2, 4),  # Upper/Lower
    "48h": (1, 3),  # Full body
}

SESSION_TYPES = ("upper", "lower", "full_body", "push", "pull", "legs")

DEFAULT_REPS = "5-10"
DEFAULT_NOTES = "Take to 0-2 RIR (close to failure)"


@dataclass
class SessionExercise:
    """An exercise picked for a session."""

    name: str
    muscle_group: str
    is_compound: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "SessionExercise":
        return cls(
            name=data["name"],
            muscle_group=data["muscle_group"],
            is_compound=data.get("is_compound", False),
        )


@dataclass
class ExerciseRecommendation:
    name: str
    sets: int
    reps: str
    rest: str
    notes: str
    muscle_group: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "sets": self.sets,
            "reps": self.reps,
            "rest": self.rest,
            "notes": self.notes,
            "muscle_group": self.muscle_group,
        }


@dataclass
class SetVolumeDistribution:
    total_sets: int
    muscle_group_sets: dict[str, int] = field(default_factory=dict)
    exercise_distribution: list[ExerciseRecommendation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_sets": self.total_sets,
            "muscle_group_sets": self.muscle_group_sets,
            "exercise_distribution": [e.to_dict() for e in self.exercise_distribution],
            "warnings": self.warnings,
        }


def _muscle_group_sets(exercise_count: int, min_sets: int, max_sets: int) -> int:
    if exercise_count <= 2:
        return max_sets
    return math.ceil((min_sets + max_sets) / 2)


def _split_sets(total: int, count: int, index: int) -> int:
    if count == 1:
        sets = total
    elif count == 2:
        sets = math.ceil(total / 2) if index == 0 else total // 2
    else:
        sets = total // count + (1 if index < total % count else 0)
    return max(1, sets)


def calculate_set_volume_distribution(
    exercises: list[SessionExercise],
    training_frequency: str = "72h",
    session_type: str = "upper",
) -> SetVolumeDistribution:
    """Allocate sets to each exercise of a session.

    Args:
        exercises: Exercises in session order
        training_frequency: "72h" (upper/lower) or "48h" (full body)
        session_type: Informational session label

    Returns:
        The per-muscle totals, per-exercise recommendations and any warnings

    Raises:
        ValidationError: If the frequency is not supported
    """
    if training_frequency not in VOLUME_LIMITS:
        raise ValidationError(
            f"Unsupported training frequency '{training_frequency}'",
            details={"supported": sorted(VOLUME_LIMITS)},
        )
    min_sets, max_sets = VOLUME_LIMITS[training_frequency]
    logger.debug(
        "calculating_set_volume",
        session_type=session_type,
        training_frequency=training_frequency,
        exercise_count=len(exercises),
    )

    # dicts keep first-seen order
    by_muscle: dict[str, list[str]] = {}
    for exercise in exercises:
        by_muscle.setdefault(exercise.muscle_group, []).append(exercise.name)

    muscle_group_sets = {
        muscle: _muscle_group_sets(len(names), min_sets, max_sets)
        for muscle, names in by_muscle.items()
    }
    total_sets = sum(muscle_group_sets.values())

    warnings = []
    if total_sets > SESSION_SET_LIMIT:
        warnings.append(
            f"Session exceeds recommended {SESSION_SET_LIMIT} sets (current: {total_sets}). "
            "Consider reducing exercises or sets."
        )

    distribution = []
    for muscle, names in by_muscle.items():
        for index, name in enumerate(names):
            sets = _split_sets(muscle_group_sets[muscle], len(names), index)
            distribution.append(
                ExerciseRecommendation(
                    name=name,
                    sets=sets,
                    reps=DEFAULT_REPS,
                    rest="2-5 min" if sets > 1 else "1-3 min",
                    notes=DEFAULT_NOTES,
                    muscle_group=muscle,
                )
            )

    return SetVolumeDistribution(
        total_sets=total_sets,
        muscle_group_sets=muscle_group_sets,
        exercise_distribution=distribution,
        warnings=warnings,
    )


def format_workout_table(distribution: SetVolumeDistribution) -> str:
    """Render a distribution as a markdown table with a session summary."""
    lines = [
        "| Exercise | Sets | Reps | Rest | Notes |",
        "|----------|------|------|------|-------|",
    ]
    for ex in distribution.exercise_distribution:
        lines.append(f"| {ex.name} | {ex.sets} | {ex.reps} | {ex.rest} | {ex.notes} |")

    lines.append("")
    lines.append("**Session Summary:**")
    lines.append(f"- Total Sets: {distribution.total_sets}")
    lines.append(f"- Muscle Groups: {', '.join(distribution.muscle_group_sets)}")
    for muscle, sets in distribution.muscle_group_sets.items():
        lines.append(f"- {muscle}: {sets} sets")

    if distribution.warnings:
        lines.append("")
        lines.append("**Recommendations:**")
        lines.extend(f"- {warning}" for warning in distribution.warnings)

    return "\n".join(lines) + "\n"
