"""Program builder: exercise selection per workout and volume analysis.

A :class:`ProgramBuilder` wraps a :class:`TrainingProgram`, the exercise
library and the user's per-workout selections, and derives recommended sets,
per-workout volume and a weekly breakdown from them.
"""

import math
from dataclasses import dataclass, field
from enum import Enum

from ..models.exercises import Exercise, ExerciseType, MuscleGroup
from ..models.program import EXERCISE_LIMITS, ProgramCategory, TrainingProgram

ExerciseKey = int | str

# Base sets per exercise by type and category
BASE_SET_RECOMMENDATIONS: dict[ExerciseType, dict[ProgramCategory, int]] = {
    ExerciseType.COMPOUND: {
        ProgramCategory.MINIMALIST: 4,
        ProgramCategory.ESSENTIALIST: 3,
        ProgramCategory.MAXIMALIST: 3,
    },
    ExerciseType.ISOLATION: {
        ProgramCategory.MINIMALIST: 2,
        ProgramCategory.ESSENTIALIST: 3,
        ProgramCategory.MAXIMALIST: 4,
    },
    ExerciseType.UNILATERAL: {
        ProgramCategory.MINIMALIST: 2,
        ProgramCategory.ESSENTIALIST: 3,
        ProgramCategory.MAXIMALIST: 3,
    },
}
DEFAULT_BASE_SETS = 3

# Some muscles tolerate more volume than others
MUSCLE_MODIFIERS: dict[str, float] = {
    "CHEST": 1.0,
    "BACK": 1.1,
    "SHOULDERS": 0.9,
    "BICEPS": 0.8,
    "TRICEPS": 0.9,
    "QUADRICEPS": 1.1,
    "HAMSTRINGS": 1.0,
    "GLUTES": 1.0,
    "CALVES": 1.2,
    "ABS": 1.3,
    "FOREARMS": 0.7,
    "ADDUCTORS": 0.8,
}


@dataclass(frozen=True)
class VolumeLandmarks:
    """Weekly set thresholds for a muscle."""

    low: int
    moderate: int
    high: int


VOLUME_LANDMARKS: dict[str, VolumeLandmarks] = {
    "CHEST": VolumeLandmarks(8, 16, 22),
    "BACK": VolumeLandmarks(10, 18, 25),
    "SHOULDERS": VolumeLandmarks(8, 14, 20),
    "BICEPS": VolumeLandmarks(6, 12, 18),
    "TRICEPS": VolumeLandmarks(6, 12, 18),
    "QUADRICEPS": VolumeLandmarks(10, 16, 22),
    "HAMSTRINGS": VolumeLandmarks(8, 14, 20),
    "GLUTES": VolumeLandmarks(8, 16, 22),
    "CALVES": VolumeLandmarks(8, 16, 24),
    "ABS": VolumeLandmarks(6, 12, 20),
    "FOREARMS": VolumeLandmarks(4, 8, 14),
    "ADDUCTORS": VolumeLandmarks(4, 8, 14),
}
DEFAULT_LANDMARKS = VolumeLandmarks(8, 14, 20)

# Checked for "missing" in the weekly analysis
CORE_MUSCLE_GROUPS = [
    "CHEST",
    "BACK",
    "SHOULDERS",
    "BICEPS",
    "TRICEPS",
    "QUADRICEPS",
    "HAMSTRINGS",
    "GLUTES",
    "CALVES",
]

WARM_UP_MINUTES = 10


class VolumeLoad(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    EXCESSIVE = "EXCESSIVE"


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values."""
    return math.floor(value + 0.5)


def _muscle_key(muscle: MuscleGroup | str) -> str:
    return muscle.value if isinstance(muscle, MuscleGroup) else str(muscle)


@dataclass
class MuscleGroupVolume:
    muscle_group: str
    direct_sets: int = 0
    indirect_sets: int = 0

    @property
    def total_sets(self) -> int:
        return self.direct_sets + self.indirect_sets

    def to_dict(self) -> dict:
        return {
            "muscle_group": self.muscle_group,
            "direct_sets": self.direct_sets,
            "indirect_sets": self.indirect_sets,
            "total_sets": self.total_sets,
        }


@dataclass
class MissingMuscleGroups:
    workout_template_id: str
    workout_name: str
    missing_muscle_groups: list[str]

    def to_dict(self) -> dict:
        return {
            "workout_template_id": self.workout_template_id,
            "workout_name": self.workout_name,
            "missing_muscle_groups": self.missing_muscle_groups,
        }


@dataclass
class VolumeDistribution:
    """Volume a muscle receives in a workout or across the week."""

    muscle_group: str
    direct_sets: float = 0
    indirect_sets: float = 0
    total_sets: float = 0
    weekly_frequency: int = 1
    sets_per_session: float = 0
    volume_load: VolumeLoad = VolumeLoad.LOW

    def to_dict(self) -> dict:
        return {
            "muscle_group": self.muscle_group,
            "direct_sets": self.direct_sets,
            "indirect_sets": self.indirect_sets,
            "total_sets": self.total_sets,
            "weekly_frequency": self.weekly_frequency,
            "sets_per_session": self.sets_per_session,
            "volume_load": self.volume_load.value,
        }


@dataclass
class WorkoutVolume:
    workout_template_id: str
    workout_name: str
    total_exercises: int = 0
    estimated_duration: int = 0  # minutes
    muscle_groups: list[VolumeDistribution] = field(default_factory=list)
    is_complete: bool = False
    completion_score: int = 0  # 0-100

    def to_dict(self) -> dict:
        return {
            "workout_template_id": self.workout_template_id,
            "workout_name": self.workout_name,
            "total_exercises": self.total_exercises,
            "estimated_duration": self.estimated_duration,
            "muscle_groups": [m.to_dict() for m in self.muscle_groups],
            "is_complete": self.is_complete,
            "completion_score": self.completion_score,
        }


@dataclass
class MuscleGroupCoverage:
    covered: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    under_trained: list[str] = field(default_factory=list)
    well_trained: list[str] = field(default_factory=list)
    over_trained: list[str] = field(default_factory=list)


@dataclass
class TrainingBalance:
    """Percentages of selected exercises by type."""

    compound_ratio: int = 0
    isolation_ratio: int = 0
    unilateral_ratio: int = 0


@dataclass
class WeeklyVolumeAnalysis:
    total_workouts: int = 0
    total_exercises: int = 0
    weekly_volume: list[VolumeDistribution] = field(default_factory=list)
    coverage: MuscleGroupCoverage = field(default_factory=MuscleGroupCoverage)
    training_balance: TrainingBalance = field(default_factory=TrainingBalance)

    def to_dict(self) -> dict:
        return {
            "total_workouts": self.total_workouts,
            "total_exercises": self.total_exercises,
            "weekly_volume": [v.to_dict() for v in self.weekly_volume],
            "muscle_group_coverage": {
                "covered": self.coverage.covered,
                "missing": self.coverage.missing,
                "under_trained": self.coverage.under_trained,
                "well_trained": self.coverage.well_trained,
                "over_trained": self.coverage.over_trained,
            },
            "training_balance": {
                "compound_ratio": self.training_balance.compound_ratio,
                "isolation_ratio": self.training_balance.isolation_ratio,
                "unilateral_ratio": self.training_balance.unilateral_ratio,
            },
        }


def classify_volume_load(sets_per_week: float, muscle_group: MuscleGroup | str) -> VolumeLoad:
    """Classify weekly sets for a muscle against its volume landmarks."""
    landmarks = VOLUME_LANDMARKS.get(_muscle_key(muscle_group), DEFAULT_LANDMARKS)
    if sets_per_week < landmarks.low:
        return VolumeLoad.LOW
    if sets_per_week < landmarks.moderate:
        return VolumeLoad.MODERATE
    if sets_per_week < landmarks.high:
        return VolumeLoad.HIGH
    return VolumeLoad.EXCESSIVE


def exercise_key(exercise: Exercise) -> ExerciseKey:
    """Identifier used in a builder configuration (the id, or the name before storage)."""
    return exercise.id if exercise.id is not None else exercise.name


class ProgramBuilder:
    """Holds a program, the exercise library and per-workout selections."""

    def __init__(
        self,
        program: TrainingProgram | None,
        exercises: list[Exercise],
        category: ProgramCategory = ProgramCategory.ESSENTIALIST,
        configuration: dict[str, list[ExerciseKey]] | None = None,
    ):
        self.program = program
        self.exercises = list(exercises)
        self.selected_category = category
        self.configuration: dict[str, list[ExerciseKey]] = {}
        self.reset_configuration()
        if configuration:
            for template_id, exercise_ids in configuration.items():
                self.set_workout_exercises(template_id, exercise_ids)

    @property
    def limits(self):
        return EXERCISE_LIMITS[self.selected_category]

    def _find_exercise(self, key: ExerciseKey) -> Exercise | None:
        for exercise in self.exercises:
            if exercise_key(exercise) == key:
                return exercise
        return None

    def _selected(self, template_id: str) -> list[ExerciseKey]:
        return self.configuration.get(template_id, [])

    def _covered_muscles(self, template_id: str) -> set[str]:
        covered = set()
        for key in self._selected(template_id):
            exercise = self._find_exercise(key)
            if exercise:
                covered.update(_muscle_key(m) for m in exercise.muscle_groups)
        return covered

    # Selection

    def set_selected_category(self, category: ProgramCategory) -> None:
        """Change the category. Existing selections are cleared."""
        self.selected_category = category
        self.reset_configuration()

    def set_workout_exercises(self, template_id: str, exercise_ids: list[ExerciseKey]) -> None:
        self.configuration[template_id] = list(exercise_ids)

    def reset_configuration(self) -> None:
        self.configuration = {}
        if self.program:
            for template in self.program.workout_templates:
                self.configuration[template.id] = []

    def toggle_exercise(self, template_id: str, exercise_id: ExerciseKey) -> bool:
        """Add or remove an exercise from a workout.

        Adding is refused once the category maximum is reached.

        Returns:
            True if the selection changed
        """
        current = self._selected(template_id)
        if exercise_id in current:
            self.configuration[template_id] = [e for e in current if e != exercise_id]
            return True
        if len(current) < self.limits.max:
            self.configuration[template_id] = [*current, exercise_id]
            return True
        return False

    def can_add_more_exercises(self, template_id: str) -> bool:
        return len(self._selected(template_id)) < self.limits.max

    def get_total_selected_count(self, template_id: str) -> int:
        return len(self._selected(template_id))

    def get_exercises_for_workout(self, template_id: str) -> list[Exercise]:
        """Selected exercises for a workout, in library order."""
        selected = set(self._selected(template_id))
        return [ex for ex in self.exercises if exercise_key(ex) in selected]

    def is_workout_valid(self, template_id: str) -> bool:
        """At least the category minimum and every required muscle covered."""
        if len(self._selected(template_id)) < self.limits.min:
            return False
        template = self.program.get_template(template_id) if self.program else None
        if template is None:
            return False
        covered = self._covered_muscles(template_id)
        return all(_muscle_key(m) in covered for m in template.required_muscle_groups)

    def get_missing_muscle_groups(self) -> list[MissingMuscleGroups]:
        missing = []
        if not self.program:
            return missing
        for template in self.program.workout_templates:
            covered = self._covered_muscles(template.id)
            not_covered = [
                _muscle_key(m) for m in template.required_muscle_groups if _muscle_key(m) not in covered
            ]
            if not_covered:
                missing.append(
                    MissingMuscleGroups(
                        workout_template_id=template.id,
                        workout_name=template.name or "Unknown Workout",
                        missing_muscle_groups=not_covered,
                    )
                )
        return missing

    def get_muscle_group_volumes(self) -> list[MuscleGroupVolume]:
        """Count one set per selection: direct for the primary, indirect per secondary."""
        volumes: dict[str, MuscleGroupVolume] = {}
        for exercise in self.exercises:
            for muscle in [exercise.primary_muscle_group, *exercise.secondary_muscle_groups]:
                key = _muscle_key(muscle)
                volumes.setdefault(key, MuscleGroupVolume(key))

        for exercise_ids in self.configuration.values():
            for key in exercise_ids:
                exercise = self._find_exercise(key)
                if exercise is None:
                    continue
                primary = _muscle_key(exercise.primary_muscle_group)
                volumes.setdefault(primary, MuscleGroupVolume(primary)).direct_sets += 1
                for muscle in exercise.secondary_muscle_groups:
                    secondary = _muscle_key(muscle)
                    volumes.setdefault(secondary, MuscleGroupVolume(secondary)).indirect_sets += 1
        return list(volumes.values())

    # Volume

    def get_recommended_sets(self, exercise_type: ExerciseType | str, muscle_group: MuscleGroup | str) -> int:
        """Sets per exercise for the current category, scaled by the muscle's modifier."""
        try:
            base_table = BASE_SET_RECOMMENDATIONS.get(ExerciseType(exercise_type), {})
        except ValueError:
            base_table = {}
        base_sets = base_table.get(self.selected_category, DEFAULT_BASE_SETS)
        modifier = MUSCLE_MODIFIERS.get(_muscle_key(muscle_group), 1.0)
        return round_half_up(base_sets * modifier)

    def estimate_duration(self, template_id: str) -> int:
        """Minutes for a workout: 4 per compound set, 3 per other set, plus warm-up."""
        total = 0
        for exercise in self.get_exercises_for_workout(template_id):
            sets = self.get_recommended_sets(exercise.exercise_type, exercise.primary_muscle_group)
            minutes_per_set = 4 if exercise.exercise_type == ExerciseType.COMPOUND else 3
            total += sets * minutes_per_set
        return total + WARM_UP_MINUTES

    def get_workout_volume(self, template_id: str) -> WorkoutVolume:
        if not self.program:
            return WorkoutVolume(workout_template_id=template_id, workout_name="Unknown")

        template = self.program.get_template(template_id)
        workout_name = template.name if template else "Unknown Workout"
        required = [_muscle_key(m) for m in template.required_muscle_groups] if template else []
        frequency = self.program.session_count or 1
        selected = self.get_exercises_for_workout(template_id)

        volumes: dict[str, VolumeDistribution] = {}
        for exercise in selected:
            sets = self.get_recommended_sets(exercise.exercise_type, exercise.primary_muscle_group)
            primary = _muscle_key(exercise.primary_muscle_group)
            volumes.setdefault(primary, VolumeDistribution(primary, weekly_frequency=frequency))
            volumes[primary].direct_sets += sets
            for muscle in exercise.secondary_muscle_groups:
                secondary = _muscle_key(muscle)
                volumes.setdefault(secondary, VolumeDistribution(secondary, weekly_frequency=frequency))
                volumes[secondary].indirect_sets += sets * 0.5

        for volume in volumes.values():
            volume.total_sets = volume.direct_sets + volume.indirect_sets
            volume.sets_per_session = volume.total_sets
            volume.volume_load = classify_volume_load(
                volume.total_sets * volume.weekly_frequency, volume.muscle_group
            )

        covered = {m for m, v in volumes.items() if v.total_sets > 0}
        if required:
            required_covered = sum(1 for m in required if m in covered)
            completion_score = round_half_up(required_covered / len(required) * 100)
        else:
            completion_score = 100 if selected else 0

        return WorkoutVolume(
            workout_template_id=template_id,
            workout_name=workout_name,
            total_exercises=len(selected),
            estimated_duration=self.estimate_duration(template_id),
            muscle_groups=list(volumes.values()),
            is_complete=completion_score >= 100,
            completion_score=completion_score,
        )

    def get_weekly_volume_analysis(self) -> WeeklyVolumeAnalysis:
        if not self.program:
            return WeeklyVolumeAnalysis()

        frequency = self.program.session_count or 1
        template_count = len(self.program.workout_templates)
        weekly: dict[str, VolumeDistribution] = {}
        total_exercises = 0
        type_counts = {t: 0 for t in ExerciseType}

        for template in self.program.workout_templates:
            workout = self.get_workout_volume(template.id)
            total_exercises += workout.total_exercises
            for exercise in self.get_exercises_for_workout(template.id):
                type_counts[exercise.exercise_type] += 1
            for muscle_volume in workout.muscle_groups:
                muscle = muscle_volume.muscle_group
                weekly.setdefault(muscle, VolumeDistribution(muscle, weekly_frequency=frequency))
                weekly[muscle].direct_sets += muscle_volume.direct_sets
                weekly[muscle].indirect_sets += muscle_volume.indirect_sets

        for volume in weekly.values():
            volume.total_sets = volume.direct_sets + volume.indirect_sets
            volume.sets_per_session = volume.total_sets / template_count if template_count else 0
            volume.volume_load = classify_volume_load(volume.total_sets, volume.muscle_group)

        covered = [m for m, v in weekly.items() if v.total_sets > 0]
        coverage = MuscleGroupCoverage(
            covered=covered,
            missing=[m for m in CORE_MUSCLE_GROUPS if m not in covered],
            under_trained=[m for m in covered if weekly[m].volume_load == VolumeLoad.LOW],
            well_trained=[
                m for m in covered if weekly[m].volume_load in (VolumeLoad.MODERATE, VolumeLoad.HIGH)
            ],
            over_trained=[m for m in covered if weekly[m].volume_load == VolumeLoad.EXCESSIVE],
        )

        counted = sum(type_counts.values())

        def _ratio(count: int) -> int:
            return round_half_up(count / counted * 100) if counted else 0

        balance = TrainingBalance(
            compound_ratio=_ratio(type_counts[ExerciseType.COMPOUND]),
            isolation_ratio=_ratio(type_counts[ExerciseType.ISOLATION]),
            unilateral_ratio=_ratio(type_counts[ExerciseType.UNILATERAL]),
        )

        return WeeklyVolumeAnalysis(
            total_workouts=template_count,
            total_exercises=total_exercises,
            weekly_volume=list(weekly.values()),
            coverage=coverage,
            training_balance=balance,
        )
