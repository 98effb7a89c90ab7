"""Tests for program building and volume analysis."""

import pytest

from hypertroq.models.exercises import APPROVED_EXERCISES, ExerciseType, MuscleGroup
from hypertroq.models.program import DEFAULT_PROGRAMS, ProgramCategory
from hypertroq.volume import ProgramBuilder, VolumeLoad, classify_volume_load
from hypertroq.volume.analysis import round_half_up

UPPER_LOWER = DEFAULT_PROGRAMS[0]
PUSH_PULL_LEGS = DEFAULT_PROGRAMS[2]

UPPER_SELECTION = [
    "Chest Press Machine",
    "Lat Pulldown",
    "Cable Lateral Raise",
    "Cable Bicep Curl",
    "Cable Tricep Pushdown",
]


@pytest.fixture
def builder():
    return ProgramBuilder(UPPER_LOWER, APPROVED_EXERCISES, configuration={"upper-1": UPPER_SELECTION})


class TestHelpers:
    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4) == 2

    def test_classify_volume_load(self):
        assert classify_volume_load(7, MuscleGroup.CHEST) is VolumeLoad.LOW
        assert classify_volume_load(8, "CHEST") is VolumeLoad.MODERATE
        assert classify_volume_load(16, "CHEST") is VolumeLoad.HIGH
        assert classify_volume_load(22, "CHEST") is VolumeLoad.EXCESSIVE
        assert classify_volume_load(14, "UNKNOWN") is VolumeLoad.HIGH


class TestSelection:
    """Tests for exercise selection within category limits."""

    def test_templates_start_empty(self):
        builder = ProgramBuilder(UPPER_LOWER, APPROVED_EXERCISES)
        assert builder.configuration == {"upper-1": [], "lower-1": [], "upper-2": [], "lower-2": []}

    def test_toggle_respects_max(self):
        builder = ProgramBuilder(UPPER_LOWER, APPROVED_EXERCISES, ProgramCategory.MINIMALIST)
        for name in UPPER_SELECTION[:4]:
            assert builder.toggle_exercise("upper-1", name)
        assert not builder.can_add_more_exercises("upper-1")
        assert not builder.toggle_exercise("upper-1", UPPER_SELECTION[4])
        assert builder.toggle_exercise("upper-1", "Lat Pulldown")
        assert builder.get_total_selected_count("upper-1") == 3

    def test_category_change_clears(self, builder):
        builder.set_selected_category(ProgramCategory.MAXIMALIST)
        assert builder.get_total_selected_count("upper-1") == 0

    def test_selection_by_id(self, sample_exercises):
        builder = ProgramBuilder(UPPER_LOWER, sample_exercises, configuration={"upper-1": [6, 1]})
        assert [e.name for e in builder.get_exercises_for_workout("upper-1")] == [
            "Chest Press Machine",
            "Lat Pulldown",
        ]

    def test_workout_validity(self, builder):
        assert builder.is_workout_valid("upper-1")
        builder.set_workout_exercises("lower-1", ["Leg Press"])
        assert not builder.is_workout_valid("lower-1")
        assert not builder.is_workout_valid("nope")

    def test_missing_muscle_groups(self, builder):
        builder.set_workout_exercises("lower-1", ["Leg Press"])
        missing = {m.workout_template_id: m.missing_muscle_groups for m in builder.get_missing_muscle_groups()}
        assert "upper-1" not in missing
        assert missing["lower-1"] == ["HAMSTRINGS", "CALVES"]
        assert missing["upper-2"] == ["CHEST", "BACK", "SHOULDERS", "BICEPS", "TRICEPS"]

    def test_muscle_group_volumes(self, builder):
        volumes = {v.muscle_group: v for v in builder.get_muscle_group_volumes()}
        assert (volumes["CHEST"].direct_sets, volumes["CHEST"].indirect_sets) == (1, 0)
        assert (volumes["TRICEPS"].direct_sets, volumes["TRICEPS"].indirect_sets) == (1, 1)
        assert volumes["CALVES"].total_sets == 0


class TestRecommendedSets:
    def test_category_and_modifier(self):
        builder = ProgramBuilder(UPPER_LOWER, APPROVED_EXERCISES)
        assert builder.get_recommended_sets(ExerciseType.COMPOUND, MuscleGroup.CHEST) == 3
        assert builder.get_recommended_sets(ExerciseType.ISOLATION, MuscleGroup.BICEPS) == 2
        assert builder.get_recommended_sets("ISOLATION", "CALVES") == 4
        builder.set_selected_category(ProgramCategory.MINIMALIST)
        assert builder.get_recommended_sets(ExerciseType.COMPOUND, MuscleGroup.BACK) == 4

    def test_unknown_type_uses_default(self):
        builder = ProgramBuilder(UPPER_LOWER, APPROVED_EXERCISES)
        assert builder.get_recommended_sets("CARDIO", "CHEST") == 3


class TestWorkoutVolume:
    """Tests for a single workout's volume."""

    def test_upper_workout(self, builder):
        workout = builder.get_workout_volume("upper-1")
        volumes = {v.muscle_group: v for v in workout.muscle_groups}
        assert workout.workout_name == "Upper 1"
        assert workout.total_exercises == 5
        assert workout.estimated_duration == 58
        assert workout.is_complete
        assert workout.completion_score == 100
        assert volumes["TRICEPS"].direct_sets == 3
        assert volumes["TRICEPS"].indirect_sets == 1.5
        assert volumes["TRICEPS"].total_sets == 4.5
        assert volumes["FOREARMS"].total_sets == 1.0
        assert volumes["CHEST"].weekly_frequency == 4
        assert volumes["CHEST"].volume_load is VolumeLoad.MODERATE

    def test_completion_score(self):
        builder = ProgramBuilder(PUSH_PULL_LEGS, APPROVED_EXERCISES, configuration={"push": ["Pec Deck"]})
        assert builder.get_workout_volume("push").completion_score == 33
        builder.toggle_exercise("push", "Cable Lateral Raise")
        assert builder.get_workout_volume("push").completion_score == 67

    def test_empty_workout(self, builder):
        workout = builder.get_workout_volume("lower-2")
        assert workout.total_exercises == 0
        assert workout.completion_score == 0
        assert workout.estimated_duration == 10

    def test_without_program(self):
        workout = ProgramBuilder(None, APPROVED_EXERCISES).get_workout_volume("upper-1")
        assert workout.workout_name == "Unknown"


class TestWeeklyVolumeAnalysis:
    def test_weekly(self, builder):
        analysis = builder.get_weekly_volume_analysis()
        weekly = {v.muscle_group: v for v in analysis.weekly_volume}

        assert analysis.total_workouts == 4
        assert analysis.total_exercises == 5
        assert weekly["CHEST"].total_sets == 3
        assert weekly["CHEST"].sets_per_session == 0.75
        assert weekly["CHEST"].volume_load is VolumeLoad.LOW
        assert analysis.coverage.missing == ["QUADRICEPS", "HAMSTRINGS", "GLUTES", "CALVES"]
        assert "FOREARMS" in analysis.coverage.under_trained
        assert analysis.coverage.over_trained == []

        balance = analysis.training_balance
        assert (balance.compound_ratio, balance.isolation_ratio, balance.unilateral_ratio) == (40, 60, 0)

    def test_to_dict(self, builder):
        data = builder.get_weekly_volume_analysis().to_dict()
        assert data["muscle_group_coverage"]["missing"][0] == "QUADRICEPS"
        assert data["training_balance"]["compound_ratio"] == 40

    def test_without_program(self):
        assert ProgramBuilder(None, APPROVED_EXERCISES).get_weekly_volume_analysis().total_workouts == 0
