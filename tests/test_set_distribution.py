"""Tests for per-session set distribution."""

import pytest

from hypertroq.errors import ValidationError
from hypertroq.volume import SessionExercise, calculate_set_volume_distribution, format_workout_table


def _ex(name, muscle, compound=False):
    return SessionExercise(name=name, muscle_group=muscle, is_compound=compound)


class TestCalculateSetVolumeDistribution:
    """Tests for calculate_set_volume_distribution."""

    def test_upper_lower_two_exercises_share_max(self):
        result = calculate_set_volume_distribution(
            [_ex("Chest Press Machine", "chest", True), _ex("Cable Crossover", "chest"), _ex("Lat Pulldown", "back", True)]
        )
        assert result.muscle_group_sets == {"chest": 4, "back": 4}
        assert result.total_sets == 8
        assert [(e.name, e.sets) for e in result.exercise_distribution] == [
            ("Chest Press Machine", 2),
            ("Cable Crossover", 2),
            ("Lat Pulldown", 4),
        ]
        assert result.warnings == []

    def test_three_exercises_use_midpoint(self):
        result = calculate_set_volume_distribution(
            [_ex("A", "back"), _ex("B", "back"), _ex("C", "back")], "72h"
        )
        assert result.muscle_group_sets == {"back": 3}
        assert [e.sets for e in result.exercise_distribution] == [1, 1, 1]

    def test_full_body_limits(self):
        result = calculate_set_volume_distribution([_ex("Leg Press", "quads", True)], "48h", "full_body")
        assert result.muscle_group_sets == {"quads": 3}
        assert result.exercise_distribution[0].rest == "2-5 min"

    def test_every_exercise_gets_a_set(self):
        result = calculate_set_volume_distribution(
            [_ex(n, "shoulders") for n in ("A", "B", "C", "D")], "48h"
        )
        assert result.muscle_group_sets == {"shoulders": 2}
        assert [e.sets for e in result.exercise_distribution] == [1, 1, 1, 1]
        assert all(e.rest == "1-3 min" for e in result.exercise_distribution)

    def test_session_limit_warning(self):
        muscles = ["chest", "back", "shoulders", "biceps", "triceps", "abs"]
        result = calculate_set_volume_distribution([_ex(m.title(), m) for m in muscles])
        assert result.total_sets == 24
        assert result.warnings == [
            "Session exceeds recommended 20 sets (current: 24). Consider reducing exercises or sets."
        ]

    def test_recommendation_defaults(self):
        rec = calculate_set_volume_distribution([_ex("Leg Curl", "hamstrings")]).exercise_distribution[0]
        assert rec.reps == "5-10"
        assert rec.notes == "Take to 0-2 RIR (close to failure)"

    def test_unknown_frequency(self):
        with pytest.raises(ValidationError):
            calculate_set_volume_distribution([_ex("A", "chest")], "24h")

    def test_empty_session(self):
        result = calculate_set_volume_distribution([])
        assert result.total_sets == 0
        assert result.exercise_distribution == []


class TestFormatWorkoutTable:
    def test_table(self):
        table = format_workout_table(
            calculate_set_volume_distribution([_ex("Chest Press Machine", "chest", True)])
        )
        lines = table.split("\n")
        assert lines[0] == "| Exercise | Sets | Reps | Rest | Notes |"
        assert lines[2] == "| Chest Press Machine | 4 | 5-10 | 2-5 min | Take to 0-2 RIR (close to failure) |"
        assert "- Total Sets: 4" in lines
        assert "- chest: 4 sets" in lines
        assert "**Recommendations:**" not in table
        assert table.endswith("\n")

    def test_warnings_listed(self):
        muscles = ["chest", "back", "shoulders", "biceps", "triceps", "abs"]
        table = format_workout_table(calculate_set_volume_distribution([_ex(m, m) for m in muscles]))
        assert "**Recommendations:**" in table
