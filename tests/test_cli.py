"""Tests for the command line interface."""

import asyncio

import click
import pytest
from click.testing import CliRunner

from hypertroq.cli import main
from hypertroq.commands.config_cmd import coerce_setting
from hypertroq.commands.volume import parse_session_exercise, parse_workout_selection
from hypertroq.config import load_app_config
from hypertroq.db import AIConfigRepository


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def initialized(runner):
    result = runner.invoke(main, ["init"])
    assert result.exit_code == 0, result.output
    return load_app_config().db_path


class TestParsers:
    def test_session_exercise(self):
        exercise = parse_session_exercise("Leg Press:quads:compound")
        assert (exercise.name, exercise.muscle_group, exercise.is_compound) == ("Leg Press", "quads", True)
        assert not parse_session_exercise("Leg Curl:hamstrings").is_compound

    def test_session_exercise_invalid(self):
        with pytest.raises(click.BadParameter):
            parse_session_exercise("Leg Press")

    def test_workout_selection(self):
        assert parse_workout_selection("upper-1=1, 6,Cable Crunch") == ("upper-1", [1, 6, "Cable Crunch"])
        with pytest.raises(click.BadParameter):
            parse_workout_selection("upper-1")

    def test_coerce_setting(self):
        assert coerce_setting("temperature", "0.5") == 0.5
        assert coerce_setting("rag_max_chunks", "12") == 12
        assert coerce_setting("strict_muscle_priority", "off") is False
        assert coerce_setting("system_prompt", "Be brief") == "Be brief"
        with pytest.raises(click.BadParameter):
            coerce_setting("strict_muscle_priority", "maybe")


class TestInit:
    def test_init(self, runner):
        result = runner.invoke(main, ["init"])
        assert result.exit_code == 0
        assert "[OK] Database initialized" in result.output
        assert "hypertroq is ready to use!" in result.output
        assert load_app_config().db_path.exists()

    def test_commands_require_init(self, runner):
        result = runner.invoke(main, ["users", "list"])
        assert result.exit_code == 1
        assert "Run 'hypertroq init' first" in result.output


class TestUsers:
    """Tests for the users commands."""

    def test_create_and_list(self, runner, initialized):
        result = runner.invoke(main, ["users", "create", "lifter@example.com"])
        assert result.exit_code == 0
        assert "[OK] Created user 1 (lifter@example.com, Free)" in result.output

        result = runner.invoke(main, ["users", "list"])
        assert "lifter@example.com" in result.output
        assert "Total: 1 user(s)" in result.output

    def test_duplicate_email(self, runner, initialized):
        runner.invoke(main, ["users", "create", "lifter@example.com"])
        result = runner.invoke(main, ["users", "create", "lifter@example.com"])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_set_tier_and_usage(self, runner, initialized):
        runner.invoke(main, ["users", "create", "lifter@example.com"])
        result = runner.invoke(main, ["users", "set-tier", "1", "PRO_YEARLY"])
        assert "[OK] User 1 is now on Pro Yearly" in result.output

        result = runner.invoke(main, ["users", "usage", "1"])
        assert result.exit_code == 0
        assert "User 1: Pro Yearly" in result.output
        assert "Unlimited" in result.output

    def test_usage_unknown_user(self, runner, initialized):
        result = runner.invoke(main, ["users", "usage", "42"])
        assert result.exit_code == 1
        assert "[ERROR] User 42 not found" in result.output

    def test_empty_list(self, runner, initialized):
        result = runner.invoke(main, ["users", "list"])
        assert "No users found" in result.output


class TestVolume:
    def test_distribute(self, runner):
        result = runner.invoke(
            main,
            ["volume", "distribute", "Chest Press:chest:compound", "Cable Fly:chest", "--frequency", "48h"],
        )
        assert result.exit_code == 0
        assert "| Chest Press | 2 | 5-10 | 2-5 min |" in result.output
        assert "| Cable Fly | 1 | 5-10 | 1-3 min |" in result.output

    def test_distribute_bad_exercise(self, runner):
        result = runner.invoke(main, ["volume", "distribute", "Chest Press"])
        assert result.exit_code != 0

    def test_analyze(self, runner, initialized):
        result = runner.invoke(
            main, ["volume", "analyze", "push-pull-legs", "-w", "push=1,11,17", "-w", "pull=6,15"]
        )
        assert result.exit_code == 0, result.output
        assert "Program: Push/Pull/Legs (ESSENTIALIST)" in result.output
        assert "Balance: 60% compound, 40% isolation, 0% unilateral" in result.output
        assert "[WARN] Legs is missing: QUADRICEPS, HAMSTRINGS, GLUTES, CALVES" in result.output

    def test_analyze_unknown_program(self, runner, initialized):
        result = runner.invoke(main, ["volume", "analyze", "bro-split"])
        assert result.exit_code == 1
        assert "Program 'bro-split' not found" in result.output


class TestConfig:
    def test_set_and_show(self, runner, initialized):
        result = runner.invoke(main, ["config", "set", "temperature", "0.6"])
        assert "[OK] temperature = 0.6" in result.output
        assert asyncio.run(AIConfigRepository(initialized).get()).temperature == 0.6

        result = runner.invoke(main, ["config", "show"])
        assert "temperature: 0.6" in result.output
        assert "GEMINI_API_KEY" in result.output

    def test_unknown_setting(self, runner, initialized):
        result = runner.invoke(main, ["config", "set", "warp_speed", "9"])
        assert result.exit_code == 1
        assert "Unknown setting 'warp_speed'" in result.output

    def test_invalid_number(self, runner, initialized):
        result = runner.invoke(main, ["config", "set", "top_k", "lots"])
        assert result.exit_code == 1
        assert "Invalid value for top_k: lots" in result.output
