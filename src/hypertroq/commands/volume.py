"""Set distribution and program volume commands."""

import click

from ..db import ExerciseRepository, ProgramRepository, get_db_path
from ..models.program import ProgramCategory
from ..volume.analysis import ProgramBuilder
from ..volume.set_distribution import (
    SESSION_TYPES,
    VOLUME_LIMITS,
    SessionExercise,
    calculate_set_volume_distribution,
    format_workout_table,
)
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_warning,
    ensure_initialized,
    format_table,
)


def parse_session_exercise(value: str) -> SessionExercise:
    """Parse ``NAME:MUSCLE`` or ``NAME:MUSCLE:compound``."""
    parts = [p.strip() for p in value.split(":")]
    if len(parts) not in (2, 3) or not parts[0] or not parts[1]:
        raise click.BadParameter(f"Expected NAME:MUSCLE[:compound], got '{value}'")
    is_compound = len(parts) == 3 and parts[2].lower() in ("compound", "c", "true", "yes")
    return SessionExercise(name=parts[0], muscle_group=parts[1], is_compound=is_compound)


def parse_workout_selection(value: str) -> tuple[str, list[int | str]]:
    """Parse ``TEMPLATE=ID,ID,...``. Numeric entries are ids, others names."""
    template_id, sep, selection = value.partition("=")
    if not sep or not template_id.strip():
        raise click.BadParameter(f"Expected TEMPLATE=EXERCISE,EXERCISE, got '{value}'")
    keys: list[int | str] = []
    for entry in selection.split(","):
        entry = entry.strip()
        if entry:
            keys.append(int(entry) if entry.isdigit() else entry)
    return template_id.strip(), keys


@click.group()
def volume():
    """Plan and check training volume."""


@volume.command()
@click.argument("exercises", nargs=-1, required=True)
@click.option(
    "--frequency",
    "-f",
    type=click.Choice(sorted(VOLUME_LIMITS)),
    default="72h",
    help="Time between sessions for the same muscles (default: 72h)",
)
@click.option(
    "--session",
    "-s",
    "session_type",
    type=click.Choice(SESSION_TYPES),
    default="upper",
    help="Session type (default: upper)",
)
def distribute(exercises: tuple[str, ...], frequency: str, session_type: str):
    """Allocate sets across a session's EXERCISES.

    Each exercise is NAME:MUSCLE, with :compound appended for compound lifts.

    Example:

        hypertroq volume distribute "Bench Press:chest:compound" "Cable Fly:chest" "Lateral Raise:shoulders"
    """
    session = [parse_session_exercise(e) for e in exercises]
    distribution = calculate_set_volume_distribution(
        session, training_frequency=frequency, session_type=session_type
    )
    click.echo()
    click.echo(format_workout_table(distribution))


@volume.command()
@click.argument("program_id")
@click.option(
    "--workout",
    "-w",
    "workouts",
    multiple=True,
    help="Selection for one workout template as TEMPLATE=ID,ID,... (repeatable)",
)
@click.option(
    "--category",
    "-c",
    type=click.Choice([c.value for c in ProgramCategory]),
    default=ProgramCategory.ESSENTIALIST.value,
    help="Program category (sets exercise limits)",
)
@click.pass_context
@async_command
async def analyze(ctx, program_id: str, workouts: tuple[str, ...], category: str):
    """Analyze per-workout and weekly volume for a program selection."""
    ensure_initialized(ctx)
    db_path = get_db_path()

    program = await ProgramRepository(db_path).get(program_id)
    if program is None:
        echo_error(f"Program '{program_id}' not found")
        ctx.exit(1)

    configuration = dict(parse_workout_selection(w) for w in workouts)
    unknown = [tid for tid in configuration if program.get_template(tid) is None]
    if unknown:
        echo_error(f"Unknown workout templates: {', '.join(unknown)}")
        ctx.exit(1)

    exercises = await ExerciseRepository(db_path).list_approved()
    builder = ProgramBuilder(program, exercises, ProgramCategory(category), configuration)

    click.echo()
    click.echo(f"Program: {program.name} ({builder.selected_category.value})")
    for template in program.workout_templates:
        workout = builder.get_workout_volume(template.id)
        status = "valid" if builder.is_workout_valid(template.id) else "incomplete"
        click.echo()
        click.echo(
            click.style(f"{template.name}", bold=True)
            + f"  {workout.total_exercises} exercises, ~{workout.estimated_duration} min, "
            f"{workout.completion_score}% complete ({status})"
        )
        if workout.muscle_groups:
            rows = [
                [m.muscle_group, str(m.direct_sets), str(m.indirect_sets), str(m.total_sets)]
                for m in workout.muscle_groups
            ]
            click.echo(format_table(["Muscle", "Direct", "Indirect", "Total"], rows))

    weekly = builder.get_weekly_volume_analysis()
    click.echo()
    click.echo(click.style("Weekly volume", bold=True))
    if weekly.weekly_volume:
        rows = [
            [v.muscle_group, str(v.total_sets), str(v.weekly_frequency), v.volume_load.value]
            for v in weekly.weekly_volume
        ]
        click.echo(format_table(["Muscle", "Sets", "Frequency", "Load"], rows))
    else:
        echo_info("No exercises selected")

    balance = weekly.training_balance
    click.echo()
    click.echo(
        f"Balance: {balance.compound_ratio}% compound, {balance.isolation_ratio}% isolation, "
        f"{balance.unilateral_ratio}% unilateral"
    )
    for missing in builder.get_missing_muscle_groups():
        echo_warning(
            f"{missing.workout_name} is missing: {', '.join(missing.missing_muscle_groups)}"
        )
