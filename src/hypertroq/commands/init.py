"""Initialize project command."""

import click

from ..config import load_app_config
from ..db import get_db_path, init_db, seed_exercises, seed_programs
from .base import async_command, echo_info, echo_success


@click.command()
@async_command
async def init():
    """Initialize the hypertroq database.

    Creates the data directory and the SQLite schema, then seeds the
    approved exercise library and the training program templates.
    """
    data_dir = load_app_config().data_dir
    echo_info(f"Initializing hypertroq in {data_dir}")

    db_path = get_db_path(data_dir)
    await init_db(db_path)
    echo_success("Database initialized")

    count = await seed_exercises(db_path)
    echo_success(f"Exercise library populated ({count} exercises)")

    count = await seed_programs(db_path)
    echo_success(f"Program templates populated ({count} programs)")

    click.echo()
    click.echo("hypertroq is ready to use!")
    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Create a user and fill in the coaching profile:")
    click.echo("     hypertroq users create you@example.com")
    click.echo("     hypertroq profile 1")
    click.echo()
    click.echo("  2. Add knowledge and start chatting:")
    click.echo("     hypertroq knowledge upload research.pdf")
    click.echo('     hypertroq chat 1 "How many sets for chest per week?"')
