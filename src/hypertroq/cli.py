"""CLI entry point for hypertroq."""

import click

from . import __version__
from .commands import chat, config, generate, init, knowledge, profile, serve, users, volume
from .config import load_app_config
from .logging_config import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="hypertroq")
def main():
    """hypertroq: AI hypertrophy coach.

    Plan set volume, build a knowledge base of training research and chat
    with a coach that grounds its advice in it.

    Example usage:

        # Initialize the project
        hypertroq init

        # Add research to the knowledge base
        hypertroq knowledge upload hypertrophy-review.pdf --category hypertrophy_principles

        # Create a user and ask the coach
        hypertroq users create me@example.com
        hypertroq chat 1 "How many sets per week for chest?"

        # Generate a program
        hypertroq generate 1 "4 day upper/lower split for a beginner"
    """
    app_config = load_app_config()
    configure_logging(app_config.log_level, app_config.app_env)


main.add_command(init)
main.add_command(knowledge)
main.add_command(volume)
main.add_command(chat)
main.add_command(generate)
main.add_command(profile)
main.add_command(users)
main.add_command(config)
main.add_command(serve)


def run():
    """Run the CLI."""
    main()


if __name__ == "__main__":
    run()
