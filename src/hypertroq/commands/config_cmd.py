"""Configuration commands."""

from dataclasses import fields

import click

from ..config import AIConfiguration, load_app_config, reset_config_cache
from ..db import AIConfigRepository, get_db_path
from .base import async_command, echo_error, echo_success, ensure_initialized


def coerce_setting(name: str, value: str):
    """Convert a command-line value to the type of an AIConfiguration field."""
    default = getattr(AIConfiguration(), name)
    if isinstance(default, bool):
        lowered = value.lower()
        if lowered in ("true", "yes", "1", "on"):
            return True
        if lowered in ("false", "no", "0", "off"):
            return False
        raise click.BadParameter(f"{name} expects true or false, got '{value}'")
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return value


@click.group(name="config")
def config():
    """Show and tune configuration."""


@config.command()
@click.pass_context
@async_command
async def show(ctx):
    """Show application settings and the stored AI configuration."""
    reset_config_cache()
    app_config = load_app_config()

    click.echo()
    click.echo(click.style("Application", bold=True))
    click.echo(f"  data_dir:            {app_config.data_dir}")
    click.echo(f"  database:            {app_config.db_path}")
    click.echo(f"  embedding_model:     {app_config.embedding_model}")
    click.echo(f"  log_level:           {app_config.log_level}")
    click.echo(f"  app_env:             {app_config.app_env}")
    key_state = "set" if app_config.get_api_key() else "NOT SET"
    click.echo(f"  {app_config.gemini_api_key_env}: {key_state}")

    ensure_initialized(ctx)
    ai_config = await AIConfigRepository(get_db_path()).get()
    click.echo()
    click.echo(click.style("AI configuration", bold=True))
    for name, value in ai_config.to_dict().items():
        if isinstance(value, str) and len(value) > 60:
            value = value[:60] + "..."
        click.echo(f"  {name}: {value}")


@config.command(name="set")
@click.argument("name")
@click.argument("value")
@click.pass_context
@async_command
async def set_value(ctx, name: str, value: str):
    """Set an AI configuration value (e.g. temperature 0.5)."""
    ensure_initialized(ctx)
    known = {f.name for f in fields(AIConfiguration)}
    if name not in known:
        echo_error(f"Unknown setting '{name}'. Known: {', '.join(sorted(known))}")
        ctx.exit(1)

    try:
        coerced = coerce_setting(name, value)
    except ValueError:
        echo_error(f"Invalid value for {name}: {value}")
        ctx.exit(1)

    repo = AIConfigRepository(get_db_path())
    ai_config = await repo.get()
    setattr(ai_config, name, coerced)
    await repo.save(ai_config)
    echo_success(f"{name} = {coerced}")
