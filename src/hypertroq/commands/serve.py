"""API server command."""

import click

from ..config import load_app_config
from .base import echo_warning, ensure_initialized


@click.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
@click.option("--port", "-p", default=8000, type=int, help="Port to bind to (default: 8000)")
@click.option("--reload", is_flag=True, help="Restart on code changes (development only)")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool):
    """Start the JSON API.

    Requests identify the caller with an X-User-Id header. Interactive
    documentation is served at /docs.

    Examples:

        hypertroq serve

        hypertroq serve --host 0.0.0.0 --port 9000

        hypertroq serve --reload
    """
    ensure_initialized(ctx)
    app_config = load_app_config()

    import uvicorn

    from ..web import create_app

    if not app_config.get_api_key():
        echo_warning(
            f"{app_config.gemini_api_key_env} is not set; chat, generation and ingestion will fail"
        )

    click.echo(click.style("hypertroq API", fg="green", bold=True))
    click.echo(f"  Database: {app_config.db_path}")
    click.echo(f"  API:      http://{host}:{port}")
    click.echo(f"  Docs:     http://{host}:{port}/docs")
    click.echo("Press Ctrl+C to stop.")

    uvicorn.run(
        "hypertroq.web:create_app" if reload else create_app(),
        host=host,
        port=port,
        reload=reload,
        factory=reload,
        log_level=app_config.log_level.lower(),
    )
