"""FastAPI application for the hypertroq JSON API."""

from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import load_app_config
from ..db.engine import get_db_path, init_db, seed_exercises, seed_programs
from ..errors import HypertroqError
from ..logging_config import configure_logging
from ..services.tier_limits import TierService
from .job_tracker import JobTracker
from .routers import chat, knowledge, programs, subscription

logger = structlog.get_logger(__name__)


def create_app(db_path: Path | None = None, llm=None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Database file; defaults to the configured one.
        llm: LLM client; a GeminiClient is created on first use when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler - runs on startup and shutdown."""
        app_config = load_app_config()
        configure_logging(app_config.log_level, app_config.app_env)
        path = app.state.db_path or get_db_path()
        if not path.exists():
            await init_db(path)
            await seed_exercises(path)
            await seed_programs(path)
            logger.info("database_initialized", path=str(path))
        yield

    app = FastAPI(
        title="hypertroq",
        description="AI hypertrophy coach API",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.db_path = db_path
    app.state.llm = llm
    app.state.translator = None
    app.state.tier_service = TierService(db_path)
    app.state.job_tracker = JobTracker()

    @app.exception_handler(HypertroqError)
    async def handle_app_error(request: Request, exc: HypertroqError):
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.message)
        else:
            logger.info("request_rejected", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(chat.router)
    app.include_router(knowledge.router)
    app.include_router(programs.router)
    app.include_router(subscription.router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
