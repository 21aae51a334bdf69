"""FastAPI application for the brigade web API."""

from contextlib import asynccontextmanager
from pathlib import Path
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.middleware.base import BaseHTTPMiddleware

from .. import __version__
from ..config import get_config
from ..db.engine import get_db_path, init_db
from .routers import action_plans, checklists, duels, profiles, templates, webhooks

# Template path for the HTML report page
TEMPLATES_DIR = Path(__file__).parent / "templates"

logger = structlog.get_logger()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with a request id bound to the context."""

    async def dispatch(self, request: Request, call_next):
        structlog.contextvars.clear_contextvars()
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("request_failed", error=str(exc))
            raise

        logger.info("request_completed", status_code=response.status_code)
        response.headers["X-Request-ID"] = request_id
        return response


def create_app(db_path: Path | None = None, evidence_dir: Path | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    db_path = get_db_path(db_path)
    evidence_dir = evidence_dir or get_config().evidence_dir
    evidence_dir.mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create the schema on startup."""
        await init_db(db_path)
        yield

    app = FastAPI(
        title="brigade",
        description="Restaurant checklists with gamification and action plans",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    # Uploaded photo evidence
    app.mount("/evidence", StaticFiles(directory=evidence_dir), name="evidence")

    app.state.templates = Jinja2Templates(directory=TEMPLATES_DIR)
    app.state.db_path = db_path
    app.state.evidence_dir = evidence_dir

    app.include_router(templates.router)
    app.include_router(checklists.router)
    app.include_router(action_plans.router)
    app.include_router(profiles.router)
    app.include_router(duels.router)
    app.include_router(webhooks.router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
