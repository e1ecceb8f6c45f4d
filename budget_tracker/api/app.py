"""
HTTP Application

FastAPI app exposing the budget and expense collections.

Error mapping:
- AuthenticationError       -> 401
- ConflictError             -> 409
- BackendUnavailableError   -> 503 (writes: outcome unknown, do not assume)
- anything else             -> 500 {"error": "Internal server error"}

"Not found" never arrives here as an exception; the routes turn an
absent record into a 404 themselves.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from budget_tracker import __version__
from budget_tracker.api.routes import build_record_router
from budget_tracker.audit import configure_logging
from budget_tracker.auth import AuthenticationError
from budget_tracker.config import AppSettings, get_settings
from budget_tracker.models.records import BudgetPayload, ExpensePayload
from budget_tracker.orchestrator import AppComponents, create_app_components
from budget_tracker.services.storage import BackendUnavailableError, ConflictError


logger = structlog.get_logger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_error_handlers(app: FastAPI) -> None:
    """Map storage and identity errors onto HTTP responses."""

    @app.exception_handler(AuthenticationError)
    async def handle_unauthorized(request: Request, exc: AuthenticationError):
        return _error(
            status.HTTP_401_UNAUTHORIZED,
            "Unauthorized - Invalid or missing token",
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(BackendUnavailableError)
    async def handle_unavailable(request: Request, exc: BackendUnavailableError):
        logger.error("storage_unavailable", path=request.url.path, error=str(exc))
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "Storage temporarily unavailable")

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.error(
            "request_failed",
            method=request.method,
            path=request.url.path,
            exc_info=exc,
        )
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app(
    components: Optional[AppComponents] = None,
    app_settings: Optional[AppSettings] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        components: Pre-built stores and flows. When None they are built
            from settings at startup, and closed at shutdown.
        app_settings: Application settings (defaults to get_settings().app)
    """
    app_settings = app_settings or get_settings().app
    configure_logging(debug=app_settings.debug_mode)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owns_components = app.state.components is None
        if owns_components:
            app.state.components = create_app_components(
                use_in_memory_db=app_settings.use_in_memory_db,
            )
        logger.info(
            "app_started",
            environment=app_settings.app_environment,
            in_memory=app_settings.use_in_memory_db,
        )
        try:
            yield
        finally:
            if owns_components:
                await app.state.components.close()
                app.state.components = None

    app = FastAPI(
        title="Budget Tracker API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.app_settings = app_settings
    app.state.components = components

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(build_record_router("budgets", "budget", BudgetPayload))
    app.include_router(build_record_router("expenses", "expense", ExpensePayload))

    return app
