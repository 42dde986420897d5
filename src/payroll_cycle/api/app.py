"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_cycle.api.routes import health_router, payroll_entries_router, payroll_runs_router
from payroll_cycle.config import Settings, get_settings
from payroll_cycle.database import dispose_db, init_db
from payroll_cycle.exceptions import (
    AlreadyPaidError,
    DuplicateEntryError,
    InvalidInputError,
    InvalidStatusError,
    PayrollError,
    RunNotFoundError,
    StorageError,
    WorkerNotFoundError,
)
from payroll_cycle.scheduler import create_payroll_scheduler

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[PayrollError], int] = {
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
    InvalidStatusError: status.HTTP_400_BAD_REQUEST,
    WorkerNotFoundError: status.HTTP_404_NOT_FOUND,
    RunNotFoundError: status.HTTP_404_NOT_FOUND,
    AlreadyPaidError: status.HTTP_409_CONFLICT,
    DuplicateEntryError: status.HTTP_409_CONFLICT,
    StorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(exc: PayrollError) -> int:
    """HTTP status for a payroll error."""
    for error_type, code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = app_settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        # Startup
        _, session_factory = init_db()
        scheduler = None
        if app_settings.scheduler_enabled:
            scheduler = create_payroll_scheduler(app_settings, session_factory)
            scheduler.start()
        app.state.scheduler = scheduler
        yield
        # Shutdown
        if scheduler is not None:
            await scheduler.stop()
        await dispose_db()

    app = FastAPI(
        title="Payroll Cycle API",
        description="Payroll entries, run status and scheduled run generation",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.scheduler = None

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollError)
    async def payroll_exception_handler(
        request: Request, exc: PayrollError
    ) -> JSONResponse:
        """Map the payroll error taxonomy to HTTP responses."""
        code = status_code_for(exc)
        if code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=code,
            content={"detail": str(exc), "code": exc.code},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Reject malformed requests with the INVALID_INPUT code."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc.errors()), "code": InvalidInputError.code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(payroll_runs_router, prefix="/api/v1")
    app.include_router(payroll_entries_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
