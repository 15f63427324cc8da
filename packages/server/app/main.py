"""
Task Tracker API Server

Entry point for the FastAPI application.
"""

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1 import router as api_v1_router
from app.core.config import get_settings
from app.core.database import check_db_connection, engine, get_session
from app.core.errors import FieldError, TaskTrackerError, ValidationError
from app.core.logging_setup import configure_logging
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

settings = get_settings()
configure_logging(settings.log_level, settings.log_format)
log = structlog.get_logger()


def _field_name(loc) -> str:
    # ("body", "title") -> "title"; ("query", "status") -> "status"
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


def register_exception_handlers(app: FastAPI) -> None:
    """Map service-layer errors and request validation failures to JSON responses."""

    @app.exception_handler(TaskTrackerError)
    async def task_tracker_error_handler(request: Request, exc: TaskTrackerError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        err = ValidationError(
            "Validation failed",
            errors=[FieldError(_field_name(e["loc"]), e["msg"]) for e in exc.errors()],
        )
        log.info("request.invalid", path=request.url.path, fields=err.fields)
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        # Full detail goes to the log; the caller gets a generic message.
        log.error("db.error", method=request.method, path=request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An error occurred while processing your request.",
                    "status": 500,
                }
            },
        )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Task Tracker",
        description="Multi-user task tracking with role-based access control.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware (order matters, outermost first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_exception_handlers(app)

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check(session: AsyncSession = Depends(get_session)):
        """Readiness check endpoint: verifies the database answers."""
        try:
            await check_db_connection(session)
        except SQLAlchemyError as exc:
            log.warning("db.unavailable", error=str(exc))
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        log.info("Task Tracker starting", debug=settings.debug)

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("Task Tracker shutting down")
        await engine.dispose()

    return app


app = create_app()
