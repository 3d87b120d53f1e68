"""
FastAPI application factory and main app configuration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .adapters.db.mongo.database import close_database, init_database
from .api.routers import chart, consultations, health
from .api.utils.responses import fail
from .core.config import get_settings
from .core.exceptions import DatabaseError, DentalSyncException
from .core.structured_logger import configure_logging
from .domain.errors import DomainError
from .middleware.request_id_middleware import RequestIDMiddleware

logger = logging.getLogger(__name__)

# Domain error code -> HTTP status; unlisted codes map to 400
DOMAIN_ERROR_STATUS = {
    "CONSULTATION_NOT_FOUND": 404,
    "CONSULTATION_ALREADY_COMPLETED": 409,
    "INVALID_TOOTH_NUMBER": 422,
    "INVALID_SECTION_PAYLOAD": 422,
    "READ_ONLY_SECTION": 422,
    "LOW_CONFIDENCE_EXTRACTION": 422,
    "MISSING_PRECONDITION": 400,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    configure_logging(settings.logging.level, settings.logging.format)
    logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.app_env})")

    await init_database(settings.database)
    try:
        yield
    finally:
        close_database()
        logger.info(f"{settings.app_name} stopped")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Dental clinical record reconciliation service",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health.router)
    app.include_router(chart.router)
    app.include_router(consultations.router)

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        status_code = DOMAIN_ERROR_STATUS.get(exc.error_code or "", 400)
        logger.warning(f"DomainError: {exc.error_code} ({status_code}) {exc.message}")
        return JSONResponse(
            status_code=status_code,
            content=fail(request, exc.error_code or "DOMAIN_ERROR", exc.message, exc.details).model_dump(),
        )

    @app.exception_handler(ValueError)
    async def validation_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=422,
            content=fail(request, "VALIDATION_ERROR", str(exc)).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def pydantic_error_handler(request: Request, exc: RequestValidationError):
        error_messages = []
        for error in exc.errors():
            loc = " -> ".join(str(x) for x in error.get("loc", []))
            error_messages.append(f"{loc}: {error.get('msg', 'Validation error')}")
        logger.warning(f"ValidationError on {request.method} {request.url.path}: {error_messages}")
        return JSONResponse(
            status_code=422,
            content=fail(
                request, "INVALID_INPUT", f"Input validation failed: {'; '.join(error_messages)}"
            ).model_dump(),
        )

    @app.exception_handler(DentalSyncException)
    async def infrastructure_error_handler(request: Request, exc: DentalSyncException):
        status_code = 503 if isinstance(exc, DatabaseError) else 500
        logger.error(f"{exc.error_code}: {exc.message}")
        return JSONResponse(
            status_code=status_code,
            content=fail(request, exc.error_code or "INTERNAL_ERROR", exc.message).model_dump(),
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error: {type(exc).__name__}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=fail(
                request, "INTERNAL_ERROR", "An unexpected error has occurred. Please try again later."
            ).model_dump(),
        )

    return app


# Create the app instance
app = create_app()


# Root endpoint
@app.get("/", tags=["health"])
async def root():
    """Root endpoint with API information."""
    settings = get_settings()
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "docs": "/docs",
    }
