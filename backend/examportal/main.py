"""
Exam Portal - FastAPI Application Factory
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from examportal.core.config import Settings, get_settings
from examportal.core.logging import setup_logging
from examportal.infrastructure.database import DatabaseManager
from examportal.interfaces.api.v1 import api_router
from examportal.interfaces.middleware.error_handler import (
    ErrorHandlerMiddleware,
    register_exception_handlers,
)
from examportal.interfaces.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    settings: Settings = app.state.settings

    setup_logging(settings.log_level, settings.log_format)

    logger.info("Starting Exam Portal", version=settings.app_version)

    db_manager: DatabaseManager = app.state.db
    await db_manager.connect()

    logger.info("All services initialized successfully")

    yield

    logger.info("Shutting down Exam Portal")
    await db_manager.disconnect()
    logger.info("Shutdown complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Application factory pattern for FastAPI.

    Args:
        settings: Optional settings override for testing

    Returns:
        Configured FastAPI application instance
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Randomized multiple choice exams with scored history",
        version=settings.app_version,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.state.settings = settings
    # Connected in lifespan; created here so dependencies can always resolve it.
    app.state.db = DatabaseManager(settings)

    register_exception_handlers(app)

    # Add middleware (order matters - last added is first executed)

    # Error handler (innermost, sees the request ID set below)
    app.add_middleware(ErrorHandlerMiddleware)

    # Request ID and security headers
    app.add_middleware(SecurityHeadersMiddleware, settings=settings)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.include_router(api_router, prefix="/api/v1")

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "examportal.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
    )


if __name__ == "__main__":
    run()
