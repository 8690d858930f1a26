"""
Exam Portal - Database Infrastructure
Async SQLAlchemy 2.0 with connection pooling
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from examportal.core.config import Settings
from examportal.core.exceptions import TransientStorageError

logger = structlog.get_logger(__name__)

# Failures that mean "the store is unreachable right now", not "the query is wrong".
TRANSIENT_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError, OSError)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""
    pass


@asynccontextmanager
async def storage_errors(operation: str) -> AsyncGenerator[None, None]:
    """
    Translate connectivity failures into TransientStorageError.

    Args:
        operation: Short name of the repository call, for the log
    """
    try:
        yield
    except TRANSIENT_ERRORS as e:
        logger.error(
            "Storage operation failed",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise TransientStorageError(operation) from e


class DatabaseManager:
    """
    Database connection manager with async support.

    Handles connection pooling, session management, and health checks.
    """

    def __init__(self, settings: Settings):
        """
        Initialize database manager.

        Args:
            settings: Application settings
        """
        self._settings = settings
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> Optional[AsyncEngine]:
        return self._engine

    def _engine_options(self) -> dict:
        options = {"echo": self._settings.database_echo, "pool_pre_ping": True}
        # SQLite (local development) uses a single-connection pool without sizing.
        if not self._settings.database_url.startswith("sqlite"):
            options.update(
                pool_size=self._settings.database_pool_size,
                max_overflow=self._settings.database_max_overflow,
                pool_timeout=self._settings.database_pool_timeout,
            )
        return options

    async def connect(self) -> None:
        """Initialize database connection pool."""
        logger.info(
            "Connecting to database",
            host=self._settings.database_url.split("@")[-1].split("/")[0],
        )

        self._engine = create_async_engine(
            self._settings.database_url,
            **self._engine_options(),
        )

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        async with self._engine.begin() as conn:
            if self._settings.database_create_all:
                # Register ORM tables on Base.metadata before creating them.
                from examportal.infrastructure import models  # noqa: F401

                await conn.run_sync(Base.metadata.create_all)
            await conn.execute(text("SELECT 1"))

        logger.info("Database connection established")

    async def disconnect(self) -> None:
        """Close database connection pool."""
        if self._engine:
            await self._engine.dispose()
            logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a database session.

        Yields:
            AsyncSession for database operations
        """
        if self._session_factory is None:
            raise TransientStorageError("Database not connected")

        session = self._session_factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> dict:
        """
        Check database health.

        Returns:
            Health status dictionary
        """
        try:
            async with self.session() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            return {"status": "healthy"}
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": type(e).__name__,
            }
