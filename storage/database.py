"""
Async SQLAlchemy connection management.
Handles engine lifecycle, schema creation and health checks for the relational store.
"""

from typing import Dict, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from storage.exceptions import StorageError
from storage.tables import Base

logger = structlog.get_logger(__name__)


class DatabaseManager:
    """
    Async database manager for the books and users tables.
    Owns the engine (and its connection pool) for the lifetime of the process.
    """

    def __init__(self, database_url: str, echo: bool = False):
        """
        Initialize database manager.

        Args:
            database_url: SQLAlchemy async connection URL
            echo: Log every emitted SQL statement
        """
        self.database_url = database_url
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None

    @property
    def backend(self) -> str:
        """Dialect name, safe to log (no credentials)."""
        return make_url(self.database_url).get_backend_name()

    async def connect(self) -> None:
        """Create the engine, verify connectivity and create missing tables."""
        try:
            self.engine = create_async_engine(
                self.database_url,
                echo=self.echo,
                pool_pre_ping=True,
            )
            self._session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            async with self.engine.begin() as connection:
                await connection.execute(text("SELECT 1"))
                await connection.run_sync(Base.metadata.create_all)

            logger.info("Successfully connected to database", backend=self.backend)

        except SQLAlchemyError as e:
            logger.error("Failed to connect to database", backend=self.backend, error=str(e))
            raise StorageError("unable to connect to the database") from e

    async def disconnect(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None
            logger.info("Disconnected from database")

    def session(self) -> AsyncSession:
        """Open a new session; use it as an async context manager."""
        if self._session_factory is None:
            raise StorageError("database is not connected")
        return self._session_factory()

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        if self.engine is None:
            return {"status": "unhealthy", "error": "not connected"}
        try:
            async with self.engine.connect() as connection:
                await connection.execute(text("SELECT 1"))
            return {"status": "healthy", "backend": self.backend}
        except SQLAlchemyError as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}
