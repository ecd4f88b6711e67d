"""
Database Session Management Module.

This module owns the connection pool. A `Database` handle is constructed
explicitly from `Settings`, initialized once when a process starts (API
lifespan, CLI command, Celery task run) and disposed once when it stops. There
is no module-level engine: every component that needs the store receives the
handle (or a session from it) by injection.

Key features:
- Bounded async connection pool with a fail-fast checkout timeout
- Per-statement timeout on PostgreSQL
- Scoped sessions: commit on success, rollback on error, always closed
- FastAPI dependencies for handle and session injection

Usage:
- In FastAPI route handlers, use the get_session dependency to obtain a session
- Example: `async def my_route(session: AsyncSession = Depends(get_session)):`
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from sports_predictions.core.config import Settings
from sports_predictions.core.logger import setup_logger
from sports_predictions.db import models  # noqa: F401  registers the tables on Base.metadata
from sports_predictions.db.base import Base

logger = setup_logger("sports_predictions.db.session")


def build_engine_kwargs(settings: Settings) -> Dict[str, Any]:
    """
    Translate pool and timeout settings into create_async_engine arguments.
    """
    kwargs: Dict[str, Any] = {"echo": settings.DEBUG}

    if settings.is_sqlite:
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
        return kwargs

    statement_timeout_s = settings.DB_STATEMENT_TIMEOUT_MS / 1000
    kwargs.update(
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_MIN,
        max_overflow=settings.DB_POOL_MAX - settings.DB_POOL_MIN,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_reset_on_return="rollback",
        connect_args={
            "command_timeout": statement_timeout_s,
            "server_settings": {"statement_timeout": str(settings.DB_STATEMENT_TIMEOUT_MS)},
        },
    )
    return kwargs


class Database:
    """Async engine plus session factory, with an explicit lifecycle."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not initialized. Call init() first.")
        return self._engine

    async def init(self) -> None:
        """Create the engine and session factory; calling it twice is a no-op."""
        if self._engine is not None:
            return

        self._engine = create_async_engine(
            self.settings.DATABASE_URL,
            **build_engine_kwargs(self.settings),
        )

        if self.settings.is_sqlite:
            # SQLite only enforces ON DELETE CASCADE with this pragma
            @event.listens_for(self._engine.sync_engine, "connect")
            def _enable_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self._sessionmaker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(
            f"Database engine initialized (pool {self.settings.DB_POOL_MIN}-{self.settings.DB_POOL_MAX})"
        )

    async def dispose(self) -> None:
        """Close every pooled connection."""
        if self._engine is not None:
            logger.info("Closing database connection pool")
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None

    async def create_all(self) -> None:
        """Create all tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Scoped session: commits when the block succeeds, rolls back on any
        exception, and is always closed.
        """
        if self._sessionmaker is None:
            raise RuntimeError("Database is not initialized. Call init() first.")

        session = self._sessionmaker()
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError, RuntimeError) as e:
            logger.error(f"Database health check failed: {str(e)}")
            return False


def get_database(request: Request) -> Database:
    """
    FastAPI dependency returning the process-wide Database handle created in
    the application lifespan.
    """
    return request.app.state.database


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a request-scoped database session.

    Yields:
        AsyncSession: committed when the request succeeds, rolled back otherwise.
    """
    async with get_database(request).session() as session:
        yield session
