"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.
"""

from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ticketdesk.config import settings
from ticketdesk.db.models import Base
from ticketdesk.errors import DependencyError

logger = structlog.get_logger()

# echo=True in dev to see SQL queries.
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Session factory: each request gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_tables() -> None:
    """Create any missing tables (CREATE TABLE IF NOT EXISTS semantics).

    Used by `ticketdesk init-db` for quick local setups; production
    deployments run the Alembic migrations instead.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def storage_guard():
    """Report a lost database connection as DependencyError.

    IntegrityError is left alone: callers decide what a constraint
    violation means for them.
    """
    try:
        yield
    except (OperationalError, InterfaceError, OSError) as e:
        logger.error("db.unavailable", error=str(e))
        raise DependencyError("Database is unavailable.") from e
