"""Database session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

from src.ticketing.core.db.engine import get_engine
from src.ticketing.core.exceptions import InfrastructureError, TicketingError
from src.ticketing.core.logging import get_logger

logger = get_logger(__name__)


def get_session_factory(engine: AsyncEngine | None = None) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to the given (or default) engine."""
    return async_sessionmaker(
        bind=engine or get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def get_session(engine: AsyncEngine | None = None) -> AsyncGenerator[AsyncSession]:
    """Create a database session.

    Transaction control (commit/rollback) belongs to the service layer; the
    session is only closed here.
    """
    session_factory = get_session_factory(engine)
    async with session_factory() as session:
        yield session


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all tables (development and tests only)."""
    # Import models so every table is registered on the metadata
    import src.ticketing.models  # noqa: F401

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


@asynccontextmanager
async def transaction(session: AsyncSession, operation: str) -> AsyncGenerator[AsyncSession]:
    """Commit the work done inside the block, or roll it back.

    Domain failures (TicketingError) are re-raised unchanged after rollback.
    Anything else (database or driver failures) is logged and surfaced as
    InfrastructureError.
    """
    try:
        yield session
        await session.commit()
    except TicketingError:
        await session.rollback()
        raise
    except Exception as e:
        await session.rollback()
        logger.error("Database operation failed", operation=operation, error=str(e))
        raise InfrastructureError(f"Database operation '{operation}' failed") from e
