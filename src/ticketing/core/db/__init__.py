"""Database utilities - engine and session."""

from src.ticketing.core.db.engine import dispose_engine, get_engine
from src.ticketing.core.db.session import (
    get_session,
    get_session_factory,
    init_db,
    transaction,
)

__all__ = [
    # Engine
    "dispose_engine",
    "get_engine",
    # Session
    "get_session",
    "get_session_factory",
    "init_db",
    "transaction",
]
