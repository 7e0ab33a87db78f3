"""
Database connection manager.

This module provides:
- SQLAlchemy engine creation with connection pooling
- Session management via context managers
- Schema creation for cold starts (no separate migration step in Lambda)
- Connection health checks

The engine is process-wide: a warm Lambda container reuses it across
invocations, a cold one creates it during initialization.
"""

import logging
from contextlib import contextmanager
from typing import Optional, Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import Pool, StaticPool

from database_orm.models import Base

logger = logging.getLogger(__name__)

# Global engine and session factory
_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


@event.listens_for(Pool, "connect")
def _set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign keys for SQLite connections."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def describe_url(database_url: str) -> str:
    """Return a log-safe description of a database URL (no credentials)."""
    try:
        url = make_url(database_url)
    except Exception:
        return "<unparseable database url>"
    if url.host:
        return f"{url.get_backend_name()}://{url.host}{':' + str(url.port) if url.port else ''}/{url.database or ''}"
    return f"{url.get_backend_name()}:{url.database or 'memory'}"


def init_connection(database_url: str, echo: bool = False) -> Engine:
    """
    Initialize database connection and create engine.

    This should be called once per process, from the initialization
    sequence. Repeated calls return the existing engine.

    Args:
        database_url: SQLAlchemy database URL
        echo: Whether to echo SQL statements (default: False)

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine, _SessionFactory

    if _engine is not None:
        logger.warning("Engine already initialized, returning existing engine")
        return _engine

    if not database_url:
        raise ValueError("database_url is required")

    engine_kwargs = {
        "echo": echo,
        "pool_pre_ping": True,  # Verify connections before using them
    }

    url = make_url(database_url)
    if url.get_backend_name() == "postgresql":
        # Small pool: one Lambda container handles one request at a time
        engine_kwargs.update({
            "pool_size": 2,
            "max_overflow": 3,
            "pool_recycle": 300,
        })
    elif url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # In-memory SQLite: share one connection across threads
        engine_kwargs.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })

    _engine = create_engine(database_url, **engine_kwargs)

    _SessionFactory = sessionmaker(
        bind=_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False  # Don't expire objects after commit
    )

    logger.info(f"Database engine initialized: {describe_url(database_url)}")
    return _engine


def get_engine() -> Engine:
    """
    Get the global SQLAlchemy engine.

    Raises:
        RuntimeError: If engine not initialized (call init_connection first)
    """
    if _engine is None:
        raise RuntimeError(
            "Database engine not initialized. Call init_connection() first."
        )
    return _engine


def is_initialized() -> bool:
    return _engine is not None


def create_schema() -> None:
    """Create any missing tables. Existing tables are left untouched."""
    Base.metadata.create_all(get_engine())
    logger.info("Database schema ensured")


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Provides automatic session lifecycle management:
    - Creates session
    - Commits on success
    - Rolls back on error
    - Closes session in all cases

    Example:
        >>> with get_session() as session:
        ...     admin = session.scalar(select(AdminUser).filter_by(username="ops"))

    Raises:
        RuntimeError: If session factory not initialized
    """
    if _SessionFactory is None:
        raise RuntimeError(
            "Session factory not initialized. Call init_connection() first."
        )

    session = _SessionFactory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def close_connection():
    """
    Close all database connections and dispose of the engine.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None
        _SessionFactory = None
        logger.info("Database connections closed")


def health_check() -> dict:
    """
    Check database connection health.

    Returns:
        Dictionary with health status information

    Example:
        >>> health_check()
        {'healthy': True, 'database': 'postgresql'}
    """
    if _engine is None:
        return {
            "healthy": False,
            "error": "Engine not initialized"
        }

    try:
        with get_session() as session:
            session.execute(text("SELECT 1"))
        return {
            "healthy": True,
            "database": _engine.dialect.name,
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "healthy": False,
            "error": "Database unavailable"
        }
