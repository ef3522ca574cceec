"""
Database connection and session management for the portfolio engine
Handles PostgreSQL in production and SQLite for local runs and tests
"""

from typing import Generator, Optional
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from portfolio_engine.config import settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL

    SQLite engines get foreign key enforcement; in-memory SQLite shares a
    single connection so every session sees the same database.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log emitted SQL

    Returns:
        Engine: Configured engine
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        database_url,
        echo=echo,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,  # Verify connections before use
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        engine,
        class_=Session,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@lru_cache()
def get_engine() -> Engine:
    """Process-wide engine built from settings on first use"""
    return build_engine(settings.DATABASE_URL, echo=settings.DEBUG)


@lru_cache()
def get_session_factory() -> sessionmaker:
    """Process-wide session factory bound to get_engine()"""
    return build_session_factory(get_engine())


@contextmanager
def session_scope(session_factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Context manager for database operations

    Commits when the block exits cleanly, rolls back and re-raises otherwise.

    Usage:
        with session_scope() as db:
            db.execute(query)

    Yields:
        Session: Database session
    """
    factory = session_factory or get_session_factory()
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def verify_database_connection() -> bool:
    """
    Verify database connection is working

    Returns:
        bool: True if connection successful
    """
    from sqlalchemy import text

    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        print(f"Database connection failed: {e}")
        return False


def close_database_connections():
    """
    Close all database connections gracefully

    Called during worker shutdown
    """
    get_engine().dispose()
