"""Database connection management for DriverSync.

Provides synchronous database access using SQLAlchemy. SQLite is the
default for development; any SQLAlchemy URL works in production.

Usage:
    from driversync.db.connection import get_db_context, init_db

    init_db()  # Create tables
    with get_db_context() as db:
        db.query(Order).first()
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from driversync.db.models import Base


def get_database_url() -> str:
    """Get database URL from environment or use default SQLite.

    Precedence:
    1. DRIVERSYNC_DATABASE_URL
    2. DATABASE_URL
    3. sqlite:///./driversync.db
    """
    for name in ("DRIVERSYNC_DATABASE_URL", "DATABASE_URL"):
        database_url = os.environ.get(name, "").strip()
        if database_url:
            return database_url
    return "sqlite:///./driversync.db"


def create_db_engine(url: str) -> Engine:
    """Create an engine, enabling foreign keys and WAL for SQLite.

    Args:
        url: SQLAlchemy database URL.

    Returns:
        Configured Engine.
    """
    is_sqlite = url.startswith("sqlite")
    db_engine = create_engine(
        url,
        connect_args={"check_same_thread": False} if is_sqlite else {},
        echo=os.environ.get("SQL_ECHO", "").lower() == "true",
    )

    if is_sqlite:
        @event.listens_for(db_engine, "connect")
        def set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
            """Enable referential integrity and concurrent readers."""
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if ":memory:" not in url:
                cursor.execute("PRAGMA journal_mode=WAL;")
                cursor.execute("PRAGMA synchronous=NORMAL;")
            cursor.close()

    return db_engine


def create_session_factory(db_engine: Engine) -> sessionmaker[Session]:
    """Build a session factory bound to ``db_engine``."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


DATABASE_URL = get_database_url()
engine = create_db_engine(DATABASE_URL)
SessionLocal = create_session_factory(engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for request-scoped use with Depends().

    Yields:
        Session: SQLAlchemy session that will be closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for database sessions outside of FastAPI.

    Commits on clean exit, rolls back on error.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(db_engine: Engine | None = None) -> None:
    """Create all tables on ``db_engine`` (defaults to the module engine)."""
    Base.metadata.create_all(bind=db_engine or engine)
