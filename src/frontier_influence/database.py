"""Database connection and session management.

This module provides engine creation, session factories and small helpers used
by the services, the CLI and the test-suite.
"""

from collections.abc import Callable
from typing import Any

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from frontier_influence.config import Settings, get_settings
from frontier_influence.models import Base


def _sqlite_pragmas(busy_timeout_ms: int) -> Callable[[Any, Any], None]:
    def _configure_sqlite_wal(
        dbapi_connection: Any, connection_record: Any  # noqa: ARG001
    ) -> None:
        """Configure SQLite to use WAL mode for better concurrency.

        Note:
            WAL mode lets readers proceed while a writer holds the lock, and the
            busy timeout makes concurrent writers queue instead of failing.
        """
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        cursor.close()

    return _configure_sqlite_wal


def create_db_engine(settings: Settings | None = None) -> Engine:
    """Create and configure the database engine.

    Args:
        settings: Settings to read the URL and pool options from. Defaults to
            the cached application settings.

    Returns:
        Engine: Configured SQLAlchemy engine
    """
    settings = settings or get_settings()

    if settings.DATABASE_URL.startswith("sqlite"):
        # SQLite engine: simpler pooling, enable SQLite pragmas on connect
        engine = create_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            pool_pre_ping=True,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.SQLITE_BUSY_TIMEOUT_MS / 1000,
            },
        )
        event.listen(engine, "connect", _sqlite_pragmas(settings.SQLITE_BUSY_TIMEOUT_MS))
    else:
        # Non-SQLite (e.g., PostgreSQL): honor pool settings for production use
        engine = create_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            pool_pre_ping=True,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_recycle=settings.DATABASE_POOL_RECYCLE,
            pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        )

    return engine


# Global engine and session factory for the CLI entrypoints
_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    """Get or create the global database engine."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Build a session factory bound to ``engine``."""
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the global session factory."""
    global _SessionLocal  # noqa: PLW0603
    if _SessionLocal is None:
        _SessionLocal = create_session_factory(get_engine())
    return _SessionLocal


def init_db(engine: Engine | None = None) -> None:
    """Create all tables directly.

    Note:
        This creates tables without migrations. For production,
        use ``alembic upgrade head`` instead.
    """
    Base.metadata.create_all(bind=engine or get_engine())


def check_database_health(engine: Engine | None = None) -> bool:
    """Return True when the database answers a trivial query."""
    try:
        with (engine or get_engine()).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False


def get_table_names(engine: Engine | None = None) -> list[str]:
    """Get list of all table names in the database."""
    inspector = inspect(engine or get_engine())
    return inspector.get_table_names()
