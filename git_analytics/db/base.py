"""Database configuration and base setup for Git Analytics."""

import logging
import os
from typing import Callable, Generator, Optional

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# Default to a local SQLite database when DATABASE_URL is not provided.
DEFAULT_DATABASE_URL = "sqlite:///./git_analytics.db"


class StoreConnectionError(Exception):
    """Raised when the relational store cannot be reached.

    Fatal for a pass: it is raised before any transaction is opened.
    """


def _ensure_sync_driver(url: URL) -> URL:
    """Force a synchronous driver for Alembic and the ORM engine."""

    if url.drivername.startswith("postgresql+"):
        # Normalize any async driver variants to psycopg (sync)
        if any(token in url.drivername for token in ("async", "aiopg")):
            url = url.set(drivername="postgresql+psycopg")
    elif url.drivername.startswith("sqlite+"):
        if "aiosqlite" in url.drivername:
            url = url.set(drivername="sqlite")

    return url


def get_database_url(raw_url: Optional[str] = None) -> str:
    """Return a database URL with a guaranteed synchronous driver."""

    if raw_url is None:
        from ..config import get_settings

        raw_url = os.getenv("DATABASE_URL") or get_settings().database_url

    url = make_url(raw_url or DEFAULT_DATABASE_URL)
    # str(url) would mask the password with *** which breaks authentication
    return _ensure_sync_driver(url).render_as_string(hide_password=False)


def enable_sqlite_savepoints(engine: Engine) -> Engine:
    """Let SQLAlchemy, not pysqlite, open SQLite transactions.

    pysqlite defers BEGIN until the first DML statement, so a SAVEPOINT issued
    earlier starts the transaction itself and its RELEASE commits it. Emitting
    BEGIN ourselves keeps every savepoint nested inside the pass transaction.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


_engine: Optional[Engine] = None


def get_engine() -> Engine:
    """
    Create and cache the database engine.

    Lazy so that DATABASE_URL is read at runtime, not at import time.
    """
    global _engine
    if _engine is not None:
        return _engine

    database_url = get_database_url()

    if database_url.startswith("sqlite"):
        _engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        enable_sqlite_savepoints(_engine)
    else:
        _engine = create_engine(
            database_url,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            pool_recycle=3600,
        )

    return _engine


def get_session_local() -> sessionmaker:
    """Get a sessionmaker bound to the current engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and close it afterwards."""
    session_local = get_session_local()
    db = session_local()
    try:
        yield db
    finally:
        db.close()


def open_session(
    session_factory: Optional[Callable[[], Session]] = None,
) -> Session:
    """Open a session and verify the store is reachable.

    Raises:
        StoreConnectionError: if the connectivity probe fails.
    """
    factory = session_factory or get_session_local()
    try:
        session = factory()
    except SQLAlchemyError as e:
        raise StoreConnectionError(f"Error connecting to database: {e}") from e

    try:
        session.execute(text("SELECT 1"))
        # The probe must not leave a transaction open for dry runs.
        session.rollback()
    except SQLAlchemyError as e:
        session.close()
        raise StoreConnectionError(f"Error connecting to database: {e}") from e

    return session


def init_database() -> None:
    """Initialize the database with all tables."""
    # Import all models to ensure they're registered with Base
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
    logger.info("Database initialized")


def drop_database() -> None:
    """Drop all database tables. Use with caution!"""
    from . import models  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())
    logger.info("Database tables dropped")
