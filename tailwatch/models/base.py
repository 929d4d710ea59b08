"""
SQLAlchemy base configuration and session management.

Uses SQLAlchemy 2.0 style with type hints and declarative base.
Designed to be portable between SQLite (dev) and PostgreSQL (prod).

The database is optional: without CACHE_DATABASE_URL there is no engine
and SessionLocal is None, which the cache treats as "no cache available".
"""

from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from tailwatch.config import config


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _set_sqlite_pragma(dbapi_connection, connection_record):
    """
    Configure SQLite for concurrent request handling.

    WAL mode lets readers proceed while a refresh is writing.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA journal_mode=WAL')
    cursor.execute('PRAGMA synchronous=NORMAL')
    cursor.close()


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine with settings appropriate for the database type."""
    engine_kwargs = {'echo': echo}

    if url.startswith('sqlite'):
        engine_kwargs['connect_args'] = {'check_same_thread': False}

    new_engine = create_engine(url, **engine_kwargs)

    if url.startswith('sqlite') and ':memory:' not in url:
        event.listen(new_engine, 'connect', _set_sqlite_pragma)

    return new_engine


def build_session_factory(bind: Engine) -> sessionmaker:
    """Session factory bound to the given engine."""
    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,  # Avoid lazy loading issues
    )


engine: Optional[Engine] = None
SessionLocal: Optional[sessionmaker] = None

if config.database.is_configured:
    engine = build_engine(config.database.url, echo=config.debug)
    SessionLocal = build_session_factory(engine)


def init_db(bind: Optional[Engine] = None) -> bool:
    """
    Initialize database schema.

    Creates all tables if they don't exist. Returns False when no
    database is configured.
    """
    bind = bind or engine
    if bind is None:
        return False
    Base.metadata.create_all(bind=bind)
    return True
