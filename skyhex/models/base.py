"""
SQLAlchemy base configuration and session management.

Uses SQLAlchemy 2.0 style with type hints and declarative base.
Designed to be portable between SQLite (dev) and PostgreSQL (prod).
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from skyhex.config import config


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _set_sqlite_pragma(dbapi_connection, connection_record):
    """
    Configure SQLite for an ingest-while-serving workload.

    WAL mode lets query threads read while an ingestion cycle is writing.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA journal_mode=WAL')
    cursor.execute('PRAGMA synchronous=NORMAL')
    cursor.execute('PRAGMA cache_size=-64000')  # 64MB
    cursor.close()


def build_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine with settings appropriate for the database type.

    In-memory SQLite gets a StaticPool so every thread sees the same database.
    """
    engine_kwargs = {'echo': echo}
    is_sqlite = url.startswith('sqlite')

    if is_sqlite:
        engine_kwargs['connect_args'] = {'check_same_thread': False}
        if url in ('sqlite://', 'sqlite:///:memory:'):
            engine_kwargs['poolclass'] = StaticPool

    engine = create_engine(url, **engine_kwargs)
    if is_sqlite:
        event.listen(engine, 'connect', _set_sqlite_pragma)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,  # Avoid lazy loading issues
    )


engine = build_engine(config.database.url, echo=config.debug)

# Session factory
SessionLocal = build_session_factory(engine)


@contextmanager
def get_session(session_factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_session() as session:
            session.execute(...)

    Automatically handles commit/rollback and session cleanup.
    """
    session = (session_factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Initialize database schema.

    Creates all tables if they don't exist. For production,
    use Alembic migrations instead.
    """
    # Import models so they register with Base.metadata
    from skyhex.models import flight_event, latest_position  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
