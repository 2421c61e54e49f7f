"""
Database engine and session management using SQLAlchemy 2.x.

Engines and session factories are built explicitly and handed to the
services that need them; the FastAPI app keeps its factory on app.state.
"""
from contextlib import contextmanager
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase

from mcs_booking.lib.settings import Settings, settings as default_settings


# Base class for all SQLAlchemy models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def build_engine(database_url: Optional[str] = None, config: Optional[Settings] = None) -> Engine:
    """
    Create an engine for the given URL (defaults to settings.database_url).

    SQLite gets a busy timeout so concurrent writers queue on the
    database lock instead of failing immediately.
    """
    config = config or default_settings
    url = database_url or config.database_url

    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=config.debug,
            connect_args={
                "check_same_thread": False,
                "timeout": config.sqlite_busy_timeout_seconds,
            },
        )

    return create_engine(
        url,
        echo=config.debug,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=5,
        max_overflow=10,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to engine."""
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency for FastAPI routes to get a database session.

    Usage:
        @router.get("/example")
        def example(db: Session = Depends(get_db)):
            ...
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for a unit of work outside of FastAPI routes.

    Usage:
        with session_scope(factory) as db:
            db.add(service)
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(engine: Engine) -> None:
    """
    Create all tables. Should be called after all models are imported.
    """
    import mcs_booking.models  # noqa: F401  registers models on Base.metadata

    Base.metadata.create_all(bind=engine)


def drop_db(engine: Engine) -> None:
    """
    Drop all tables. Use with caution - for testing only.
    """
    Base.metadata.drop_all(bind=engine)
