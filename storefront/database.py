"""
Database connection and session management.
Uses SQLAlchemy; Postgres in production, SQLite for local runs and tests.
"""

from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.utils.logger import get_logger

logger = get_logger("database")

# Base class for all our database models (must be defined before engine)
Base = declarative_base()


def make_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for ``database_url``.

    In-memory SQLite gets a StaticPool so every session sees the same database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **kwargs)
    else:
        engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
    logger.info("database: dialect=%s echo=%s", engine.dialect.name, echo)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine) -> None:
    # Importing models registers their tables on Base.metadata
    from storefront import models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    """
    Dependency function that provides a database session bound to the app's
    session factory (``app.state.session_factory``).
    """
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        raise RuntimeError("Database not configured")
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
