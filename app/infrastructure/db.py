"""
Database connection and session management with centralized configuration.

This module provides database connectivity using the centralized configuration
system, with proper error handling and logging integration.
"""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import DatabaseConfig, get_settings
from .exceptions import ConnectionError
from .logging import get_logger

logger = get_logger(__name__)


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, _connection_record):  # pragma: no cover - driver hook
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_database_engine(config: DatabaseConfig | None = None) -> Engine:
    """
    Create SQLAlchemy engine with proper configuration.

    Args:
        config: Database configuration (uses default if None)

    Returns:
        Configured SQLAlchemy engine

    Raises:
        ConnectionError: If the engine cannot be created
    """
    if config is None:
        config = get_settings().database

    connection_url = config.get_connection_url()
    engine_options = config.get_engine_options()

    logger.info(f"Creating database engine for {config.backend} backend")
    logger.debug(f"Connection URL: {connection_url.split('@')[0]}@***")

    try:
        engine = create_engine(connection_url, **engine_options)
    except Exception as e:
        logger.error(f"Failed to create database engine: {str(e)}")
        raise ConnectionError(str(e), details={"backend": config.backend}) from e

    if config.backend == "sqlite":
        _enable_sqlite_foreign_keys(engine)
    return engine


def create_session_factory(engine: Engine | None = None) -> sessionmaker:
    """
    Create SQLAlchemy session factory.

    Example:
        >>> SessionLocal = create_session_factory()
        >>> uow = UnitOfWork(SessionLocal)
    """
    if engine is None:
        engine = create_database_engine()

    return sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True
    )


def make_engine_and_session(connection_url: str | None = None) -> tuple[Engine, sessionmaker]:
    """
    Create engine and session factory, either from an explicit URL or from configuration.

    Example:
        >>> engine, SessionLocal = make_engine_and_session("sqlite:///:memory:")
    """
    if connection_url:
        engine = create_engine(connection_url, echo=False, future=True, pool_pre_ping=True)
        if connection_url.startswith("sqlite"):
            _enable_sqlite_foreign_keys(engine)
    else:
        engine = create_database_engine()

    return engine, create_session_factory(engine)


def is_database_configured() -> bool:
    try:
        get_settings().database.get_connection_url()
        return True
    except Exception as e:
        logger.warning(f"Database configuration invalid: {str(e)}")
        return False
