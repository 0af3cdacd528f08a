from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from quitpace.config.settings import settings

# Lazy initialization to avoid import-time database connections
_engine = None
_SessionLocal = None


def _get_engine():
    """Get or create the database engine (lazy initialization)."""
    global _engine
    if _engine is None:
        logger.info(f"Initializing database engine: {settings.database_url}")

        connect_args = {}
        if "sqlite" in settings.database_url.lower():
            # Gateway calls run in worker threads
            connect_args = {"check_same_thread": False}

        _engine = create_engine(
            settings.database_url,
            connect_args=connect_args,
            echo=False,
            pool_pre_ping=True,
        )
        logger.debug("Database engine initialized")
    return _engine


def get_engine():
    """Get or create the database engine (public API)."""
    return _get_engine()


def _get_session_local():
    """Get or create the session factory (lazy initialization)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_get_engine())
        logger.debug("Database session factory initialized")
    return _SessionLocal


def init_db() -> None:
    """Create all tables that do not exist yet."""
    from quitpace.db.models import Base

    Base.metadata.create_all(bind=_get_engine())
    logger.debug("Database schema ensured")


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get database session context manager.

    Commits when the block exits cleanly; rolls back and re-raises otherwise.
    """
    session = _get_session_local()()
    try:
        yield session
        session.commit()
    except Exception as e:
        logger.debug(f"Rolling back database session: {e}")
        session.rollback()
        raise
    finally:
        session.close()
