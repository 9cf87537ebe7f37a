"""
Database engine, session factory, and metadata shared across the engine.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    """Pool settings for server databases; SQLite gets a thread-tolerant connection."""
    if db_url.startswith("sqlite"):
        return {
            "echo": settings.db_echo,
            "future": True,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "echo": settings.db_echo,
        "future": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
    }


def enable_sqlite_foreign_keys(target: Engine) -> None:
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    if target.dialect.name != "sqlite":
        return

    @event.listens_for(target, "connect")
    def _set_sqlite_pragma(dbapi_connection: Any, _connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(db_url: str | None = None) -> Engine:
    url = db_url or settings.database_url
    built = create_engine(url, **_build_engine_kwargs(url))
    enable_sqlite_foreign_keys(built)
    return built


engine: Engine = build_engine()


@event.listens_for(engine, "connect")
def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
    logger.debug("Database connection established")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for short-lived DB operations."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(target: Engine | None = None) -> None:
    """Create all scheduling tables on the given (or default) engine."""
    from .. import models  # noqa: F401  populate Base.metadata

    Base.metadata.create_all(bind=target or engine)
    logger.info("Scheduling tables created")


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine",
    "enable_sqlite_foreign_keys",
    "engine",
    "get_db_session",
    "init_db",
]
