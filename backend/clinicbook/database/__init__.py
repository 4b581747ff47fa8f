"""
Engine, session factory and declarative Base for clinicbook.

PostgreSQL (psycopg2) in deployments, SQLite for local runs and tests.
Sessions do not expire on commit: services return ORM rows to routes after
their transaction has committed.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from clinicbook.core.config import settings

logger = logging.getLogger(__name__)

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 10,
    # Fail fast when the pool is exhausted instead of queueing requests
    "pool_timeout": 5,
    "pool_recycle": 300,
    "pool_pre_ping": True,
}


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    """Pool settings for server databases; SQLite gets a thread-tolerant connection instead."""
    if db_url.lower().startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return dict(_DEFAULT_POOL_KWARGS)


def create_db_engine(db_url: str, echo: bool = False) -> Engine:
    db_engine = create_engine(db_url, echo=echo, future=True, **_build_engine_kwargs(db_url))

    @event.listens_for(db_engine, "connect")
    def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
        connection_record.info["connect_time"] = datetime.now()
        logger.debug("Database connection established")

    return db_engine


engine: Engine = create_db_engine(settings.database_url, echo=settings.database_echo)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; services commit their own units of work."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


__all__ = [
    "Base",
    "SessionLocal",
    "create_db_engine",
    "engine",
    "get_db",
]
