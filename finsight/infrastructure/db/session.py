"""
Database engine, sessions and the readiness check.

Request handlers get a session per request through get_db(); background
work (analysis jobs, scheduler jobs) opens its own with session_scope().
"""
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

import psycopg
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from finsight.config import get_settings


class Base(DeclarativeBase):
    pass


@lru_cache
def get_engine() -> Engine:
    settings = get_settings()
    return create_engine(
        settings.get_sqlalchemy_url(),
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
    )


@lru_cache
def get_session_factory() -> sessionmaker:
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)


@contextmanager
def session_scope(factory: sessionmaker | None = None) -> Iterator[Session]:
    """
    Session for work outside a request. Uncommitted changes are rolled back
    when the block raises; the session is always closed.

    Usage:
        with session_scope() as db:
            deactivate_expired_tips(db)
    """
    db = (factory or get_session_factory())()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Iterator[Session]:
    """
    FastAPI dependency: one session per request

    Usage:
        @router.get("/goals")
        def list_goals(db: Session = Depends(get_db)):
            ...
    """
    with session_scope() as db:
        yield db


def check_db_connection() -> None:
    """
    Readiness check: a plain psycopg round trip that bypasses the pool

    Raises:
        psycopg.OperationalError: database unreachable
    """
    settings = get_settings()
    with psycopg.connect(settings.DATABASE_URL, connect_timeout=settings.DB_CONNECT_TIMEOUT) as conn:
        conn.execute("SELECT 1").fetchone()
