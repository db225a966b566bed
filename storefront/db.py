"""SQLAlchemy engine, declarative base and session helpers.

The engine is built from ``settings.DATABASE_URL``. PostgreSQL (through
psycopg) is the deployment target; an in-memory SQLite URL is accepted for
tests and local runs, in which case a single shared connection is used so
every session sees the same database.
"""

import time
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from . import settings


def build_engine(url: str):
    """Create an engine for ``url`` with pool settings suited to its dialect."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


@contextmanager
def get_session():
    """Context manager that yields a SQLAlchemy session.

    The session is automatically closed when exiting the context.

    Yields:
        Session: Active SQLAlchemy session connected to the database.
    """
    with SessionLocal() as s:
        yield s


def get_db():
    """FastAPI dependency yielding one session per request."""
    with get_session() as s:
        yield s


def init_db(bind=None) -> None:
    """Create all tables known to ``Base`` on ``bind`` (default engine)."""
    # models must be imported so their tables are registered on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind or engine)


def wait_for_db(bind=None, timeout: float | None = None) -> None:
    """Block until the database accepts connections or ``timeout`` elapses.

    Raises:
        sqlalchemy.exc.OperationalError: When the database is still
            unreachable after the timeout.
    """
    bind = bind or engine
    deadline = time.time() + (timeout if timeout is not None else settings.DB_STARTUP_TIMEOUT_SECS)
    while True:
        try:
            with bind.connect() as conn:
                conn.execute(text("select 1"))
            return
        except Exception:
            if time.time() > deadline:
                raise
            time.sleep(1)


def ping(session: Session) -> bool:
    """Return True when a trivial query succeeds on ``session``."""
    try:
        session.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
