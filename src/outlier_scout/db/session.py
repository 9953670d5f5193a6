"""Database engine and session scope."""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from outlier_scout.config import settings


def build_engine(database_url: str) -> Engine:
    """Create an engine, applying pool settings only where the dialect supports them."""
    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_size"] = 5
        kwargs["max_overflow"] = 10
    return create_engine(database_url, **kwargs)


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """One transaction: commit on success, roll back on any exception."""
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def ping_database(bind: Engine | None = None) -> None:
    """Round-trip ``SELECT 1``; raises if the database is unreachable."""
    with (bind or engine).connect() as conn:
        conn.execute(text("SELECT 1"))


def dispose_engine() -> None:
    """Close pooled connections (API shutdown, forked workers)."""
    engine.dispose()
