"""Database session utilities for the local development ledger."""
from contextlib import contextmanager
import logging
import time
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session

from ..config import DATABASE_URL
from ..domain import models  # noqa: F401  registers the ledger tables

logger = logging.getLogger(__name__)


def make_engine(url: str = DATABASE_URL) -> Engine:
    """Build an engine. In-memory SQLite shares one connection across threads."""
    if not url.startswith("sqlite"):
        return create_engine(url, echo=False, future=True)
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, echo=False, future=True, **kwargs)


engine = make_engine()


def init_db(bind_engine: Optional[Engine] = None) -> None:
    """Create tables if they do not exist.

    Retries on startup to wait for the database service in Docker.
    """
    target_engine = bind_engine or engine
    attempts = 0
    last_err: Exception | None = None
    while attempts < 30:
        try:
            SQLModel.metadata.create_all(target_engine)
            return
        except Exception as exc:  # pragma: no cover
            last_err = exc
            attempts += 1
            logger.warning("waiting for database... (%d/30) %s", attempts, exc)
            time.sleep(1)
    if last_err:
        raise last_err


@contextmanager
def get_session(bind_engine: Optional[Engine] = None) -> Iterator[Session]:
    session = Session(bind_engine or engine, autoflush=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
