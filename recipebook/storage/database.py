from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import DEFAULT_APP_CONFIG
from ..errors import PersistenceError

logger = logging.getLogger(__name__)

Base = declarative_base()


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_conn, connection_record) -> None:
    # SQLite's builtin lower() only folds ASCII letters.
    dbapi_conn.create_function("lower", 1, _unicode_lower, deterministic=True)


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine; in-memory SQLite shares a single connection."""
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        sqlite_engine = create_engine(url, echo=echo, **kwargs)
        event.listen(sqlite_engine, "connect", _register_sqlite_functions)
        return sqlite_engine
    return create_engine(url, echo=echo, pool_pre_ping=True)


engine = build_engine(DEFAULT_APP_CONFIG.database_url, DEFAULT_APP_CONFIG.sql_echo)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_session() -> Iterator[Session]:
    """FastAPI dependency: one session per request."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def unit_of_work(session: Session) -> Iterator[Session]:
    """Commit every write made inside the block, or none of them."""
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Unit of work rolled back", exc_info=True)
        raise PersistenceError(str(exc)) from exc
    except Exception:
        session.rollback()
        raise


def init_db(bind: Engine | None = None) -> None:
    # Import for side effect: registers the tables on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def reset_db(bind: Engine | None = None) -> None:
    from . import models  # noqa: F401

    target = bind or engine
    Base.metadata.drop_all(bind=target)
    Base.metadata.create_all(bind=target)


def ping(bind: Engine | None = None) -> bool:
    """Return True when the database answers a trivial query."""
    try:
        with (bind or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.warning("Database connection check failed: %s", exc)
        return False
