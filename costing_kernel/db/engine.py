"""
Module: costing_kernel.db.engine
Responsibility: Process-wide SQLAlchemy engine and session factory for the
    stock-history event source, plus a commit-or-rollback scope for writers.
Architecture position: Kernel > DB.  create_tables() imports models/ lazily
    so that importing this module never registers tables as a side effect.

Invariants enforced:
    - Any SQLAlchemy URL is accepted.  In-memory SQLite is pinned to a single
      shared connection so every session and thread sees one database.
    - Replay reads go through sessions from get_session_factory(), one per
      fetch; the costing path never commits.

Failure modes:
    - RuntimeError from get_engine/get_session/get_session_factory before
      init_engine_from_url() (or after reset_engine()).
"""

import atexit
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from costing_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _is_memory_sqlite(database_url: str) -> bool:
    if not database_url.startswith("sqlite"):
        return False
    return database_url.rstrip("/") == "sqlite:" or ":memory:" in database_url


def _engine_options(database_url: str, echo: bool, pool_pre_ping: bool) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": echo, "pool_pre_ping": pool_pre_ping}
    if _is_memory_sqlite(database_url):
        options["poolclass"] = StaticPool
        options["connect_args"] = {"check_same_thread": False}
    return options


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_pre_ping: bool = True,
) -> Engine:
    """
    Create the engine and session factory, replacing any previous ones.

    Sessions are created with expire_on_commit=False so records read in a
    fetch stay usable after the session closes.
    """
    global _engine, _SessionFactory

    _engine = create_engine(database_url, **_engine_options(database_url, echo, pool_pre_ping))
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "shared_connection": _is_memory_sqlite(database_url),
        },
    )
    return _engine


def _require_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    return _require_factory()()


def get_session_factory() -> sessionmaker[Session]:
    """Factory handed to SqlStockEventSource; it opens one session per fetch."""
    return _require_factory()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit on normal exit, roll back and re-raise on error; always close."""
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("stock_history_write_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create the stock_history schema (idempotent)."""
    from costing_kernel.db.base import Base
    import costing_kernel.models  # noqa: F401  (registers stock_history on Base.metadata)

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop every costing table. Tests only."""
    from costing_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@atexit.register
def _dispose_at_exit() -> None:
    if _engine is not None:
        _engine.dispose()
