"""
Pytest fixtures for the inventory costing test suite.

Provides:
- Structured logging configured once per session, LogContext isolation
- captured_logs: parsed JSON log records emitted during a test
- Deterministic clock
- In-memory SQLite engine/session for the stock-history selector

Record and event builders live in tests/helpers.py.
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from costing_config.schema import CostingConfig
from costing_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from costing_kernel.domain.clock import DeterministicClock
from costing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture inventory_costing logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            service.get_summary(CostingMethod.WAC, ...)
            logs = captured_logs()
            assert any(r["message"] == "financial_summary_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("inventory_costing")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock / config fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Clock fixed at 2025-01-31 12:00 UTC."""
    return DeterministicClock(datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def default_config() -> CostingConfig:
    return CostingConfig.with_defaults()


# =============================================================================
# Database fixtures (in-memory SQLite)
# =============================================================================


@pytest.fixture
def db_engine():
    engine = init_engine_from_url("sqlite:///:memory:", pool_pre_ping=False)
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    session = get_session()
    yield session
    session.rollback()
    session.close()
