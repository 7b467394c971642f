"""
Tests for the stock event sources.

The SQL source runs against in-memory SQLite; the selector is exercised
through it and directly.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from costing_kernel.db.engine import (
    get_engine,
    get_session_factory,
    reset_engine,
    session_scope,
)
from costing_kernel.domain.stock import ReportScope
from costing_kernel.models.stock_history import StockHistoryModel
from costing_kernel.selectors.stock_history_selector import StockHistorySelector
from costing_services.event_source import (
    InMemoryStockEventSource,
    SqlStockEventSource,
    StockEventSource,
)
from tests.helpers import make_record, ts


def _row(item_id, reason, qty, when, price=None, supplier_id="SUP-1", sequence=0):
    return StockHistoryModel(
        item_id=item_id,
        supplier_id=supplier_id,
        quantity_change=qty,
        reason=reason,
        created_by="tests",
        created_at=when,
        sequence=sequence,
        price_at_change=Decimal(price) if price is not None else None,
    )


def _seed(session):
    session.add_all([
        _row("A", "INITIAL_STOCK", 100, datetime(2025, 1, 1, 9), "10.00"),
        _row("A", "SOLD", -40, datetime(2025, 1, 2, 9), sequence=2),
        _row("A", "SOLD", -10, datetime(2025, 1, 2, 9), sequence=1),
        _row("B", "INITIAL_STOCK", 5, datetime(2025, 1, 3, 9), "2.50", supplier_id=" Acme "),
        _row("A", "SOLD", -1, datetime(2025, 2, 1, 0)),
    ])
    session.commit()


class TestStockHistorySelector:

    def test_fetch_orders_by_time_then_sequence(self, session):
        _seed(session)

        records = StockHistorySelector(session).fetch_events(ReportScope(), date(2025, 1, 31))

        assert [(r.item_id, r.quantity_change) for r in records] == [
            ("A", 100), ("A", -10), ("A", -40), ("B", 5),
        ]
        assert records[0].price_at_change == Decimal("10.00")
        assert records[1].price_at_change is None

    def test_until_is_inclusive_of_whole_day(self, session):
        _seed(session)

        records = StockHistorySelector(session).fetch_events(ReportScope(), date(2025, 2, 1))

        assert len(records) == 5

    def test_item_filter(self, session):
        _seed(session)

        records = StockHistorySelector(session).fetch_events(
            ReportScope.of(item_id="B"), date(2025, 1, 31)
        )

        assert [r.item_id for r in records] == ["B"]

    def test_supplier_filter_trims_and_ignores_case(self, session):
        _seed(session)

        records = StockHistorySelector(session).fetch_events(
            ReportScope.of(supplier_id="ACME"), date(2025, 1, 31)
        )

        assert [r.item_id for r in records] == ["B"]

    def test_count(self, session):
        _seed(session)
        selector = StockHistorySelector(session)

        assert selector.count() == 5
        assert selector.count(ReportScope.of(item_id="A")) == 4


class TestSqlStockEventSource:

    def test_reads_through_fresh_sessions(self, session):
        _seed(session)
        source = SqlStockEventSource(get_session_factory())

        first = source.fetch_events(ReportScope.of(item_id="A"), date(2025, 1, 31))
        second = source.fetch_events(ReportScope.of(item_id="A"), date(2025, 1, 31))

        assert len(first) == 3
        assert first == second

    def test_satisfies_protocol(self, db_engine):
        assert isinstance(SqlStockEventSource(get_session_factory()), StockEventSource)


class TestInMemoryStockEventSource:

    def test_filters_by_scope_and_date(self):
        source = InMemoryStockEventSource([
            make_record("SOLD", -1, ts(5), item_id="A"),
            make_record("SOLD", -1, ts(5), item_id="B"),
            make_record("SOLD", -1, ts(5, month=3), item_id="A"),
        ])

        records = source.fetch_events(ReportScope.of(item_id="A"), date(2025, 1, 31))

        assert len(records) == 1
        assert source.fetch_count == 1
        assert len(source) == 3
        assert isinstance(source, StockEventSource)


class TestSessionScope:
    """Transactional helper used by writers of the stock_history table."""

    def test_commits_on_success(self, db_engine):
        with session_scope() as session:
            session.add(_row("C", "INITIAL_STOCK", 3, datetime(2025, 1, 4, 9), "1.00"))

        with session_scope() as session:
            assert StockHistorySelector(session).count(ReportScope.of(item_id="C")) == 1

    def test_rolls_back_on_error(self, db_engine):
        with pytest.raises(ValueError):
            with session_scope() as session:
                session.add(_row("D", "INITIAL_STOCK", 3, datetime(2025, 1, 4, 9)))
                session.flush()
                raise ValueError("abort")

        with session_scope() as session:
            assert StockHistorySelector(session).count(ReportScope.of(item_id="D")) == 0

    def test_uninitialised_engine_raises(self):
        reset_engine()

        with pytest.raises(RuntimeError):
            get_engine()
