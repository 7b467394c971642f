"""
costing_services.event_source -- Read-only sources of raw stock-change records.

Responsibility:
    Define the narrow StockEventSource protocol consumed by the window
    resolver, plus two implementations: an in-memory list (tests, batch
    callers that already hold the rows) and a SQL-backed source over the
    stock_history table.

Architecture position:
    Services -- the only layer that touches storage.  Engines never see a
    session or a source, only the records a source returned.

Invariants enforced:
    - One call per request: ``fetch_events(scope, until)`` returns every
      in-scope record with a timestamp on or before ``until``.
    - Sources never mutate the records they hand out (frozen DTOs).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import date
from typing import Protocol, runtime_checkable

from sqlalchemy.orm import Session

from costing_kernel.domain.stock import ReportScope, StockChangeRecord, as_utc
from costing_kernel.logging_config import get_logger
from costing_kernel.selectors.stock_history_selector import StockHistorySelector

logger = get_logger("services.event_source")


@runtime_checkable
class StockEventSource(Protocol):
    """Anything that can hand over the raw stock history for a scope."""

    def fetch_events(
        self,
        scope: ReportScope,
        until: date,
    ) -> Sequence[StockChangeRecord]: ...


class InMemoryStockEventSource:
    """
    Event source over a fixed collection of records.

    Records are filtered by scope and date but returned in insertion order;
    ordering is the resolver's responsibility.  ``fetch_count`` lets tests
    assert that a request read the source exactly once (or not at all).
    """

    def __init__(self, records: Iterable[StockChangeRecord] = ()):
        self._records: tuple[StockChangeRecord, ...] = tuple(records)
        self.fetch_count = 0

    def __len__(self) -> int:
        return len(self._records)

    def fetch_events(
        self,
        scope: ReportScope,
        until: date,
    ) -> tuple[StockChangeRecord, ...]:
        self.fetch_count += 1
        return tuple(
            record
            for record in self._records
            if as_utc(record.timestamp).date() <= until
            and scope.matches(record.item_id, record.supplier_id)
        )


class SqlStockEventSource:
    """
    Event source reading the stock_history table.

    Opens one short-lived session per fetch from the given factory, so a
    single instance can serve concurrent requests on separate threads.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def fetch_events(
        self,
        scope: ReportScope,
        until: date,
    ) -> tuple[StockChangeRecord, ...]:
        session = self._session_factory()
        try:
            return StockHistorySelector(session).fetch_events(scope, until)
        finally:
            session.close()
