"""
costing_services.window_resolver -- Reporting window and scope resolution.

Responsibility:
    Turn the caller's optional bounds and filters into a validated
    ReportingWindow, fetch the raw history for that scope once, classify
    every record and hand back the events in replay order.

Architecture position:
    Services -- orchestration only.  Reads from the event source; performs
    no costing itself.

Invariants enforced:
    - Fail fast: an invalid window raises InvalidWindowError before the
      event source is touched.
    - Defaults: to_date defaults to the clock's today; from_date defaults
      to ``to_date - default_window_days``.
    - Order: events are stably sorted by (timestamp, sequence), so records
      with identical keys keep the source's order on every run.
    - Classification aborts on the first bad record; no record is skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from costing_config.schema import CostingConfig
from costing_engines.classifier import classify_all
from costing_kernel.domain.clock import Clock, SystemClock
from costing_kernel.domain.stock import ReportScope, StockEvent
from costing_kernel.domain.window import ReportingWindow
from costing_kernel.exceptions import InvalidWindowError
from costing_kernel.logging_config import get_logger
from costing_services.event_source import StockEventSource

logger = get_logger("services.window_resolver")


@dataclass(frozen=True, slots=True)
class ResolvedRequest:
    """A validated window plus its ordered, classified events."""

    window: ReportingWindow
    events: tuple[StockEvent, ...]


class WindowScopeResolver:
    """
    Validates windows and loads ordered events for them.

    Contract:
        ``resolve`` either returns a ResolvedRequest or raises a typed
        CostingError; it calls the event source at most once.
    """

    def __init__(
        self,
        event_source: StockEventSource,
        config: CostingConfig | None = None,
        clock: Clock | None = None,
    ):
        self.event_source = event_source
        self.config = config or CostingConfig.with_defaults()
        self.clock = clock or SystemClock()

    def resolve_window(
        self,
        from_date: date | None = None,
        to_date: date | None = None,
        item_id: str | None = None,
        supplier_id: str | None = None,
    ) -> ReportingWindow:
        """
        Apply defaults and validate.

        Raises:
            InvalidWindowError: If from_date > to_date.
        """
        if to_date is None:
            to_date = self.clock.today()
        if from_date is None:
            from_date = to_date - timedelta(days=self.config.default_window_days)

        if from_date > to_date:
            logger.warning(
                "window_invalid",
                extra={"from_date": from_date, "to_date": to_date},
            )
            raise InvalidWindowError(from_date, to_date)

        return ReportingWindow(
            from_date=from_date,
            to_date=to_date,
            scope=ReportScope.of(item_id, supplier_id),
        )

    def load_events(self, window: ReportingWindow) -> tuple[StockEvent, ...]:
        """Fetch, filter, classify and order the events for ``window``."""
        scope = window.scope
        records = self.event_source.fetch_events(scope, window.to_date)
        in_scope = [
            record for record in records
            if scope.matches(record.item_id, record.supplier_id)
        ]
        events = classify_all(in_scope, self.config.reason_table)
        ordered = tuple(sorted(events, key=lambda event: event.sort_key))

        logger.info(
            "events_resolved",
            extra={
                "from_date": window.from_date,
                "to_date": window.to_date,
                "fetched_count": len(records),
                "event_count": len(ordered),
            },
        )
        return ordered

    def resolve(
        self,
        from_date: date | None = None,
        to_date: date | None = None,
        item_id: str | None = None,
        supplier_id: str | None = None,
    ) -> ResolvedRequest:
        window = self.resolve_window(from_date, to_date, item_id, supplier_id)
        return ResolvedRequest(window=window, events=self.load_events(window))
