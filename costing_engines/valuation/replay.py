"""
costing_engines.valuation.replay -- Shared single-pass replay over an inventory book.

Responsibility:
    Walk an ordered stream of classified StockEvents once, positioning each
    event against the reporting window, applying it to a costing-method
    specific InventoryBook, and accumulating in-window movements into
    bucket totals.  Produces opening and closing snapshots plus the buckets.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    WacReplayEngine and FifoReplayEngine subclass ReplayEngine and only
    supply the book; the window logic, over-issue policy, order check and
    bucket accounting live here once.

Invariants enforced:
    - Order: events must be in non-decreasing (timestamp, sequence) order;
      otherwise UnorderedEventsError before the offending event is applied.
    - Pre-window events change state only, never buckets.
    - Post-window events are ignored.
    - Over-issue: under CLAMP an outbound request is cut to the quantity on
      hand and the excess recorded in over_issue_qty; under REJECT it raises
      OverIssueError.  Stock never goes negative.
    - Ledger: with net purchases (purchases - returns out) and net
      adjustments (write-offs + adjustments out - adjustments in), opening +
      purchases + returns_in - sales - adjustments == closing.

Failure modes:
    - UnorderedEventsError, OverIssueError (REJECT only), LayerDriftError
      (FIFO book), ReplayCancelledError / ReplayTimeoutError (guard).

Audit relevance:
    The ReplayResult is the sole input to the summary assembler; every
    figure on a FinancialSummary traces back to a bucket populated here.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from costing_engines.cancellation import ReplayGuard
from costing_kernel.domain.stock import (
    CostingMethod,
    OverIssuePolicy,
    StockCategory,
    StockEvent,
)
from costing_kernel.domain.window import ReportingWindow
from costing_kernel.exceptions import OverIssueError, UnorderedEventsError
from costing_kernel.logging_config import get_logger

logger = get_logger("engines.valuation.replay")

ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class InventorySnapshot:
    """Quantity and value on hand at one point of the replay."""

    quantity: int = 0
    value: Decimal = ZERO

    @property
    def average_cost(self) -> Decimal:
        if self.quantity == 0:
            return ZERO
        return self.value / self.quantity


@dataclass(frozen=True, slots=True)
class BucketTotals:
    """
    In-window movement totals.

    ``purchases_*`` and ``adjustment_*`` are net figures; ``returns_out_*``
    and ``write_off_*`` are the gross amounts folded into them.
    """

    purchases_qty: int = 0
    purchases_cost: Decimal = ZERO
    returns_in_qty: int = 0
    returns_in_value: Decimal = ZERO
    sales_qty: int = 0
    sales_value: Decimal = ZERO
    returns_out_qty: int = 0
    returns_out_value: Decimal = ZERO
    write_off_qty: int = 0
    write_off_value: Decimal = ZERO
    adjustment_qty: int = 0
    adjustment_value: Decimal = ZERO
    over_issue_qty: int = 0
    event_count: int = 0


@dataclass(slots=True)
class _BucketAccumulator:
    """Mutable counterpart of BucketTotals, private to one replay call."""

    purchases_qty: int = 0
    purchases_cost: Decimal = ZERO
    returns_in_qty: int = 0
    returns_in_value: Decimal = ZERO
    sales_qty: int = 0
    sales_value: Decimal = ZERO
    returns_out_qty: int = 0
    returns_out_value: Decimal = ZERO
    write_off_qty: int = 0
    write_off_value: Decimal = ZERO
    adjustment_qty: int = 0
    adjustment_value: Decimal = ZERO
    over_issue_qty: int = 0
    event_count: int = 0

    def add_inbound(self, category: StockCategory, quantity: int, value: Decimal) -> None:
        if category is StockCategory.PURCHASE:
            self.purchases_qty += quantity
            self.purchases_cost += value
        elif category is StockCategory.RETURN_IN:
            self.returns_in_qty += quantity
            self.returns_in_value += value
        else:
            # Inbound adjustment reduces the net write-down.
            self.adjustment_qty -= quantity
            self.adjustment_value -= value

    def add_outbound(self, category: StockCategory, quantity: int, value: Decimal) -> None:
        if category is StockCategory.SALE:
            self.sales_qty += quantity
            self.sales_value += value
        elif category is StockCategory.RETURN_OUT:
            self.returns_out_qty += quantity
            self.returns_out_value += value
            self.purchases_qty -= quantity
            self.purchases_cost -= value
        elif category is StockCategory.WRITE_OFF:
            self.write_off_qty += quantity
            self.write_off_value += value
            self.adjustment_qty += quantity
            self.adjustment_value += value
        else:
            self.adjustment_qty += quantity
            self.adjustment_value += value

    def freeze(self) -> BucketTotals:
        return BucketTotals(
            purchases_qty=self.purchases_qty,
            purchases_cost=self.purchases_cost,
            returns_in_qty=self.returns_in_qty,
            returns_in_value=self.returns_in_value,
            sales_qty=self.sales_qty,
            sales_value=self.sales_value,
            returns_out_qty=self.returns_out_qty,
            returns_out_value=self.returns_out_value,
            write_off_qty=self.write_off_qty,
            write_off_value=self.write_off_value,
            adjustment_qty=self.adjustment_qty,
            adjustment_value=self.adjustment_value,
            over_issue_qty=self.over_issue_qty,
            event_count=self.event_count,
        )


@dataclass(frozen=True, slots=True)
class ReplayResult:
    """
    Output of one replay: opening/closing snapshots plus bucket totals.

    Contract:
        Frozen; produced once per replay call and never shared.
    """

    method: CostingMethod
    window: ReportingWindow
    opening: InventorySnapshot
    closing: InventorySnapshot
    buckets: BucketTotals = field(default_factory=BucketTotals)
    processed_count: int = 0
    item_count: int = 0


class InventoryBook(ABC):
    """
    Per-item inventory state for one costing method.

    A book is created fresh for every replay call.  Quantities passed to
    ``issue`` never exceed ``quantity_on_hand``; the replay loop enforces
    the over-issue policy before calling it.
    """

    @abstractmethod
    def quantity_on_hand(self, item_id: str) -> int: ...

    @abstractmethod
    def receive(self, event: StockEvent) -> Decimal:
        """Book an inbound event; return the value added."""

    @abstractmethod
    def issue(self, item_id: str, quantity: int) -> Decimal:
        """Remove ``quantity`` units; return the cost removed."""

    @abstractmethod
    def snapshot(self) -> InventorySnapshot: ...

    @property
    @abstractmethod
    def item_count(self) -> int: ...

    def verify(self, item_id: str) -> None:
        """Cross-check internal state after an event. No-op by default."""

    def finalize(self) -> None:
        """Full consistency check at the end of the replay. No-op by default."""


class ReplayEngine(ABC):
    """
    Single-pass replay over an ordered event stream.

    Contract:
        ``replay`` is a pure function of (events, window, policy): it owns
        a fresh book, never mutates its inputs and holds no state between
        calls, so one engine instance may serve concurrent calls.

    Non-goals:
        Sorting or filtering events.  The resolver hands over an ordered,
        scope-filtered sequence; the engine only verifies the order.
    """

    method: CostingMethod

    def __init__(self, over_issue_policy: OverIssuePolicy = OverIssuePolicy.CLAMP):
        self.over_issue_policy = over_issue_policy

    @abstractmethod
    def _new_book(self) -> InventoryBook: ...

    def replay(
        self,
        events: Sequence[StockEvent],
        window: ReportingWindow,
        guard: ReplayGuard | None = None,
    ) -> ReplayResult:
        """
        Replay ``events`` against ``window``.

        Postconditions:
            - opening is the book state before the first in-window event
              (or the final state when no event falls inside the window).
            - closing is the book state after the last in-window event.
        """
        book = self._new_book()
        buckets = _BucketAccumulator()
        opening: InventorySnapshot | None = None
        previous: StockEvent | None = None
        processed = 0

        logger.debug(
            "replay_started",
            extra={
                "method": self.method.value,
                "from_date": window.from_date,
                "to_date": window.to_date,
                "event_count": len(events),
                "over_issue_policy": self.over_issue_policy.value,
            },
        )

        for event in events:
            if previous is not None and event.sort_key < previous.sort_key:
                logger.error(
                    "replay_events_out_of_order",
                    extra={
                        "record_id": event.record_id,
                        "previous_record_id": previous.record_id,
                    },
                )
                raise UnorderedEventsError(event.record_id, previous.record_id)
            previous = event

            if window.is_after(event.timestamp):
                continue

            in_window = window.contains(event.timestamp)
            if in_window and opening is None:
                opening = book.snapshot()

            self._apply(book, event, buckets if in_window else None)
            book.verify(event.item_id)

            processed += 1
            if guard is not None:
                guard.checkpoint(processed)

        book.finalize()
        closing = book.snapshot()
        if opening is None:
            opening = closing

        result = ReplayResult(
            method=self.method,
            window=window,
            opening=opening,
            closing=closing,
            buckets=buckets.freeze(),
            processed_count=processed,
            item_count=book.item_count,
        )

        logger.info(
            "replay_completed",
            extra={
                "method": self.method.value,
                "processed_count": processed,
                "in_window_count": buckets.event_count,
                "item_count": book.item_count,
                "closing_qty": closing.quantity,
                "closing_value": str(closing.value),
                "over_issue_qty": buckets.over_issue_qty,
            },
        )
        return result

    def _apply(
        self,
        book: InventoryBook,
        event: StockEvent,
        buckets: _BucketAccumulator | None,
    ) -> None:
        if buckets is not None:
            buckets.event_count += 1

        if event.quantity_delta == 0:
            return

        if event.is_inbound:
            value = book.receive(event)
            if buckets is not None:
                buckets.add_inbound(event.category, event.quantity, value)
            return

        requested = event.quantity
        available = book.quantity_on_hand(event.item_id)
        issued = requested
        if requested > available:
            if self.over_issue_policy is OverIssuePolicy.REJECT:
                logger.error(
                    "over_issue_rejected",
                    extra={
                        "record_id": event.record_id,
                        "item_id": event.item_id,
                        "requested": requested,
                        "available": available,
                    },
                )
                raise OverIssueError(event.record_id, event.item_id, requested, available)
            logger.warning(
                "over_issue_clamped",
                extra={
                    "record_id": event.record_id,
                    "item_id": event.item_id,
                    "requested": requested,
                    "available": available,
                    "in_window": buckets is not None,
                },
            )
            issued = available
            if buckets is not None:
                buckets.over_issue_qty += requested - available

        cost = book.issue(event.item_id, issued) if issued > 0 else ZERO
        if buckets is not None:
            buckets.add_outbound(event.category, issued, cost)
