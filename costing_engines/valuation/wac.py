"""
costing_engines.valuation.wac -- Weighted average cost (moving average) replay.

Responsibility:
    Keep one running {quantity, total_value} state per item.  Inbound events
    add ``quantity * unit_price``; outbound events remove units at the
    current average cost.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - average_cost == total_value / quantity exactly (0 when quantity is 0);
      the average is derived on demand, never stored, so it cannot drift.
    - Issuing the full quantity on hand removes exactly total_value, so a
      depleted item always returns to {0, 0}.
    - Decimal arithmetic throughout; no rounding inside the replay.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from costing_engines.cancellation import ReplayGuard
from costing_engines.tracer import traced_engine
from costing_engines.valuation.replay import (
    ZERO,
    InventoryBook,
    InventorySnapshot,
    ReplayEngine,
    ReplayResult,
)
from costing_kernel.domain.stock import CostingMethod, OverIssuePolicy, StockEvent
from costing_kernel.domain.window import ReportingWindow


@dataclass(slots=True)
class RunningState:
    """Moving-average state of one item."""

    quantity: int = 0
    total_value: Decimal = ZERO

    @property
    def average_cost(self) -> Decimal:
        if self.quantity == 0:
            return ZERO
        return self.total_value / self.quantity

    def receive(self, quantity: int, unit_price: Decimal) -> Decimal:
        value = unit_price * quantity
        self.quantity += quantity
        self.total_value += value
        return value

    def issue(self, quantity: int) -> Decimal:
        if quantity == self.quantity:
            cost = self.total_value
        else:
            cost = self.total_value * quantity / self.quantity
        self.quantity -= quantity
        self.total_value -= cost
        return cost


class WacBook(InventoryBook):
    """Per-item RunningStates for one WAC replay."""

    def __init__(self) -> None:
        self._states: dict[str, RunningState] = {}

    def state(self, item_id: str) -> RunningState:
        state = self._states.get(item_id)
        if state is None:
            state = self._states[item_id] = RunningState()
        return state

    def quantity_on_hand(self, item_id: str) -> int:
        state = self._states.get(item_id)
        return state.quantity if state is not None else 0

    def receive(self, event: StockEvent) -> Decimal:
        state = self.state(event.item_id)
        # No price on an inbound row: book it at the current average.
        price = event.unit_price if event.unit_price is not None else state.average_cost
        return state.receive(event.quantity, price)

    def issue(self, item_id: str, quantity: int) -> Decimal:
        return self.state(item_id).issue(quantity)

    def snapshot(self) -> InventorySnapshot:
        quantity = 0
        value = ZERO
        for state in self._states.values():
            quantity += state.quantity
            value += state.total_value
        return InventorySnapshot(quantity=quantity, value=value)

    @property
    def item_count(self) -> int:
        return len(self._states)


class WacReplayEngine(ReplayEngine):
    """Replay engine for the weighted average cost method."""

    method = CostingMethod.WAC

    def _new_book(self) -> WacBook:
        return WacBook()


@traced_engine(
    "wac_replay", "1.0",
    fingerprint_fields=("events", "window", "over_issue_policy"),
    count_field="events",
)
def replay_wac(
    *,
    events: Sequence[StockEvent],
    window: ReportingWindow,
    over_issue_policy: OverIssuePolicy = OverIssuePolicy.CLAMP,
    guard: ReplayGuard | None = None,
) -> ReplayResult:
    """Functional entry point for a WAC replay."""
    return WacReplayEngine(over_issue_policy).replay(events, window, guard)
