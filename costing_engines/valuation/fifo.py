"""
costing_engines.valuation.fifo -- First-in, first-out layered replay.

Responsibility:
    Keep one LayerQueue per item.  Inbound events push a layer at their unit
    price; outbound events consume the oldest layers first.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - The running quantity counter of an item equals the layer-by-layer
      sum of its remaining quantities after every event that touches it
      (LayerDriftError otherwise).  The end of the replay recounts every
      item once more.
    - Closing value is the sum of remaining_quantity * unit_cost over all
      remaining layers.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from costing_engines.cancellation import ReplayGuard
from costing_engines.tracer import traced_engine
from costing_engines.valuation.layer_queue import CostLayer, LayerQueue
from costing_engines.valuation.replay import (
    ZERO,
    InventoryBook,
    InventorySnapshot,
    ReplayEngine,
    ReplayResult,
)
from costing_kernel.domain.stock import CostingMethod, OverIssuePolicy, StockEvent
from costing_kernel.domain.window import ReportingWindow
from costing_kernel.exceptions import LayerDriftError
from costing_kernel.logging_config import get_logger

logger = get_logger("engines.valuation.fifo")


class FifoBook(InventoryBook):
    """Per-item layer queues plus independent running quantity counters."""

    def __init__(self) -> None:
        self._queues: dict[str, LayerQueue] = {}
        self._running: dict[str, int] = {}

    def queue(self, item_id: str) -> LayerQueue:
        queue = self._queues.get(item_id)
        if queue is None:
            queue = self._queues[item_id] = LayerQueue()
            self._running[item_id] = 0
        return queue

    def quantity_on_hand(self, item_id: str) -> int:
        return self._running.get(item_id, 0)

    def receive(self, event: StockEvent) -> Decimal:
        queue = self.queue(event.item_id)
        price = event.unit_price
        if price is None:
            # No price on an inbound row: book it at the average of open layers.
            quantity = queue.total_quantity
            price = queue.total_value() / quantity if quantity else ZERO
        queue.push(CostLayer(event.timestamp, event.quantity, price))
        self._running[event.item_id] += event.quantity
        return price * event.quantity

    def issue(self, item_id: str, quantity: int) -> Decimal:
        consumed, cost = self.queue(item_id).consume(quantity)
        self._running[item_id] -= consumed
        return cost

    def verify(self, item_id: str) -> None:
        queue = self._queues.get(item_id)
        layer_quantity = queue.recount() if queue is not None else 0
        running = self._running.get(item_id, 0)
        if layer_quantity != running:
            self._drift(item_id, layer_quantity, running)

    def finalize(self) -> None:
        for item_id, queue in self._queues.items():
            layer_quantity = queue.recount()
            if layer_quantity != self._running[item_id]:
                self._drift(item_id, layer_quantity, self._running[item_id])

    def snapshot(self) -> InventorySnapshot:
        quantity = 0
        value = ZERO
        for queue in self._queues.values():
            quantity += queue.total_quantity
            value += queue.total_value()
        return InventorySnapshot(quantity=quantity, value=value)

    @property
    def item_count(self) -> int:
        return len(self._queues)

    def layers(self, item_id: str) -> tuple[CostLayer, ...]:
        queue = self._queues.get(item_id)
        return tuple(queue) if queue is not None else ()

    @staticmethod
    def _drift(item_id: str, layer_quantity: int, running: int) -> None:
        logger.error(
            "fifo_layer_drift",
            extra={
                "item_id": item_id,
                "layer_quantity": layer_quantity,
                "running_quantity": running,
            },
        )
        raise LayerDriftError(item_id, layer_quantity, running)


class FifoReplayEngine(ReplayEngine):
    """Replay engine for the FIFO layer method."""

    method = CostingMethod.FIFO

    def _new_book(self) -> FifoBook:
        return FifoBook()


@traced_engine(
    "fifo_replay", "1.0",
    fingerprint_fields=("events", "window", "over_issue_policy"),
    count_field="events",
)
def replay_fifo(
    *,
    events: Sequence[StockEvent],
    window: ReportingWindow,
    over_issue_policy: OverIssuePolicy = OverIssuePolicy.CLAMP,
    guard: ReplayGuard | None = None,
) -> ReplayResult:
    """Functional entry point for a FIFO replay."""
    return FifoReplayEngine(over_issue_policy).replay(events, window, guard)
