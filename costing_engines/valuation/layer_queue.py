"""
costing_engines.valuation.layer_queue -- Index-backed FIFO cost-layer queue.

Responsibility:
    Hold the open cost layers of one item, oldest first, and consume
    quantity from the front.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Owned by exactly one
    FifoBook for the duration of one replay call.

Invariants enforced:
    - Purchase order: layers are only appended at the back and consumed at
      the front.
    - total_quantity always equals the sum of remaining_quantity over the
      live layers (cross-checked by ``recount()``).
    - No live layer has remaining_quantity == 0; depleted layers are
      dropped immediately.

Layers live in a plain list with a head index.  Popping advances the head;
the dead prefix is compacted once it dominates the list, which keeps push
and pop O(1) amortized.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

_COMPACT_THRESHOLD = 64


@dataclass(slots=True)
class CostLayer:
    """
    One inbound batch still (partly) on hand.

    Mutable: ``remaining_quantity`` is decremented in place as the layer is
    consumed.  Only the owning LayerQueue mutates it.
    """

    purchase_timestamp: datetime
    remaining_quantity: int
    unit_cost: Decimal

    @property
    def remaining_value(self) -> Decimal:
        return self.unit_cost * self.remaining_quantity


class LayerQueue:
    """Purchase-ordered queue of CostLayers for one item."""

    def __init__(self) -> None:
        self._layers: list[CostLayer] = []
        self._head = 0
        self._quantity = 0

    def __len__(self) -> int:
        return len(self._layers) - self._head

    def __iter__(self) -> Iterator[CostLayer]:
        for index in range(self._head, len(self._layers)):
            yield self._layers[index]

    @property
    def is_empty(self) -> bool:
        return self._head == len(self._layers)

    @property
    def total_quantity(self) -> int:
        return self._quantity

    def push(self, layer: CostLayer) -> None:
        if layer.remaining_quantity <= 0:
            raise ValueError(
                f"Layer quantity must be positive, got {layer.remaining_quantity}"
            )
        self._layers.append(layer)
        self._quantity += layer.remaining_quantity

    def peek(self) -> CostLayer:
        if self.is_empty:
            raise IndexError("peek from an empty layer queue")
        return self._layers[self._head]

    def pop(self) -> CostLayer:
        if self.is_empty:
            raise IndexError("pop from an empty layer queue")
        layer = self._layers[self._head]
        self._head += 1
        self._quantity -= layer.remaining_quantity
        self._maybe_compact()
        return layer

    def consume(self, quantity: int) -> tuple[int, Decimal]:
        """
        Consume up to ``quantity`` units from the oldest layers.

        Returns:
            (consumed_quantity, consumed_cost).  consumed_quantity is less
            than ``quantity`` only if the queue ran empty.
        """
        remaining = quantity
        cost = Decimal("0")
        while remaining > 0 and not self.is_empty:
            layer = self._layers[self._head]
            consumed = min(remaining, layer.remaining_quantity)
            cost += layer.unit_cost * consumed
            remaining -= consumed
            if consumed == layer.remaining_quantity:
                self.pop()
            else:
                layer.remaining_quantity -= consumed
                self._quantity -= consumed
        return quantity - remaining, cost

    def recount(self) -> int:
        """Sum remaining quantities layer by layer (ignores the cached total)."""
        return sum(layer.remaining_quantity for layer in self)

    def total_value(self) -> Decimal:
        return sum((layer.remaining_value for layer in self), Decimal("0"))

    def _maybe_compact(self) -> None:
        if self._head >= _COMPACT_THRESHOLD and self._head * 2 >= len(self._layers):
            del self._layers[: self._head]
            self._head = 0
