"""
Stock -- Value objects for stock-change records and classified stock events.

Responsibility:
    Define the raw audit-trail row handed over by an event source
    (``StockChangeRecord``), the canonical classified event consumed by the
    replay engines (``StockEvent``), the closed category set, and the scope
    a report is filtered by.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by selectors (which produce records), engines (which classify
    and replay events) and services.

Invariants enforced:
    - Closed category set: StockCategory has exactly six members.
    - Direction: a StockEvent is inbound iff quantity_delta > 0 and
      outbound iff quantity_delta < 0.
    - All value objects are frozen; a computation never mutates its input.
    - Time: classified events carry aware UTC timestamps, so ordering and
      window placement use the same clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum


def as_utc(timestamp: datetime) -> datetime:
    """Aware UTC form of ``timestamp``; naive values are taken to be UTC already."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


class StockCategory(str, Enum):
    """Canonical reason categories for stock events."""

    PURCHASE = "purchase"
    SALE = "sale"
    RETURN_IN = "return_in"      # Returned by customer
    RETURN_OUT = "return_out"    # Returned to supplier
    WRITE_OFF = "write_off"
    ADJUSTMENT = "adjustment"

    @property
    def allows_inbound(self) -> bool:
        return self in _INBOUND_CATEGORIES or self is StockCategory.ADJUSTMENT

    @property
    def allows_outbound(self) -> bool:
        return self in _OUTBOUND_CATEGORIES or self is StockCategory.ADJUSTMENT


_INBOUND_CATEGORIES = frozenset({StockCategory.PURCHASE, StockCategory.RETURN_IN})
_OUTBOUND_CATEGORIES = frozenset({
    StockCategory.SALE,
    StockCategory.RETURN_OUT,
    StockCategory.WRITE_OFF,
})


class CostingMethod(str, Enum):
    """Inventory costing methods supported by the replay engines."""

    WAC = "WAC"     # Weighted average cost (perpetual moving average)
    FIFO = "FIFO"   # First-in, first-out layers


class OverIssuePolicy(str, Enum):
    """What to do when an outbound event exceeds the quantity on hand."""

    CLAMP = "clamp"     # Consume what is available, drop the excess
    REJECT = "reject"   # Abort the computation with OverIssueError


@dataclass(frozen=True, slots=True)
class StockChangeRecord:
    """
    One raw stock-change row as delivered by an event source.

    The reason is the raw code stored in the audit trail (e.g. ``SOLD``,
    ``RETURNED_TO_SUPPLIER``); it is mapped onto a StockCategory by the
    event classifier.
    """

    record_id: str
    item_id: str
    timestamp: datetime
    reason: str | None
    quantity_change: int
    price_at_change: Decimal | None = None
    supplier_id: str | None = None
    sequence: int = 0


@dataclass(frozen=True, slots=True)
class StockEvent:
    """
    A classified stock event ready for replay.

    ``unit_price`` is only carried for inbound events; outbound cost is
    derived from the running state of the engine, never from the event.
    """

    record_id: str
    item_id: str
    timestamp: datetime
    sequence: int
    category: StockCategory
    quantity_delta: int
    unit_price: Decimal | None = None
    supplier_id: str | None = None
    raw_reason: str | None = None

    @property
    def is_inbound(self) -> bool:
        return self.quantity_delta > 0

    @property
    def is_outbound(self) -> bool:
        return self.quantity_delta < 0

    @property
    def quantity(self) -> int:
        """Absolute quantity moved."""
        return abs(self.quantity_delta)

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return (as_utc(self.timestamp), self.sequence)


def _normalize_id(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True, slots=True)
class ReportScope:
    """
    Item / supplier filter for a report.

    Blank identifiers normalise to None (no filter).  Supplier matching is
    case-insensitive; item matching is exact.
    """

    item_id: str | None = None
    supplier_id: str | None = None

    @classmethod
    def of(cls, item_id: str | None = None, supplier_id: str | None = None) -> ReportScope:
        return cls(item_id=_normalize_id(item_id), supplier_id=_normalize_id(supplier_id))

    @property
    def is_unfiltered(self) -> bool:
        return self.item_id is None and self.supplier_id is None

    def matches(self, item_id: str, supplier_id: str | None) -> bool:
        """True if a record for (item_id, supplier_id) falls inside this scope."""
        if self.item_id is not None and item_id != self.item_id:
            return False
        if self.supplier_id is not None:
            if supplier_id is None:
                return False
            return supplier_id.strip().lower() == self.supplier_id.lower()
        return True
