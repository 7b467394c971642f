"""Record and event builders shared by engine, service and property tests."""

from datetime import datetime, timezone
from decimal import Decimal
from itertools import count

from costing_kernel.domain.stock import StockCategory, StockChangeRecord, StockEvent

_ids = count(1)


def ts(day: int, hour: int = 12, month: int = 1, year: int = 2025) -> datetime:
    """Timestamp helper: noon UTC on the given day by default."""
    return datetime(year, month, day, hour, 0, tzinfo=timezone.utc)


def _price(price) -> Decimal | None:
    return Decimal(str(price)) if price is not None else None


def make_record(
    reason: str | None,
    quantity_change: int,
    timestamp: datetime,
    price=None,
    item_id: str = "ITEM-1",
    supplier_id: str | None = "SUP-1",
    sequence: int = 0,
    record_id: str | None = None,
) -> StockChangeRecord:
    return StockChangeRecord(
        record_id=record_id or f"rec-{next(_ids)}",
        item_id=item_id,
        timestamp=timestamp,
        reason=reason,
        quantity_change=quantity_change,
        price_at_change=_price(price),
        supplier_id=supplier_id,
        sequence=sequence,
    )


def make_event(
    category: StockCategory,
    quantity_delta: int,
    timestamp: datetime,
    price=None,
    item_id: str = "ITEM-1",
    sequence: int = 0,
    record_id: str | None = None,
) -> StockEvent:
    return StockEvent(
        record_id=record_id or f"evt-{next(_ids)}",
        item_id=item_id,
        timestamp=timestamp,
        sequence=sequence,
        category=category,
        quantity_delta=quantity_delta,
        unit_price=_price(price),
        supplier_id="SUP-1",
    )


def purchase(qty: int, price, timestamp: datetime, **kwargs) -> StockEvent:
    return make_event(StockCategory.PURCHASE, qty, timestamp, price, **kwargs)


def sale(qty: int, timestamp: datetime, **kwargs) -> StockEvent:
    return make_event(StockCategory.SALE, -abs(qty), timestamp, **kwargs)


def return_in(qty: int, price, timestamp: datetime, **kwargs) -> StockEvent:
    return make_event(StockCategory.RETURN_IN, qty, timestamp, price, **kwargs)


def return_out(qty: int, timestamp: datetime, **kwargs) -> StockEvent:
    return make_event(StockCategory.RETURN_OUT, -abs(qty), timestamp, **kwargs)


def write_off(qty: int, timestamp: datetime, **kwargs) -> StockEvent:
    return make_event(StockCategory.WRITE_OFF, -abs(qty), timestamp, **kwargs)


def adjustment(delta: int, timestamp: datetime, price=None, **kwargs) -> StockEvent:
    return make_event(StockCategory.ADJUSTMENT, delta, timestamp, price, **kwargs)
