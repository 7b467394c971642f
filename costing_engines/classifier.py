"""
Module: costing_engines.classifier
Responsibility:
    Map raw stock-history records onto canonical StockEvents: one of six
    closed categories, a correctly signed quantity delta, and a unit price
    kept only where it carries meaning (inbound events).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Exhaustive table: every accepted raw code appears in the reason table;
      anything else raises UnclassifiedReasonError.  There is no fallback
      category.
    - Direction: PURCHASE / RETURN_IN never decrease stock; SALE /
      RETURN_OUT / WRITE_OFF never increase it; ADJUSTMENT may do either.
    - Outbound events carry no unit price.
    - Timestamps are converted to aware UTC; naive ones are read as UTC.

Failure modes:
    - UnclassifiedReasonError for unknown or empty reason codes.
    - InvalidQuantitySignError when the delta sign contradicts the category.
    - InvalidUnitPriceError for a negative price at change.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from costing_kernel.domain.stock import (
    StockCategory,
    StockChangeRecord,
    StockEvent,
    as_utc,
)
from costing_kernel.exceptions import (
    InvalidQuantitySignError,
    InvalidUnitPriceError,
    UnclassifiedReasonError,
)
from costing_kernel.logging_config import get_logger

logger = get_logger("engines.classifier")


REASON_CATEGORY_TABLE: Mapping[str, StockCategory] = {
    # Purchases / initial receipts
    "INITIAL_STOCK": StockCategory.PURCHASE,
    "PURCHASE": StockCategory.PURCHASE,
    # Sales
    "SOLD": StockCategory.SALE,
    "SALE": StockCategory.SALE,
    # Customer returns
    "RETURNED_BY_CUSTOMER": StockCategory.RETURN_IN,
    "RETURN_IN": StockCategory.RETURN_IN,
    # Returns to supplier
    "RETURNED_TO_SUPPLIER": StockCategory.RETURN_OUT,
    "RETURN_OUT": StockCategory.RETURN_OUT,
    # Write-offs
    "DAMAGED": StockCategory.WRITE_OFF,
    "DESTROYED": StockCategory.WRITE_OFF,
    "SCRAPPED": StockCategory.WRITE_OFF,
    "EXPIRED": StockCategory.WRITE_OFF,
    "LOST": StockCategory.WRITE_OFF,
    "WRITE_OFF": StockCategory.WRITE_OFF,
    # Manual corrections
    "MANUAL_UPDATE": StockCategory.ADJUSTMENT,
    "PRICE_CHANGE": StockCategory.ADJUSTMENT,
    "ADJUSTMENT": StockCategory.ADJUSTMENT,
}


def normalize_reason(reason: str | None) -> str:
    if reason is None:
        return ""
    return reason.strip().upper()


def category_for(
    record_id: str,
    reason: str | None,
    table: Mapping[str, StockCategory] | None = None,
) -> StockCategory:
    """
    Look up the category for a raw reason code.

    Raises:
        UnclassifiedReasonError: If the code is empty or not in the table.
    """
    lookup = REASON_CATEGORY_TABLE if table is None else table
    category = lookup.get(normalize_reason(reason))
    if category is None:
        logger.error(
            "reason_unclassified",
            extra={"record_id": record_id, "reason": reason},
        )
        raise UnclassifiedReasonError(record_id, reason)
    return category


def classify(
    record: StockChangeRecord,
    table: Mapping[str, StockCategory] | None = None,
) -> StockEvent:
    """
    Classify one raw record into a StockEvent.

    Preconditions:
        record.quantity_change is an integer (zero is allowed and yields a
        no-op event, e.g. a pure PRICE_CHANGE row).

    Postconditions:
        The returned event's category is one of the six canonical ones and
        its delta sign agrees with the category's direction.
        Its timestamp is timezone-aware UTC.
    """
    category = category_for(record.record_id, record.reason, table)
    delta = record.quantity_change

    if (delta > 0 and not category.allows_inbound) or (
        delta < 0 and not category.allows_outbound
    ):
        logger.error(
            "quantity_sign_invalid",
            extra={
                "record_id": record.record_id,
                "category": category.value,
                "quantity_change": delta,
            },
        )
        raise InvalidQuantitySignError(record.record_id, category.value, delta)

    price = record.price_at_change
    if price is not None and price < 0:
        logger.error(
            "unit_price_negative",
            extra={"record_id": record.record_id, "price": str(price)},
        )
        raise InvalidUnitPriceError(record.record_id, price)

    return StockEvent(
        record_id=record.record_id,
        item_id=record.item_id,
        timestamp=as_utc(record.timestamp),
        sequence=record.sequence,
        category=category,
        quantity_delta=delta,
        unit_price=price if delta > 0 else None,
        supplier_id=record.supplier_id,
        raw_reason=record.reason,
    )


def classify_all(
    records: Iterable[StockChangeRecord],
    table: Mapping[str, StockCategory] | None = None,
) -> tuple[StockEvent, ...]:
    """
    Classify every record, aborting on the first failure.

    Input order is preserved; ordering is the resolver's job.
    """
    return tuple(classify(record, table) for record in records)
