"""
Typed Exception Hierarchy for the Inventory Costing Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A costing run either returns a complete, internally consistent summary or
fails with a specific, typed error. Callers catch by type and read the
structured attributes; they never parse message strings.

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (record id, dates, quantities)

Example:
    try:
        summary = service.get_summary(CostingMethod.FIFO, from_date, to_date)
    except UnclassifiedReasonError as e:
        log.warning(f"Record {e.record_id} has unknown reason {e.reason!r}")
        api_response(code=e.code, record_id=e.record_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CostingError (base)
    |
    +-- WindowError
    |   +-- InvalidWindowError
    |
    +-- ClassificationError
    |   +-- UnclassifiedReasonError
    |   +-- InvalidQuantitySignError
    |   +-- InvalidUnitPriceError
    |
    +-- ReplayError
    |   +-- UnorderedEventsError
    |   +-- OverIssueError
    |   +-- LayerDriftError
    |   +-- LedgerImbalanceError
    |   +-- ReplayCancelledError
    |   +-- ReplayTimeoutError
    |
    +-- ConfigurationError
        +-- InvalidCostingConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                   | When Raised
----------------|------------------------|----------------------------------------
Window          | INVALID_WINDOW         | from_date > to_date
----------------|------------------------|----------------------------------------
Classification  | UNCLASSIFIED_REASON    | Raw reason code has no category
                | INVALID_QUANTITY_SIGN  | Delta sign contradicts the category
                | INVALID_UNIT_PRICE     | Negative price at change
----------------|------------------------|----------------------------------------
Replay          | EVENTS_OUT_OF_ORDER    | Events not in (timestamp, sequence) order
                | OVER_ISSUE             | Outbound exceeds stock (REJECT policy)
                | LAYER_DRIFT            | FIFO layers disagree with running qty
                | LEDGER_IMBALANCE       | Opening + in - out != closing
                | REPLAY_CANCELLED       | Cancellation token was set
                | REPLAY_TIMEOUT         | Replay exceeded its time budget
----------------|------------------------|----------------------------------------
Configuration   | INVALID_COSTING_CONFIG | Config value missing or out of range

Empty event streams and division by zero are NOT errors: an empty stream
produces an all-zero summary, and zero-quantity averages are defined as 0.
"""

from datetime import date
from decimal import Decimal


class CostingError(Exception):
    """
    Base exception for all inventory costing errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "COSTING_ERROR"


# Window-related exceptions


class WindowError(CostingError):
    """Base exception for reporting window errors."""

    code: str = "WINDOW_ERROR"


class InvalidWindowError(WindowError):
    """Reporting window has from_date after to_date."""

    code: str = "INVALID_WINDOW"

    def __init__(self, from_date: date, to_date: date):
        self.from_date = from_date
        self.to_date = to_date
        super().__init__(
            f"Invalid reporting window: from {from_date} is after to {to_date}"
        )


# Classification-related exceptions


class ClassificationError(CostingError):
    """Base exception for raw stock record classification errors."""

    code: str = "CLASSIFICATION_ERROR"


class UnclassifiedReasonError(ClassificationError):
    """
    Raw reason code has no mapping to a canonical stock category.

    Aborts the whole computation. Unknown codes are never defaulted to
    ADJUSTMENT, since that would corrupt bucket totals silently.
    """

    code: str = "UNCLASSIFIED_REASON"

    def __init__(self, record_id: str, reason: str | None):
        self.record_id = record_id
        self.reason = reason
        super().__init__(
            f"Stock record {record_id} has unclassified reason code: {reason!r}"
        )


class InvalidQuantitySignError(ClassificationError):
    """Quantity delta sign contradicts the category's direction."""

    code: str = "INVALID_QUANTITY_SIGN"

    def __init__(self, record_id: str, category: str, quantity_change: int):
        self.record_id = record_id
        self.category = category
        self.quantity_change = quantity_change
        super().__init__(
            f"Stock record {record_id}: quantity change {quantity_change} "
            f"has the wrong sign for category {category}"
        )


class InvalidUnitPriceError(ClassificationError):
    """Price at change is negative."""

    code: str = "INVALID_UNIT_PRICE"

    def __init__(self, record_id: str, price: Decimal):
        self.record_id = record_id
        self.price = str(price)
        super().__init__(f"Stock record {record_id} has negative unit price {price}")


# Replay-related exceptions


class ReplayError(CostingError):
    """Base exception for costing replay errors."""

    code: str = "REPLAY_ERROR"


class UnorderedEventsError(ReplayError):
    """Events were handed to an engine out of (timestamp, sequence) order."""

    code: str = "EVENTS_OUT_OF_ORDER"

    def __init__(self, record_id: str, previous_record_id: str):
        self.record_id = record_id
        self.previous_record_id = previous_record_id
        super().__init__(
            f"Stock record {record_id} sorts before the preceding record "
            f"{previous_record_id}"
        )


class OverIssueError(ReplayError):
    """
    Outbound quantity exceeds the quantity on hand.

    Only raised under the REJECT over-issue policy; the default CLAMP policy
    drops the excess and records it on the summary instead.
    """

    code: str = "OVER_ISSUE"

    def __init__(self, record_id: str, item_id: str, requested: int, available: int):
        self.record_id = record_id
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Stock record {record_id} issues {requested} of item {item_id} "
            f"but only {available} on hand"
        )


class LayerDriftError(ReplayError):
    """FIFO layer quantities no longer sum to the running quantity counter."""

    code: str = "LAYER_DRIFT"

    def __init__(self, item_id: str, layer_quantity: int, running_quantity: int):
        self.item_id = item_id
        self.layer_quantity = layer_quantity
        self.running_quantity = running_quantity
        super().__init__(
            f"FIFO layer drift for item {item_id}: layers hold {layer_quantity}, "
            f"running quantity is {running_quantity}"
        )


class LedgerImbalanceError(ReplayError):
    """Opening + inbound - outbound does not reconcile to closing value."""

    code: str = "LEDGER_IMBALANCE"

    def __init__(self, method: str, expected: Decimal, actual: Decimal, epsilon: Decimal):
        self.method = method
        self.expected = str(expected)
        self.actual = str(actual)
        self.epsilon = str(epsilon)
        super().__init__(
            f"{method} ledger does not balance: expected closing value "
            f"{expected}, got {actual} (epsilon {epsilon})"
        )


class ReplayCancelledError(ReplayError):
    """Replay was cancelled cooperatively by the caller."""

    code: str = "REPLAY_CANCELLED"

    def __init__(self, processed: int):
        self.processed = processed
        super().__init__(f"Replay cancelled after {processed} events")


class ReplayTimeoutError(ReplayError):
    """Replay exceeded its time budget."""

    code: str = "REPLAY_TIMEOUT"

    def __init__(self, processed: int, timeout_seconds: float):
        self.processed = processed
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Replay timed out after {processed} events "
            f"(budget {timeout_seconds}s)"
        )


# Configuration-related exceptions


class ConfigurationError(CostingError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidCostingConfigError(ConfigurationError):
    """A configuration value is missing or out of range."""

    code: str = "INVALID_COSTING_CONFIG"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid costing configuration '{key}': {reason}")
