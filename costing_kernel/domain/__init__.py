"""Pure domain value objects for the inventory costing kernel."""

from costing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from costing_kernel.domain.stock import (
    CostingMethod,
    OverIssuePolicy,
    ReportScope,
    StockCategory,
    StockChangeRecord,
    StockEvent,
)
from costing_kernel.domain.window import ReportingWindow

__all__ = [
    "Clock",
    "CostingMethod",
    "DeterministicClock",
    "OverIssuePolicy",
    "ReportScope",
    "ReportingWindow",
    "StockCategory",
    "StockChangeRecord",
    "StockEvent",
    "SystemClock",
]
