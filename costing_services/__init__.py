"""
Costing services -- orchestration over the pure engines.

    event_source                 StockEventSource protocol + in-memory / SQL sources
    window_resolver              window defaults, validation, ordered events
    financial_summary_service    get_summary / get_summaries
"""

from costing_services.event_source import (
    InMemoryStockEventSource,
    SqlStockEventSource,
    StockEventSource,
)
from costing_services.financial_summary_service import FinancialSummaryService
from costing_services.window_resolver import ResolvedRequest, WindowScopeResolver

__all__ = [
    "FinancialSummaryService",
    "InMemoryStockEventSource",
    "ResolvedRequest",
    "SqlStockEventSource",
    "StockEventSource",
    "WindowScopeResolver",
]
