"""ORM models for the inventory costing kernel."""

from costing_kernel.models.stock_history import StockHistoryModel

__all__ = ["StockHistoryModel"]
