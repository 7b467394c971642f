"""Read-only query selectors."""

from costing_kernel.selectors.base import BaseSelector
from costing_kernel.selectors.stock_history_selector import StockHistorySelector

__all__ = ["BaseSelector", "StockHistorySelector"]
