"""
Inventory costing engines -- pure calculation layer.

Every engine here is a pure function of its inputs: no I/O, no shared
mutable state, no clock.  Services fetch events and hand them in.

    classifier          raw stock-history rows -> StockEvents
    valuation.wac       weighted average cost replay
    valuation.fifo      FIFO cost-layer replay
    summary             derived metrics and ledger check
    cancellation        cooperative cancellation / time budgets
    tracer              COSTING_ENGINE_TRACE decorator
"""

from costing_engines.cancellation import CancellationToken, ReplayGuard
from costing_engines.classifier import REASON_CATEGORY_TABLE, classify, classify_all
from costing_engines.summary import FinancialSummary, SummaryAssembler, assemble_summary
from costing_engines.valuation import (
    FifoReplayEngine,
    ReplayResult,
    WacReplayEngine,
    replay_fifo,
    replay_wac,
)
from costing_kernel.logging_config import get_logger

logger = get_logger("engines")

__all__ = [
    "REASON_CATEGORY_TABLE",
    "CancellationToken",
    "FifoReplayEngine",
    "FinancialSummary",
    "ReplayGuard",
    "ReplayResult",
    "SummaryAssembler",
    "WacReplayEngine",
    "assemble_summary",
    "classify",
    "classify_all",
    "replay_fifo",
    "replay_wac",
]
