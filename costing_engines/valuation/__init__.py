"""
Valuation replay engines.

WAC keeps a moving average per item; FIFO keeps an index-backed queue of
cost layers per item.  Both share the window/bucket replay loop in
``costing_engines.valuation.replay``.
"""

from costing_engines.valuation.fifo import FifoBook, FifoReplayEngine, replay_fifo
from costing_engines.valuation.layer_queue import CostLayer, LayerQueue
from costing_engines.valuation.replay import (
    BucketTotals,
    InventoryBook,
    InventorySnapshot,
    ReplayEngine,
    ReplayResult,
)
from costing_engines.valuation.wac import (
    RunningState,
    WacBook,
    WacReplayEngine,
    replay_wac,
)

__all__ = [
    "BucketTotals",
    "CostLayer",
    "FifoBook",
    "FifoReplayEngine",
    "InventoryBook",
    "InventorySnapshot",
    "LayerQueue",
    "ReplayEngine",
    "ReplayResult",
    "RunningState",
    "WacBook",
    "WacReplayEngine",
    "replay_fifo",
    "replay_wac",
]
