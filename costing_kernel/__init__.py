"""
Inventory costing kernel.

Domain value objects, typed exceptions, structured logging and the
read-only stock-history persistence used by the costing engines.
"""

from costing_kernel.logging_config import get_logger

logger = get_logger("kernel")
