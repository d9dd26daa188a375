# modules/inventory/__init__.py

from .processor import ReturnAdjustmentProcessor, restocks
from .stock_ledger import Reference, StockLedger, to_smallest

__all__ = [
    "Reference",
    "ReturnAdjustmentProcessor",
    "StockLedger",
    "restocks",
    "to_smallest",
]
