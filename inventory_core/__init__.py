"""
inventory_core: stock, delivery note reservation and party balance ledger
on SQLite, with Qt signals for the UI layer.
"""

from .constants import APP_NAME

__version__ = "1.0.0"
__all__ = ["APP_NAME", "__version__"]
