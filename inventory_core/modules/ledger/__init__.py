"""
Ledger package: the single entry point for stock, reservation and balance
mutations.

- Keeps imports light by deferring the controller import until
  create_controller() is called, so the services can import `events` and
  `drafts` from here without a cycle.
"""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

MODULE_TITLE: str = "Ledger"
__all__ = ["MODULE_TITLE", "create_controller"]

if TYPE_CHECKING:
    from .controller import LedgerController  # pragma: no cover


def create_controller(conn: sqlite3.Connection | None = None) -> "LedgerController":
    """
    Factory: returns a LedgerController bound to `conn` (or to a fresh
    connection on the configured database).
    """
    from ..ledger.controller import LedgerController
    from ...database import get_connection
    from ...utils.loggers import get_logger

    get_logger()
    return LedgerController(conn if conn is not None else get_connection())
