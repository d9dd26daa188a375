"""
Qt notification surface for ledger changes.

Services never emit directly: they push notices onto a SignalQueue while a
unit of work is open. The controller flushes the queue through LedgerEvents
only after the transaction commits and drops it on rollback, so listeners
never observe state that was rolled back.
"""
from __future__ import annotations

import logging
from typing import Any

from PySide6.QtCore import QObject, Signal

_log = logging.getLogger(__name__)


class LedgerEvents(QObject):
    stockChanged = Signal(str)                    # product_id
    stockClamped = Signal(str, float, float)      # product_id, requested delta, applied delta
    reservationChanged = Signal(str)              # delivery_note_id
    balanceChanged = Signal(str, str, float)      # entity_type, entity_id, new balance
    invoiceSaved = Signal(str)
    invoiceDeleted = Signal(str)
    returnSaved = Signal(str)
    returnDeleted = Signal(str)
    adjustmentSaved = Signal(str)
    adjustmentDeleted = Signal(str)
    deliveryNoteChanged = Signal(str)

    def __init__(self, parent: QObject | None = None):
        super().__init__(parent)


class SignalQueue:
    """Ordered, de-duplicated notices waiting for a commit."""

    def __init__(self):
        self._items: list[tuple[str, tuple[Any, ...]]] = []

    def push(self, name: str, *args: Any) -> None:
        item = (name, args)
        # a later balance value supersedes an earlier one for the same entity
        if name == "balanceChanged":
            self._items = [
                i for i in self._items
                if not (i[0] == name and i[1][:2] == args[:2])
            ]
        elif item in self._items:
            return
        self._items.append(item)

    def drain(self) -> list[tuple[str, tuple[Any, ...]]]:
        items, self._items = self._items, []
        return items

    def clear(self) -> None:
        self._items = []

    def __len__(self) -> int:
        return len(self._items)

    def flush(self, events: LedgerEvents) -> None:
        for name, args in self.drain():
            getattr(events, name).emit(*args)
            _log.debug("emitted %s%r", name, args)
