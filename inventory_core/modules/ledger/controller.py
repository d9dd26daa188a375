"""
LedgerController: the public surface for every stock, reservation and
balance mutation.

Each mutating call is one unit of work:
  lock -> BEGIN IMMEDIATE -> business operation -> COMMIT -> emit signals.
Any failure rolls the whole operation back, is logged, and is re-raised;
sqlite errors surface as PersistenceError. Signals queued during a failed
operation are discarded.
"""
from __future__ import annotations

from contextlib import contextmanager
import logging
import sqlite3
import threading
from typing import Iterable, Iterator

from PySide6.QtCore import QObject

from ...constants import UNIT_SMALLEST
from ...database.transactions import immediate_tx
from ...errors import DomainError, PersistenceError, ValidationError
from ...utils.cache import RecordCache
from ..balances.reconciliation import BalanceReconciler
from ..delivery_notes.notes import DeliveryNoteManager
from ..delivery_notes.reservation_ledger import ReservationLedger
from ..inventory.processor import ReturnAdjustmentProcessor
from ..inventory.stock_ledger import StockLedger
from ..sales.allocator import SalesInvoiceAllocator
from .drafts import DeliveryNoteLineDraft, InvoiceDraft, ReturnDraft
from .events import LedgerEvents, SignalQueue

_log = logging.getLogger(__name__)


class LedgerController(QObject):
    """
    Owns one sqlite connection and is bound to the thread that opened it
    (sqlite3's default check_same_thread). The RLock makes the controller
    re-entrant: a slot connected to `events` may call back into it while
    signals are being flushed.
    """

    def __init__(self, conn: sqlite3.Connection, parent: QObject | None = None):
        super().__init__(parent)
        self.conn = conn
        self.events = LedgerEvents(self)
        self.queue = SignalQueue()
        self._lock = threading.RLock()

        self.stock = StockLedger(conn, self.queue)
        self.reservations = ReservationLedger(conn, self.queue)
        self.balances = BalanceReconciler(conn, self.queue)
        self.allocator = SalesInvoiceAllocator(
            conn, self.stock, self.reservations, self.balances, self.queue
        )
        self.processor = ReturnAdjustmentProcessor(conn, self.stock, self.balances, self.queue)
        self.notes = DeliveryNoteManager(conn, self.stock, self.queue)
        self.cache = RecordCache(conn).bind(self.events)

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------
    @contextmanager
    def _unit_of_work(self, op: str, ref: str | None = None) -> Iterator[None]:
        with self._lock:
            outermost = not self.conn.in_transaction
            label = f"{op} {ref}" if ref else op
            try:
                with immediate_tx(self.conn):
                    yield
            except DomainError as e:
                if outermost:
                    self.queue.clear()
                _log.warning("ROLLBACK %s: %s", label, e)
                raise
            except sqlite3.Error as e:
                if outermost:
                    self.queue.clear()
                _log.exception("ROLLBACK %s due to DB error", label)
                raise PersistenceError(f"{op} could not be saved: {e}") from e
            except Exception:
                if outermost:
                    self.queue.clear()
                _log.exception("ROLLBACK %s due to unexpected error", label)
                raise
            if outermost:
                self.queue.flush(self.events)

    # ------------------------------------------------------------------
    # Sales invoices
    # ------------------------------------------------------------------
    def save_invoice(self, draft: InvoiceDraft) -> str:
        with self._unit_of_work("save_invoice", draft.invoice_id):
            old_note_id = self._note_of(draft.invoice_id)
            if draft.invoice_id:
                invoice_id = self.allocator.update(draft)
            else:
                invoice_id = self.allocator.create(draft)
            for note_id in dict.fromkeys((old_note_id, draft.delivery_note_id)):
                self.notes.resync_settlement(note_id)
            self.queue.push("invoiceSaved", invoice_id)
        return invoice_id

    def delete_invoice(self, invoice_id: str) -> None:
        with self._unit_of_work("delete_invoice", invoice_id):
            note_id = self._note_of(invoice_id)
            self.allocator.delete(invoice_id)
            self.notes.resync_settlement(note_id)
            self.queue.push("invoiceDeleted", invoice_id)

    def _note_of(self, invoice_id: str | None) -> str | None:
        header = self.allocator.repo.get_header(invoice_id) if invoice_id else None
        return header.delivery_note_id if header else None

    def get_available_quantity(
        self,
        delivery_note_id: str,
        product_id: str,
        unit: str = UNIT_SMALLEST,
        excluding_invoice_id: str | None = None,
    ) -> float:
        with self._lock:
            return self.allocator.get_available_quantity(
                delivery_note_id, product_id, unit, excluding_invoice_id
            )

    def selectable_items(self, delivery_note_id: str, editing_invoice_id: str | None = None):
        with self._lock:
            return self.reservations.selectable_items(delivery_note_id, editing_invoice_id)

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------
    def save_adjustment(
        self,
        product_id: str,
        type: str,
        quantity: float,
        reason: str,
        *,
        unit: str = UNIT_SMALLEST,
        date: str | None = None,
        notes: str | None = None,
    ) -> str:
        with self._unit_of_work("save_adjustment", product_id):
            adjustment_id = self.processor.apply_adjustment(
                product_id, type, quantity, reason, unit=unit, date=date, notes=notes
            )
            self.queue.push("adjustmentSaved", adjustment_id)
        return adjustment_id

    def delete_adjustment(self, adjustment_id: str) -> None:
        with self._unit_of_work("delete_adjustment", adjustment_id):
            self.processor.delete_adjustment(adjustment_id)
            self.queue.push("adjustmentDeleted", adjustment_id)

    # ------------------------------------------------------------------
    # Returns
    # ------------------------------------------------------------------
    def save_return(self, draft: ReturnDraft) -> str:
        with self._unit_of_work("save_return", draft.product_id):
            return_id = self.processor.apply_return(draft)
            self.queue.push("returnSaved", return_id)
        return return_id

    def delete_return(self, return_id: str) -> None:
        with self._unit_of_work("delete_return", return_id):
            self.processor.delete_return(return_id)
            self.queue.push("returnDeleted", return_id)

    # ------------------------------------------------------------------
    # Delivery notes
    # ------------------------------------------------------------------
    def issue_delivery_note(
        self,
        lines: Iterable[DeliveryNoteLineDraft],
        warehouse_keeper_name: str,
        *,
        date: str | None = None,
        sales_rep_name: str | None = None,
        notes: str | None = None,
    ) -> str:
        with self._unit_of_work("issue_delivery_note"):
            return self.notes.issue(date, list(lines), warehouse_keeper_name, sales_rep_name, notes)

    def delete_delivery_note(self, delivery_note_id: str) -> None:
        with self._unit_of_work("delete_delivery_note", delivery_note_id):
            self.notes.delete(delivery_note_id)

    def settle_delivery_note(self, delivery_note_id: str) -> None:
        with self._unit_of_work("settle_delivery_note", delivery_note_id):
            self.notes.settle(delivery_note_id)

    def reopen_delivery_note(self, delivery_note_id: str) -> None:
        with self._unit_of_work("reopen_delivery_note", delivery_note_id):
            self.notes.reopen(delivery_note_id)

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------
    def recompute_balance(self, entity_type: str, entity_id: str) -> float:
        if not entity_id:
            raise ValidationError("Entity id is required.")
        with self._unit_of_work("recompute_balance", entity_id):
            balance = self.balances.recompute(entity_type, entity_id)
        return balance

    def recompute_all_balances(self) -> dict[tuple[str, str], float]:
        with self._unit_of_work("recompute_all_balances"):
            out = self.balances.recompute_all()
        return out
