from __future__ import annotations

import logging
import sqlite3
from collections import OrderedDict
from typing import Iterable

from ...constants import (
    EPS,
    INVOICE_DELIVERED,
    NOTE_ISSUED,
    NOTE_SETTLED,
    PREFIX_DELIVERY_NOTE,
    REF_DELIVERY_NOTE,
    UNITS,
)
from ...database.repositories.delivery_notes_repo import DeliveryNote, DeliveryNoteItem, DeliveryNotesRepo
from ...database.repositories.products_repo import ProductsRepo
from ...errors import ValidationError
from ...utils.helpers import new_document_id, now_iso, today_str
from ...utils.validators import require_choice, require_positive, require_text
from ..inventory.stock_ledger import Reference, StockLedger
from ..ledger.drafts import DeliveryNoteLineDraft
from ..ledger.events import SignalQueue

_log = logging.getLogger(__name__)


class DeliveryNoteManager:
    """
    Issues, settles, reopens and deletes delivery notes.

    A note's lines are written once at issue time with everything available
    and nothing reserved; invoices then draw on them via ReservationLedger.
    Goods stay in warehouse stock until the note is settled.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        stock: StockLedger | None = None,
        queue: SignalQueue | None = None,
    ):
        self.conn = conn
        self.repo = DeliveryNotesRepo(conn)
        self.products = ProductsRepo(conn)
        self.queue = queue if queue is not None else SignalQueue()
        self.stock = stock if stock is not None else StockLedger(conn, self.queue)

    def issue(
        self,
        date: str | None,
        lines: Iterable[DeliveryNoteLineDraft],
        warehouse_keeper_name: str,
        sales_rep_name: str | None = None,
        notes: str | None = None,
    ) -> str:
        keeper = require_text(warehouse_keeper_name, "Warehouse keeper name")
        merged: "OrderedDict[tuple[str, str], float]" = OrderedDict()
        for ln in lines:
            self.products.require(ln.product_id)
            require_choice(ln.unit, UNITS, "unit")
            qty = require_positive(ln.quantity, "Quantity")
            merged[(ln.product_id, ln.unit)] = merged.get((ln.product_id, ln.unit), 0.0) + qty
        if not merged:
            raise ValidationError("A delivery note needs at least one line.")

        date = date or today_str()
        note_id = new_document_id(self.conn, "delivery_notes", "delivery_note_id", PREFIX_DELIVERY_NOTE, date)
        self.repo.insert_note(
            DeliveryNote(
                delivery_note_id=note_id,
                date=date,
                status=NOTE_ISSUED,
                warehouse_keeper_name=keeper,
                sales_rep_name=(sales_rep_name or "").strip() or None,
                notes=notes,
                created_at=now_iso(),
            )
        )
        self.repo.insert_items(
            DeliveryNoteItem(
                item_id=None,
                delivery_note_id=note_id,
                product_id=pid,
                unit=unit,
                quantity=qty,
                reserved_quantity=0.0,
                available_quantity=qty,
            )
            for (pid, unit), qty in merged.items()
        )
        self.queue.push("deliveryNoteChanged", note_id)
        _log.info("Issued delivery note %s with %d line(s)", note_id, len(merged))
        return note_id

    def delete(self, delivery_note_id: str) -> None:
        self._require(delivery_note_id)
        if self.repo.linked_invoice_statuses(delivery_note_id):
            raise ValidationError(
                f"Delivery note {delivery_note_id} is referenced by invoices and cannot be deleted."
            )
        if any(it.reserved_quantity > EPS for it in self.repo.list_items(delivery_note_id)):
            raise ValidationError(
                f"Delivery note {delivery_note_id} still holds reservations and cannot be deleted."
            )
        self.stock.revert(self._reference(delivery_note_id))
        self.repo.delete_note(delivery_note_id)
        self.queue.push("deliveryNoteChanged", delivery_note_id)
        _log.info("Deleted delivery note %s", delivery_note_id)

    def settle(self, delivery_note_id: str) -> None:
        """
        Close the note out: the quantity its invoices sold leaves warehouse
        stock now, not when the note was issued.
        """
        note = self._require(delivery_note_id)
        if note.status == NOTE_SETTLED:
            raise ValidationError(f"Delivery note {delivery_note_id} is already settled.")
        pending = [
            inv for inv, status in self.repo.linked_invoice_statuses(delivery_note_id)
            if status != INVOICE_DELIVERED
        ]
        if pending:
            raise ValidationError(
                f"Delivery note {delivery_note_id} has undelivered invoices: {', '.join(pending)}."
            )
        self.repo.set_status(delivery_note_id, NOTE_SETTLED)
        self._post_sold(delivery_note_id)
        self.queue.push("deliveryNoteChanged", delivery_note_id)
        _log.info("Settled delivery note %s", delivery_note_id)

    def reopen(self, delivery_note_id: str) -> None:
        note = self._require(delivery_note_id)
        if note.status != NOTE_SETTLED:
            raise ValidationError(
                f"Delivery note {delivery_note_id} is {note.status}; only settled notes can be reopened."
            )
        self.stock.revert(self._reference(delivery_note_id))
        self.repo.set_status(delivery_note_id, NOTE_ISSUED)
        self.queue.push("deliveryNoteChanged", delivery_note_id)
        _log.info("Reopened delivery note %s", delivery_note_id)

    def resync_settlement(self, delivery_note_id: str | None) -> None:
        """Re-post a settled note's sold quantities after one of its invoices changed."""
        if not delivery_note_id:
            return
        note = self.repo.get_note(delivery_note_id)
        if note is None or note.status != NOTE_SETTLED:
            return
        self._post_sold(delivery_note_id)
        _log.info("Re-synced settlement stock for delivery note %s", delivery_note_id)

    def _post_sold(self, delivery_note_id: str) -> None:
        sold: dict[str, float] = {}
        for it in self.repo.list_items(delivery_note_id):
            if it.reserved_quantity <= EPS:
                continue
            product = self.products.require(it.product_id)
            sold[it.product_id] = sold.get(it.product_id, 0.0) + product.to_smallest(
                it.reserved_quantity, it.unit
            )
        self.stock.apply_delta(
            self._reference(delivery_note_id),
            [(pid, -qty) for pid, qty in sold.items()],
        )

    @staticmethod
    def _reference(delivery_note_id: str) -> Reference:
        return Reference(REF_DELIVERY_NOTE, delivery_note_id)

    def _require(self, delivery_note_id: str) -> DeliveryNote:
        note = self.repo.get_note(delivery_note_id)
        if note is None:
            raise ValidationError(f"Delivery note {delivery_note_id} not found.")
        return note
