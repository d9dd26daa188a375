"""
Reservation ledger for delivery note lines.

A delivery note line is issued once with a fixed quantity. Invoices drawn
against the note move quantity from `available` to `reserved` and back;
the two always add up to the issued quantity. Reservations are held in the
line's own unit.
"""
from __future__ import annotations

from dataclasses import replace
import logging
import sqlite3
from typing import Mapping

from ...constants import EPS, NOTE_ISSUED
from ...database.repositories.delivery_notes_repo import (
    DeliveryNoteItem,
    DeliveryNotesRepo,
    ReservationKey,
)
from ...database.repositories.sales_repo import SalesRepo
from ...errors import InsufficientAvailableQuantity, ValidationError
from ..ledger.events import SignalQueue

_log = logging.getLogger(__name__)


def _sort_key(k: ReservationKey):
    return (k.delivery_note_id, k.product_id, k.unit)


class ReservationLedger:
    def __init__(self, conn: sqlite3.Connection, queue: SignalQueue | None = None):
        self.conn = conn
        self.notes = DeliveryNotesRepo(conn)
        self.sales = SalesRepo(conn)
        self.queue = queue if queue is not None else SignalQueue()

    # ---------------------------------------------------------------- lookup

    def require_item(self, key: ReservationKey) -> DeliveryNoteItem:
        item = self.notes.get_item(key)
        if item is None:
            raise ValidationError(
                f"Delivery note {key.delivery_note_id} has no line for product "
                f"{key.product_id} ({key.unit})."
            )
        return item

    def _require_issued(self, delivery_note_id: str) -> None:
        note = self.notes.get_note(delivery_note_id)
        if note is None:
            raise ValidationError(f"Delivery note {delivery_note_id} not found.")
        if note.status != NOTE_ISSUED:
            raise ValidationError(
                f"Delivery note {delivery_note_id} is {note.status}; only issued notes accept reservations."
            )

    # --------------------------------------------------------------- mutate

    def reserve(self, key: ReservationKey, qty: float) -> DeliveryNoteItem:
        self._require_issued(key.delivery_note_id)
        return self._reserve(key, qty)

    def release(self, key: ReservationKey, qty: float) -> DeliveryNoteItem:
        if float(qty) < 0:
            raise ValidationError("Release quantity cannot be negative.")
        item = self.require_item(key)
        reserved = max(0.0, item.reserved_quantity - float(qty))
        if item.reserved_quantity - float(qty) < -EPS:
            _log.warning(
                "Release of %.4f on %s exceeds reserved %.4f; reserved reset to zero",
                qty, key, item.reserved_quantity,
            )
        available = item.quantity - reserved
        self.notes.update_split(item.item_id, reserved, available)
        self.queue.push("reservationChanged", key.delivery_note_id)
        return replace(item, reserved_quantity=reserved, available_quantity=available)

    def apply_delta(
        self,
        old: Mapping[ReservationKey, float],
        new: Mapping[ReservationKey, float],
    ) -> None:
        """
        Swap the reservations in `old` for those in `new`.

        The whole change is checked before any row moves, so a rejected edit
        leaves every line exactly as it was.
        """
        for key in sorted(set(old) | set(new), key=_sort_key):
            held = float(old.get(key, 0.0))
            wanted = float(new.get(key, 0.0))
            if wanted <= EPS and held <= EPS:
                continue
            item = self.notes.get_item(key)
            if item is None:
                if wanted > EPS:
                    self.require_item(key)
                continue
            if wanted > held + EPS:
                self._require_issued(key.delivery_note_id)
            if item.available_quantity + held - wanted < -EPS:
                raise InsufficientAvailableQuantity(key, wanted, item.available_quantity + held)

        for key in sorted(old, key=_sort_key):
            if old[key] > EPS and self.notes.get_item(key) is not None:
                self.release(key, old[key])
        for key in sorted(new, key=_sort_key):
            if new[key] > EPS:
                self._reserve(key, new[key])

    # ----------------------------------------------------------------- query

    def available_for_selection(self, key: ReservationKey, editing_invoice_id: str | None = None) -> float:
        """
        What a picker may offer for `key`: the free quantity plus whatever the
        invoice being edited already holds on the same line.
        """
        item = self.require_item(key)
        return item.available_quantity + self._held_by(editing_invoice_id, key)

    def selectable_items(self, delivery_note_id: str, editing_invoice_id: str | None = None) -> list[DeliveryNoteItem]:
        out = []
        for item in self.notes.list_items(delivery_note_id):
            avail = item.available_quantity + self._held_by(editing_invoice_id, item.key)
            if avail > EPS:
                out.append(replace(item, available_quantity=avail))
        return out

    # --------------------------------------------------------------- helpers

    def _held_by(self, invoice_id: str | None, key: ReservationKey) -> float:
        if not invoice_id:
            return 0.0
        header = self.sales.get_header(invoice_id)
        if header is None or header.delivery_note_id != key.delivery_note_id:
            return 0.0
        return self.sales.quantity_on_invoice(invoice_id, key.product_id, key.unit)

    def _reserve(self, key: ReservationKey, qty: float) -> DeliveryNoteItem:
        qty = float(qty)
        if qty <= 0:
            raise ValidationError("Reserved quantity must be greater than zero.")
        item = self.require_item(key)
        if qty > item.available_quantity + EPS:
            raise InsufficientAvailableQuantity(key, qty, item.available_quantity)
        available = max(0.0, item.available_quantity - qty)
        reserved = item.quantity - available
        self.notes.update_split(item.item_id, reserved, available)
        self.queue.push("reservationChanged", key.delivery_note_id)
        return replace(item, reserved_quantity=reserved, available_quantity=available)
