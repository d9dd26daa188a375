"""
Repository for delivery notes and their reservation rows.

Each delivery_note_items row carries the split
    quantity == reserved_quantity + available_quantity
for one (delivery_note_id, product_id, unit) key. The repository only
reads and writes rows; the split arithmetic lives in ReservationLedger.
"""

from __future__ import annotations

from dataclasses import dataclass
import sqlite3
from typing import Iterable


@dataclass(frozen=True)
class ReservationKey:
    delivery_note_id: str
    product_id: str
    unit: str


@dataclass
class DeliveryNote:
    delivery_note_id: str
    date: str
    status: str
    warehouse_keeper_name: str
    sales_rep_name: str | None
    notes: str | None
    created_at: str


@dataclass
class DeliveryNoteItem:
    item_id: int | None
    delivery_note_id: str
    product_id: str
    unit: str
    quantity: float
    reserved_quantity: float
    available_quantity: float

    @property
    def key(self) -> ReservationKey:
        return ReservationKey(self.delivery_note_id, self.product_id, self.unit)


_ITEM_COLS = (
    "item_id, delivery_note_id, product_id, unit, "
    "CAST(quantity AS REAL) AS quantity, "
    "CAST(reserved_quantity AS REAL) AS reserved_quantity, "
    "CAST(available_quantity AS REAL) AS available_quantity"
)


class DeliveryNotesRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def get_note(self, delivery_note_id: str) -> DeliveryNote | None:
        r = self.conn.execute(
            "SELECT * FROM delivery_notes WHERE delivery_note_id=?",
            (delivery_note_id,),
        ).fetchone()
        return DeliveryNote(**dict(r)) if r else None

    def list_notes(self, status: str | None = None) -> list[DeliveryNote]:
        sql = "SELECT * FROM delivery_notes"
        params: list = []
        if status:
            sql += " WHERE status=?"
            params.append(status)
        sql += " ORDER BY DATE(date) DESC, delivery_note_id DESC"
        return [DeliveryNote(**dict(r)) for r in self.conn.execute(sql, params).fetchall()]

    def list_items(self, delivery_note_id: str) -> list[DeliveryNoteItem]:
        rows = self.conn.execute(
            f"SELECT {_ITEM_COLS} FROM delivery_note_items WHERE delivery_note_id=? ORDER BY item_id",
            (delivery_note_id,),
        ).fetchall()
        return [DeliveryNoteItem(**dict(r)) for r in rows]

    def get_item(self, key: ReservationKey) -> DeliveryNoteItem | None:
        r = self.conn.execute(
            f"""
            SELECT {_ITEM_COLS}
              FROM delivery_note_items
             WHERE delivery_note_id=? AND product_id=? AND unit=?
            """,
            (key.delivery_note_id, key.product_id, key.unit),
        ).fetchone()
        return DeliveryNoteItem(**dict(r)) if r else None

    def linked_invoice_statuses(self, delivery_note_id: str) -> list[tuple[str, str]]:
        """[(invoice_id, status), ...] for invoices allocated against the note."""
        rows = self.conn.execute(
            "SELECT invoice_id, status FROM sales_invoices WHERE delivery_note_id=? ORDER BY invoice_id",
            (delivery_note_id,),
        ).fetchall()
        return [(r["invoice_id"], r["status"]) for r in rows]

    # ---------------------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------------------
    def insert_note(self, note: DeliveryNote) -> None:
        self.conn.execute(
            """
            INSERT INTO delivery_notes (
                delivery_note_id, date, status, warehouse_keeper_name,
                sales_rep_name, notes, created_at
            ) VALUES (?,?,?,?,?,?,?)
            """,
            (
                note.delivery_note_id,
                note.date,
                note.status,
                note.warehouse_keeper_name,
                note.sales_rep_name,
                note.notes,
                note.created_at,
            ),
        )

    def insert_items(self, items: Iterable[DeliveryNoteItem]) -> None:
        for it in items:
            self.conn.execute(
                """
                INSERT INTO delivery_note_items (
                    delivery_note_id, product_id, unit, quantity,
                    reserved_quantity, available_quantity
                ) VALUES (?,?,?,?,?,?)
                """,
                (
                    it.delivery_note_id,
                    it.product_id,
                    it.unit,
                    it.quantity,
                    it.reserved_quantity,
                    it.available_quantity,
                ),
            )

    def update_split(self, item_id: int, reserved: float, available: float) -> None:
        self.conn.execute(
            """
            UPDATE delivery_note_items
               SET reserved_quantity=?, available_quantity=?
             WHERE item_id=?
            """,
            (float(reserved), float(available), item_id),
        )

    def set_status(self, delivery_note_id: str, status: str) -> None:
        self.conn.execute(
            "UPDATE delivery_notes SET status=? WHERE delivery_note_id=?",
            (status, delivery_note_id),
        )

    def delete_note(self, delivery_note_id: str) -> None:
        self.conn.execute("DELETE FROM delivery_note_items WHERE delivery_note_id=?", (delivery_note_id,))
        self.conn.execute("DELETE FROM delivery_notes WHERE delivery_note_id=?", (delivery_note_id,))
