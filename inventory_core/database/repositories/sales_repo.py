from __future__ import annotations
from dataclasses import dataclass
import sqlite3
from typing import Iterable


@dataclass
class SalesInvoiceHeader:
    invoice_id: str
    customer_id: str
    date: str
    status: str
    delivery_note_id: str | None
    subtotal: float
    tax_rate: float
    tax_amount: float
    shipping: float
    discount: float
    total: float
    paid: float
    remaining: float
    payment_method: str | None
    notes: str | None
    created_at: str
    updated_at: str


@dataclass
class SalesInvoiceItem:
    item_id: int | None
    invoice_id: str
    product_id: str
    unit: str
    quantity: float
    price: float
    total: float


_HEADER_COLS = (
    "invoice_id, customer_id, date, status, delivery_note_id, "
    "CAST(subtotal AS REAL) AS subtotal, CAST(tax_rate AS REAL) AS tax_rate, "
    "CAST(tax_amount AS REAL) AS tax_amount, CAST(shipping AS REAL) AS shipping, "
    "CAST(discount AS REAL) AS discount, CAST(total AS REAL) AS total, "
    "CAST(paid AS REAL) AS paid, CAST(remaining AS REAL) AS remaining, "
    "payment_method, notes, created_at, updated_at"
)

_ITEM_COLS = (
    "item_id, invoice_id, product_id, unit, "
    "CAST(quantity AS REAL) AS quantity, CAST(price AS REAL) AS price, "
    "CAST(total AS REAL) AS total"
)


class SalesRepo:
    """
    Sales invoice repository.

    Key behavior:
      - Rows only. Stock and reservation effects of a line are applied by
        SalesInvoiceAllocator, which calls into this repo for persistence.
      - Lines of an invoice that references a delivery note must match a
        line on that note (enforced by trg_sales_items_note_line_exists).
      - Nothing here commits; the caller's immediate_tx owns the transaction.
    """

    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def list_invoices(self, customer_id: str | None = None) -> list[SalesInvoiceHeader]:
        sql = f"SELECT {_HEADER_COLS} FROM sales_invoices"
        params: list = []
        if customer_id:
            sql += " WHERE customer_id=?"
            params.append(customer_id)
        sql += " ORDER BY DATE(date) DESC, invoice_id DESC"
        return [SalesInvoiceHeader(**dict(r)) for r in self.conn.execute(sql, params).fetchall()]

    def get_header(self, invoice_id: str) -> SalesInvoiceHeader | None:
        r = self.conn.execute(
            f"SELECT {_HEADER_COLS} FROM sales_invoices WHERE invoice_id=?",
            (invoice_id,),
        ).fetchone()
        return SalesInvoiceHeader(**dict(r)) if r else None

    def list_items(self, invoice_id: str) -> list[SalesInvoiceItem]:
        rows = self.conn.execute(
            f"SELECT {_ITEM_COLS} FROM sales_invoice_items WHERE invoice_id=? ORDER BY item_id",
            (invoice_id,),
        ).fetchall()
        return [SalesInvoiceItem(**dict(r)) for r in rows]

    def quantity_on_invoice(self, invoice_id: str, product_id: str, unit: str) -> float:
        """Sum of line quantities on one invoice for a (product, unit) pair."""
        r = self.conn.execute(
            """
            SELECT COALESCE(SUM(CAST(quantity AS REAL)), 0.0) AS q
              FROM sales_invoice_items
             WHERE invoice_id=? AND product_id=? AND unit=?
            """,
            (invoice_id, product_id, unit),
        ).fetchone()
        return float(r["q"])

    # ---------------------------------------------------------------------
    # WRITES
    # ---------------------------------------------------------------------
    def insert_header(self, h: SalesInvoiceHeader) -> None:
        self.conn.execute(
            """
            INSERT INTO sales_invoices (
                invoice_id, customer_id, date, status, delivery_note_id,
                subtotal, tax_rate, tax_amount, shipping, discount,
                total, paid, remaining, payment_method, notes,
                created_at, updated_at
            )
            VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                h.invoice_id,
                h.customer_id,
                h.date,
                h.status,
                h.delivery_note_id,
                h.subtotal,
                h.tax_rate,
                h.tax_amount,
                h.shipping,
                h.discount,
                h.total,
                h.paid,
                h.remaining,
                h.payment_method,
                h.notes,
                h.created_at,
                h.updated_at,
            ),
        )

    def update_header(self, h: SalesInvoiceHeader) -> None:
        self.conn.execute(
            """
            UPDATE sales_invoices
               SET customer_id=?, date=?, status=?, delivery_note_id=?,
                   subtotal=?, tax_rate=?, tax_amount=?, shipping=?, discount=?,
                   total=?, paid=?, remaining=?, payment_method=?, notes=?,
                   updated_at=?
             WHERE invoice_id=?
            """,
            (
                h.customer_id,
                h.date,
                h.status,
                h.delivery_note_id,
                h.subtotal,
                h.tax_rate,
                h.tax_amount,
                h.shipping,
                h.discount,
                h.total,
                h.paid,
                h.remaining,
                h.payment_method,
                h.notes,
                h.updated_at,
                h.invoice_id,
            ),
        )

    def insert_items(self, items: Iterable[SalesInvoiceItem]) -> None:
        for it in items:
            self.conn.execute(
                """
                INSERT INTO sales_invoice_items (
                    invoice_id, product_id, unit, quantity, price, total
                ) VALUES (?,?,?,?,?,?)
                """,
                (it.invoice_id, it.product_id, it.unit, it.quantity, it.price, it.total),
            )

    def delete_items(self, invoice_id: str) -> None:
        self.conn.execute("DELETE FROM sales_invoice_items WHERE invoice_id=?", (invoice_id,))

    def delete_invoice(self, invoice_id: str) -> None:
        self.delete_items(invoice_id)
        self.conn.execute("DELETE FROM sales_invoices WHERE invoice_id=?", (invoice_id,))
