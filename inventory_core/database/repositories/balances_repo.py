"""
Inputs to the balance recompute.

Customer balance inputs: delivered sales invoices and balance events.
Supplier balance inputs: purchase invoices, supplier payments and balance
events. Purchase invoices and supplier payments are maintained outside the
ledger; the insert helpers here exist for imports and fixtures.
"""

from __future__ import annotations

from dataclasses import dataclass
import sqlite3

from ...constants import INVOICE_DELIVERED


@dataclass
class BalanceEvent:
    event_id: int | None
    entity_type: str
    entity_id: str
    amount: float
    reference_type: str
    reference_id: str
    date: str


class BalancesRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---- balance events ---------------------------------------------------

    def add_event(self, ev: BalanceEvent) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO balance_events(entity_type, entity_id, amount, reference_type, reference_id, date)
            VALUES (?,?,?,?,?,?)
            """,
            (ev.entity_type, ev.entity_id, float(ev.amount), ev.reference_type, ev.reference_id, ev.date),
        )
        return int(cur.lastrowid)

    def event_for(self, reference_type: str, reference_id: str) -> BalanceEvent | None:
        r = self.conn.execute(
            """
            SELECT event_id, entity_type, entity_id, CAST(amount AS REAL) AS amount,
                   reference_type, reference_id, date
              FROM balance_events
             WHERE reference_type=? AND reference_id=?
            """,
            (reference_type, reference_id),
        ).fetchone()
        return BalanceEvent(**dict(r)) if r else None

    def delete_event_for(self, reference_type: str, reference_id: str) -> None:
        self.conn.execute(
            "DELETE FROM balance_events WHERE reference_type=? AND reference_id=?",
            (reference_type, reference_id),
        )

    def events_total(self, entity_type: str, entity_id: str) -> float:
        r = self.conn.execute(
            """
            SELECT COALESCE(SUM(CAST(amount AS REAL)), 0.0) AS s
              FROM balance_events
             WHERE entity_type=? AND entity_id=?
            """,
            (entity_type, entity_id),
        ).fetchone()
        return float(r["s"])

    def last_event_date(self, entity_type: str, entity_id: str) -> str | None:
        r = self.conn.execute(
            "SELECT MAX(date) AS d FROM balance_events WHERE entity_type=? AND entity_id=?",
            (entity_type, entity_id),
        ).fetchone()
        return r["d"]

    # ---- customers --------------------------------------------------------

    def delivered_remaining_total(self, customer_id: str) -> float:
        r = self.conn.execute(
            """
            SELECT COALESCE(SUM(CAST(remaining AS REAL)), 0.0) AS s
              FROM sales_invoices
             WHERE customer_id=? AND status=?
            """,
            (customer_id, INVOICE_DELIVERED),
        ).fetchone()
        return float(r["s"])

    def invoice_date_range(self, customer_id: str) -> tuple[str | None, str | None]:
        """(earliest, latest) invoice date for the customer, any status."""
        r = self.conn.execute(
            "SELECT MIN(date) AS first, MAX(date) AS last FROM sales_invoices WHERE customer_id=?",
            (customer_id,),
        ).fetchone()
        return r["first"], r["last"]

    # ---- suppliers --------------------------------------------------------

    def purchase_remaining_total(self, supplier_id: str) -> float:
        r = self.conn.execute(
            """
            SELECT COALESCE(SUM(CAST(remaining AS REAL)), 0.0) AS s
              FROM purchase_invoices WHERE supplier_id=?
            """,
            (supplier_id,),
        ).fetchone()
        return float(r["s"])

    def supplier_payments_total(self, supplier_id: str) -> float:
        r = self.conn.execute(
            """
            SELECT COALESCE(SUM(CAST(amount AS REAL)), 0.0) AS s
              FROM supplier_payments WHERE supplier_id=?
            """,
            (supplier_id,),
        ).fetchone()
        return float(r["s"])

    def supplier_last_activity(self, supplier_id: str) -> str | None:
        r = self.conn.execute(
            """
            SELECT MAX(d) AS d FROM (
                SELECT MAX(date) AS d FROM purchase_invoices WHERE supplier_id=?
                UNION ALL
                SELECT MAX(date) AS d FROM supplier_payments WHERE supplier_id=?
            )
            """,
            (supplier_id, supplier_id),
        ).fetchone()
        return r["d"]

    def add_purchase_invoice(self, invoice_id: str, supplier_id: str, date: str,
                             total: float, paid: float = 0.0) -> str:
        self.conn.execute(
            "INSERT INTO purchase_invoices(invoice_id, supplier_id, date, total, paid, remaining) "
            "VALUES (?,?,?,?,?,?)",
            (invoice_id, supplier_id, date, float(total), float(paid), float(total) - float(paid)),
        )
        return invoice_id

    def add_supplier_payment(self, payment_id: str, supplier_id: str, date: str, amount: float) -> str:
        self.conn.execute(
            "INSERT INTO supplier_payments(payment_id, supplier_id, date, amount) VALUES (?,?,?,?)",
            (payment_id, supplier_id, date, float(amount)),
        )
        return payment_id

    def purchase_invoice_exists(self, invoice_id: str) -> bool:
        return self.conn.execute(
            "SELECT 1 FROM purchase_invoices WHERE invoice_id=?", (invoice_id,)
        ).fetchone() is not None

    def sales_invoice_exists(self, invoice_id: str) -> bool:
        return self.conn.execute(
            "SELECT 1 FROM sales_invoices WHERE invoice_id=?", (invoice_id,)
        ).fetchone() is not None
