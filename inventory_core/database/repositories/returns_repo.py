from __future__ import annotations
from dataclasses import dataclass
import sqlite3


@dataclass
class ReturnRecord:
    return_id: str
    return_type: str
    entity_id: str
    product_id: str
    invoice_id: str | None
    date: str
    unit: str
    quantity: float
    unit_price: float
    total_amount: float
    return_reason: str
    restored_to_stock: bool
    restore_balance: bool
    notes: str | None
    created_at: str


_COLS = (
    "return_id, return_type, entity_id, product_id, invoice_id, date, unit, "
    "CAST(quantity AS REAL) AS quantity, CAST(unit_price AS REAL) AS unit_price, "
    "CAST(total_amount AS REAL) AS total_amount, return_reason, "
    "restored_to_stock, restore_balance, notes, created_at"
)


def _to_record(r: sqlite3.Row) -> ReturnRecord:
    d = dict(r)
    d["restored_to_stock"] = bool(d["restored_to_stock"])
    d["restore_balance"] = bool(d["restore_balance"])
    return ReturnRecord(**d)


class ReturnsRepo:
    """
    Customer and supplier returns. A row is written once; the effect flags
    (restored_to_stock, restore_balance) are what a later delete inverts,
    so the schema refuses to rewrite them.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def get(self, return_id: str) -> ReturnRecord | None:
        r = self.conn.execute(
            f"SELECT {_COLS} FROM returns WHERE return_id=?", (return_id,)
        ).fetchone()
        return _to_record(r) if r else None

    def list_returns(self, return_type: str | None = None, entity_id: str | None = None) -> list[ReturnRecord]:
        where: list[str] = []
        params: list = []
        if return_type:
            where.append("return_type=?")
            params.append(return_type)
        if entity_id:
            where.append("entity_id=?")
            params.append(entity_id)
        sql = f"SELECT {_COLS} FROM returns"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY DATE(date) DESC, return_id DESC"
        return [_to_record(r) for r in self.conn.execute(sql, params).fetchall()]

    def insert(self, rec: ReturnRecord) -> None:
        self.conn.execute(
            """
            INSERT INTO returns (
                return_id, return_type, entity_id, product_id, invoice_id, date,
                unit, quantity, unit_price, total_amount, return_reason,
                restored_to_stock, restore_balance, notes, created_at
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                rec.return_id,
                rec.return_type,
                rec.entity_id,
                rec.product_id,
                rec.invoice_id,
                rec.date,
                rec.unit,
                float(rec.quantity),
                float(rec.unit_price),
                float(rec.total_amount),
                rec.return_reason,
                1 if rec.restored_to_stock else 0,
                1 if rec.restore_balance else 0,
                rec.notes,
                rec.created_at,
            ),
        )

    def delete(self, return_id: str) -> None:
        self.conn.execute("DELETE FROM returns WHERE return_id=?", (return_id,))
