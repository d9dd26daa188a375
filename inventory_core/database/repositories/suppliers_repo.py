from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from ...errors import ValidationError


@dataclass
class Supplier:
    supplier_id: str
    code: str
    name: str
    phone: str | None
    address: str | None
    opening_balance: float
    balance: float
    last_transaction_date: str | None


class SuppliersRepo:
    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def list_suppliers(self) -> list[Supplier]:
        rows = self.conn.execute(
            "SELECT supplier_id, code, name, phone, address, "
            "CAST(opening_balance AS REAL) AS opening_balance, CAST(balance AS REAL) AS balance, "
            "last_transaction_date FROM suppliers ORDER BY name"
        ).fetchall()
        return [Supplier(**dict(r)) for r in rows]

    def get(self, supplier_id: str) -> Supplier | None:
        r = self.conn.execute(
            "SELECT supplier_id, code, name, phone, address, "
            "CAST(opening_balance AS REAL) AS opening_balance, CAST(balance AS REAL) AS balance, "
            "last_transaction_date FROM suppliers WHERE supplier_id=?",
            (supplier_id,)
        ).fetchone()
        return Supplier(**dict(r)) if r else None

    def require(self, supplier_id: str) -> Supplier:
        s = self.get(supplier_id)
        if s is None:
            raise ValidationError(f"Supplier {supplier_id} not found.")
        return s

    def create(self, supplier_id: str, code: str, name: str, opening_balance: float = 0.0,
               phone: str | None = None, address: str | None = None) -> str:
        self.conn.execute(
            "INSERT INTO suppliers(supplier_id, code, name, phone, address, opening_balance, balance) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (supplier_id, code, name, phone, address, float(opening_balance), float(opening_balance))
        )
        return supplier_id

    def set_balance(self, supplier_id: str, balance: float, last_transaction_date: str | None):
        self.conn.execute(
            "UPDATE suppliers SET balance=?, last_transaction_date=? WHERE supplier_id=?",
            (float(balance), last_transaction_date, supplier_id)
        )
