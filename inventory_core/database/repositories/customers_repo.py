from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from ...errors import ValidationError


@dataclass
class Customer:
    customer_id: str
    code: str
    name: str
    phone: str | None
    address: str | None
    opening_balance: float
    balance: float
    first_transaction_date: str | None
    last_transaction_date: str | None


_COLS = (
    "customer_id, code, name, phone, address, "
    "CAST(opening_balance AS REAL) AS opening_balance, "
    "CAST(balance AS REAL) AS balance, "
    "first_transaction_date, last_transaction_date"
)


class CustomersRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: str | None) -> str | None:
        if s is None:
            return None
        return s.strip()

    @staticmethod
    def _ensure_non_empty(value: str | None, field_label: str) -> None:
        if value is None or value.strip() == "":
            raise ValidationError(f"{field_label} cannot be empty.")

    # ---- Queries ----------------------------------------------------------

    def list_customers(self) -> list[Customer]:
        rows = self.conn.execute(
            f"SELECT {_COLS} FROM customers ORDER BY name"
        ).fetchall()
        return [Customer(**dict(r)) for r in rows]

    def get(self, customer_id: str) -> Customer | None:
        r = self.conn.execute(
            f"SELECT {_COLS} FROM customers WHERE customer_id=?",
            (customer_id,),
        ).fetchone()
        return Customer(**dict(r)) if r else None

    def require(self, customer_id: str) -> Customer:
        c = self.get(customer_id)
        if c is None:
            raise ValidationError(f"Customer {customer_id} not found.")
        return c

    # ---- Mutations --------------------------------------------------------

    def create(
        self,
        customer_id: str,
        code: str,
        name: str,
        opening_balance: float = 0.0,
        phone: str | None = None,
        address: str | None = None,
    ) -> str:
        """
        Insert a new customer; balance starts at the opening balance.
        """
        self._ensure_non_empty(name, "Name")
        self.conn.execute(
            "INSERT INTO customers(customer_id, code, name, phone, address, opening_balance, balance) "
            "VALUES (?,?,?,?,?,?,?)",
            (customer_id, code, self._normalize_text(name), self._normalize_text(phone),
             self._normalize_text(address), float(opening_balance), float(opening_balance)),
        )
        return customer_id

    def set_balance(self, customer_id: str, balance: float, last_transaction_date: str | None) -> None:
        self.conn.execute(
            "UPDATE customers SET balance=?, last_transaction_date=? WHERE customer_id=?",
            (float(balance), last_transaction_date, customer_id),
        )

    def set_first_transaction_date(self, customer_id: str, date: str | None) -> None:
        self.conn.execute(
            "UPDATE customers SET first_transaction_date=? WHERE customer_id=?",
            (date, customer_id),
        )
