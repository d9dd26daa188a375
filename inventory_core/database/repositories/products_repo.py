# inventory_core/database/repositories/products_repo.py
from __future__ import annotations

from dataclasses import dataclass
import sqlite3

from ...constants import UNIT_LARGEST, UNIT_SMALLEST, UNITS
from ...errors import ValidationError


@dataclass
class Product:
    product_id: str
    code: str
    name: str
    smallest_unit: str
    largest_unit: str
    conversion_factor: float
    stock: float
    category: str | None = None
    status: str = "active"
    last_sale_date: str | None = None
    last_inventory_date: str | None = None

    def to_smallest(self, quantity: float, unit: str) -> float:
        """
        Convert a quantity entered in `unit` to the smallest unit.
        Conversion happens here, at the call boundary, never inside the stock ledger.
        """
        if unit == UNIT_LARGEST:
            return float(quantity) * float(self.conversion_factor or 1.0)
        if unit == UNIT_SMALLEST:
            return float(quantity)
        raise ValidationError(f"Unknown unit {unit!r}; expected one of: {', '.join(UNITS)}.")


_COLS = (
    "product_id, code, name, smallest_unit, largest_unit, "
    "CAST(conversion_factor AS REAL) AS conversion_factor, "
    "CAST(stock AS REAL) AS stock, category, status, last_sale_date, last_inventory_date"
)


class ProductsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        # Use Row for named access; we normalize to dataclasses.
        self.conn.row_factory = sqlite3.Row

    # ---------------------------- Queries ----------------------------

    def get(self, product_id: str) -> Product | None:
        r = self.conn.execute(
            f"SELECT {_COLS} FROM products WHERE product_id=?",
            (product_id,),
        ).fetchone()
        return Product(**dict(r)) if r else None

    def require(self, product_id: str) -> Product:
        p = self.get(product_id)
        if p is None:
            raise ValidationError(f"Product {product_id} not found.")
        return p

    def stock_of(self, product_id: str) -> float:
        r = self.conn.execute(
            "SELECT CAST(stock AS REAL) AS s FROM products WHERE product_id=?",
            (product_id,),
        ).fetchone()
        if not r:
            raise ValidationError(f"Product {product_id} not found.")
        return float(r["s"])

    # ---------------------------- Mutations ----------------------------

    def create(
        self,
        product_id: str,
        code: str,
        name: str,
        smallest_unit: str,
        largest_unit: str,
        conversion_factor: float = 1.0,
        stock: float = 0.0,
        category: str | None = None,
    ) -> str:
        if float(conversion_factor) <= 0:
            raise ValidationError("Conversion factor must be greater than zero.")
        if float(stock) < 0:
            raise ValidationError("Opening stock cannot be negative.")
        self.conn.execute(
            """
            INSERT INTO products(
                product_id, code, name, category, smallest_unit, largest_unit,
                conversion_factor, stock
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (product_id, code, name, category, smallest_unit, largest_unit,
             float(conversion_factor), float(stock)),
        )
        return product_id

    def set_stock(self, product_id: str, stock: float) -> None:
        self.conn.execute(
            "UPDATE products SET stock=? WHERE product_id=?",
            (float(stock), product_id),
        )

    def touch_last_sale(self, product_id: str, date: str) -> None:
        self.conn.execute(
            "UPDATE products SET last_sale_date=? WHERE product_id=?",
            (date, product_id),
        )

    def touch_last_inventory(self, product_id: str, date: str) -> None:
        self.conn.execute(
            "UPDATE products SET last_inventory_date=? WHERE product_id=?",
            (date, product_id),
        )
