"""
Repository for inventory rows: adjustments and the stock movement journal.

Conventions:
- List-returning query helpers yield `list[dict]` (sqlite3.Row -> dict).
- Date strings are ISO 'YYYY-MM-DD'.
- Quantities are cast to float in SQL.
- Every stock change goes through StockLedger, which writes one
  stock_movements row per product per reference. Reverting a reference
  replays the *applied* deltas of those rows in reverse.
"""

from __future__ import annotations

from dataclasses import dataclass
import sqlite3
from typing import Dict, List, Optional


@dataclass
class Adjustment:
    adjustment_id: str
    product_id: str
    date: str
    type: str
    unit: str
    quantity: float
    quantity_base: float
    old_stock: float
    new_stock: float
    reason: str
    notes: str | None
    created_at: str


@dataclass
class StockMovement:
    movement_id: int | None
    product_id: str
    reference_type: str
    reference_id: str
    requested_delta: float
    applied_delta: float
    stock_before: float
    stock_after: float
    clamped: bool
    created_at: str


_ADJ_COLS = (
    "adjustment_id, product_id, date, type, unit, "
    "CAST(quantity AS REAL) AS quantity, CAST(quantity_base AS REAL) AS quantity_base, "
    "CAST(old_stock AS REAL) AS old_stock, CAST(new_stock AS REAL) AS new_stock, "
    "reason, notes, created_at"
)

_MOVE_COLS = (
    "movement_id, product_id, reference_type, reference_id, "
    "CAST(requested_delta AS REAL) AS requested_delta, "
    "CAST(applied_delta AS REAL) AS applied_delta, "
    "CAST(stock_before AS REAL) AS stock_before, "
    "CAST(stock_after AS REAL) AS stock_after, "
    "clamped, created_at"
)


class InventoryRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------
    def get_adjustment(self, adjustment_id: str) -> Adjustment | None:
        r = self.conn.execute(
            f"SELECT {_ADJ_COLS} FROM inventory_adjustments WHERE adjustment_id=?",
            (adjustment_id,),
        ).fetchone()
        return Adjustment(**dict(r)) if r else None

    def list_adjustments(self, product_id: Optional[str] = None) -> List[Adjustment]:
        sql = f"SELECT {_ADJ_COLS} FROM inventory_adjustments"
        params: List = []
        if product_id is not None:
            sql += " WHERE product_id=?"
            params.append(product_id)
        sql += " ORDER BY DATE(date) DESC, adjustment_id DESC"
        return [Adjustment(**dict(r)) for r in self.conn.execute(sql, params).fetchall()]

    def insert_adjustment(self, a: Adjustment) -> None:
        self.conn.execute(
            """
            INSERT INTO inventory_adjustments
                (adjustment_id, product_id, date, type, unit, quantity, quantity_base,
                 old_stock, new_stock, reason, notes, created_at)
            VALUES (?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                a.adjustment_id,
                a.product_id,
                a.date,
                a.type,
                a.unit,
                float(a.quantity),
                float(a.quantity_base),
                float(a.old_stock),
                float(a.new_stock),
                a.reason,
                a.notes,
                a.created_at,
            ),
        )

    def set_adjustment_new_stock(self, adjustment_id: str, new_stock: float) -> None:
        self.conn.execute(
            "UPDATE inventory_adjustments SET new_stock=? WHERE adjustment_id=?",
            (float(new_stock), adjustment_id),
        )

    def delete_adjustment(self, adjustment_id: str) -> None:
        self.conn.execute("DELETE FROM inventory_adjustments WHERE adjustment_id=?", (adjustment_id,))

    # ------------------------------------------------------------------
    # Stock movements
    # ------------------------------------------------------------------
    def insert_movement(self, m: StockMovement) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO stock_movements
                (product_id, reference_type, reference_id, requested_delta,
                 applied_delta, stock_before, stock_after, clamped, created_at)
            VALUES (?,?,?,?,?,?,?,?,?)
            """,
            (
                m.product_id,
                m.reference_type,
                m.reference_id,
                float(m.requested_delta),
                float(m.applied_delta),
                float(m.stock_before),
                float(m.stock_after),
                1 if m.clamped else 0,
                m.created_at,
            ),
        )
        return int(cur.lastrowid)

    def movements_for(self, reference_type: str, reference_id: str) -> List[StockMovement]:
        rows = self.conn.execute(
            f"""
            SELECT {_MOVE_COLS}
              FROM stock_movements
             WHERE reference_type=? AND reference_id=?
             ORDER BY movement_id
            """,
            (reference_type, reference_id),
        ).fetchall()
        out = []
        for r in rows:
            d = dict(r)
            d["clamped"] = bool(d["clamped"])
            out.append(StockMovement(**d))
        return out

    def delete_movements_for(self, reference_type: str, reference_id: str) -> None:
        self.conn.execute(
            "DELETE FROM stock_movements WHERE reference_type=? AND reference_id=?",
            (reference_type, reference_id),
        )

    def recent_movements(self, limit: int = 50) -> List[Dict]:
        """
        Most recent movements joined with the product name, newest first.
        """
        lim = self._normalize_limit(limit)
        rows = self.conn.execute(
            """
            SELECT m.movement_id, m.reference_type, m.reference_id,
                   p.name AS product,
                   CAST(m.applied_delta AS REAL) AS applied_delta,
                   CAST(m.stock_after AS REAL)   AS stock_after,
                   m.clamped, m.created_at
              FROM stock_movements m
              LEFT JOIN products p ON p.product_id = m.product_id
             ORDER BY m.movement_id DESC
             LIMIT ?
            """,
            (lim,),
        ).fetchall()
        return [dict(r) for r in rows]

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------
    @staticmethod
    def _normalize_limit(limit: int) -> int:
        """
        Guard the limit to a safe set (50/100/500). Default to 100 if unrecognized.
        """
        try:
            v = int(limit)
        except (TypeError, ValueError):
            return 100
        return v if v in (50, 100, 500) else 100
