"""
Stock ledger: the only code that writes products.stock.

All quantities here are already in the product's smallest unit; callers
convert with `to_smallest` before calling in. Every mutation is journaled
in stock_movements under a Reference so that it can be reversed exactly.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, NamedTuple

from ...constants import EPS
from ...database.repositories.inventory_repo import InventoryRepo, StockMovement
from ...database.repositories.products_repo import Product, ProductsRepo
from ...errors import ValidationError
from ...utils.helpers import now_iso
from ..ledger.events import SignalQueue

_log = logging.getLogger(__name__)


class Reference(NamedTuple):
    type: str
    id: str


def to_smallest(product: Product, quantity: float, unit: str) -> float:
    return product.to_smallest(quantity, unit)


class StockLedger:
    def __init__(self, conn: sqlite3.Connection, queue: SignalQueue | None = None):
        self.conn = conn
        self.products = ProductsRepo(conn)
        self.repo = InventoryRepo(conn)
        self.queue = queue if queue is not None else SignalQueue()

    # ---------------------------------------------------------------- public

    def increase(self, product_id: str, qty: float, reference: Reference) -> float:
        if float(qty) < 0:
            raise ValidationError("Increase quantity cannot be negative.")
        return self._move(product_id, float(qty), reference)

    def decrease(self, product_id: str, qty: float, reference: Reference) -> float:
        """Never drives stock below zero; a short decrease is clamped and journaled as such."""
        if float(qty) < 0:
            raise ValidationError("Decrease quantity cannot be negative.")
        return self._move(product_id, -float(qty), reference)

    def set_to(self, product_id: str, qty: float, reference: Reference) -> float:
        if float(qty) < 0:
            raise ValidationError("Stock cannot be set to a negative quantity.")
        before = self.products.stock_of(product_id)
        return self._move(product_id, float(qty) - before, reference)

    def revert(self, reference: Reference) -> None:
        """
        Undo every movement journaled under `reference`, newest first, using
        the applied deltas, then drop the journal rows.
        """
        movements = self.repo.movements_for(reference.type, reference.id)
        for m in reversed(movements):
            before = self.products.stock_of(m.product_id)
            after = before - m.applied_delta
            if after < -EPS:
                _log.warning(
                    "Revert of %s/%s on %s clamped: stock %.4f cannot give back %.4f",
                    reference.type, reference.id, m.product_id, before, m.applied_delta,
                )
                self.queue.push("stockClamped", m.product_id, -m.applied_delta, -before)
            self.products.set_stock(m.product_id, max(0.0, after))
            self.queue.push("stockChanged", m.product_id)
        if movements:
            self.repo.delete_movements_for(reference.type, reference.id)

    def apply_delta(self, reference: Reference, new_effects: Iterable[tuple[str, float]]) -> None:
        """
        Replace whatever `reference` currently contributes to stock with
        `new_effects` ([(product_id, signed smallest-unit qty), ...]).
        """
        self.revert(reference)
        for product_id, qty in new_effects:
            if qty > 0:
                self.increase(product_id, qty, reference)
            elif qty < 0:
                self.decrease(product_id, -qty, reference)

    def restore_to(self, product_id: str, qty: float, reference: Reference) -> float:
        """
        Put stock back to a recorded figure and forget the journal of
        `reference`. Used when the referenced document is being deleted.
        """
        if float(qty) < 0:
            raise ValidationError("Stock cannot be restored to a negative quantity.")
        self.products.stock_of(product_id)
        self.repo.delete_movements_for(reference.type, reference.id)
        self.products.set_stock(product_id, float(qty))
        self.queue.push("stockChanged", product_id)
        return float(qty)

    # --------------------------------------------------------------- helpers

    def _move(self, product_id: str, requested: float, reference: Reference) -> float:
        before = self.products.stock_of(product_id)
        after = before + requested
        clamped = after < -EPS
        after = max(0.0, after)
        applied = after - before

        self.products.set_stock(product_id, after)
        self.repo.insert_movement(
            StockMovement(
                movement_id=None,
                product_id=product_id,
                reference_type=reference.type,
                reference_id=reference.id,
                requested_delta=requested,
                applied_delta=applied,
                stock_before=before,
                stock_after=after,
                clamped=clamped,
                created_at=now_iso(),
            )
        )
        if clamped:
            _log.warning(
                "Stock decrease clamped for %s (%s/%s): requested %.4f, applied %.4f",
                product_id, reference.type, reference.id, requested, applied,
            )
            self.queue.push("stockClamped", product_id, requested, applied)
        self.queue.push("stockChanged", product_id)
        return after
