"""
Inventory adjustments and returns, and their inverses.

An adjustment's delete restores the stock it recorded as `old_stock`.
A return's delete undoes exactly what its stored flags say was done:
stock movements are reverted if `restored_to_stock`, the balance event is
dropped (and the party recomputed) if `restore_balance`.
"""
from __future__ import annotations

import logging
import sqlite3

from ...constants import (
    ADJ_DECREASE,
    ADJ_INCREASE,
    ADJ_SET,
    ADJUSTMENT_TYPES,
    ENTITY_CUSTOMER,
    ENTITY_SUPPLIER,
    NON_RESTOCK_REASONS,
    PREFIX_ADJUSTMENT,
    PREFIX_RETURN,
    REF_ADJUSTMENT,
    REF_RETURN,
    RETURN_FROM_CUSTOMER,
    RETURN_TYPES,
    UNIT_SMALLEST,
    UNITS,
)
from ...database.repositories.balances_repo import BalanceEvent, BalancesRepo
from ...database.repositories.customers_repo import CustomersRepo
from ...database.repositories.inventory_repo import Adjustment, InventoryRepo
from ...database.repositories.products_repo import ProductsRepo
from ...database.repositories.returns_repo import ReturnRecord, ReturnsRepo
from ...database.repositories.suppliers_repo import SuppliersRepo
from ...errors import ValidationError
from ...utils.helpers import new_document_id, now_iso, today_str
from ...utils.validators import require_choice, require_non_negative, require_positive, require_text
from ..balances.reconciliation import BalanceReconciler
from ..ledger.drafts import ReturnDraft
from ..ledger.events import SignalQueue
from .stock_ledger import Reference, StockLedger

_log = logging.getLogger(__name__)


def restocks(reason: str) -> bool:
    """Damaged or expired goods never go back on the shelf."""
    return (reason or "").strip().lower() not in NON_RESTOCK_REASONS


class ReturnAdjustmentProcessor:
    def __init__(
        self,
        conn: sqlite3.Connection,
        stock: StockLedger,
        balances: BalanceReconciler,
        queue: SignalQueue | None = None,
    ):
        self.conn = conn
        self.stock = stock
        self.balances = balances
        self.products = ProductsRepo(conn)
        self.customers = CustomersRepo(conn)
        self.suppliers = SuppliersRepo(conn)
        self.inventory = InventoryRepo(conn)
        self.returns = ReturnsRepo(conn)
        self.events = BalancesRepo(conn)
        self.queue = queue if queue is not None else SignalQueue()

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------
    def apply_adjustment(
        self,
        product_id: str,
        type: str,
        quantity: float,
        reason: str,
        *,
        unit: str = UNIT_SMALLEST,
        date: str | None = None,
        notes: str | None = None,
    ) -> str:
        product = self.products.require(product_id)
        require_choice(type, ADJUSTMENT_TYPES, "adjustment type")
        require_choice(unit, UNITS, "unit")
        reason = require_text(reason, "Reason")
        if type == ADJ_SET:
            quantity = require_non_negative(quantity, "Quantity")
        else:
            quantity = require_positive(quantity, "Quantity")

        date = date or today_str()
        base_qty = product.to_smallest(quantity, unit)
        adjustment_id = new_document_id(
            self.conn, "inventory_adjustments", "adjustment_id", PREFIX_ADJUSTMENT, date
        )
        old_stock = product.stock

        # new_stock is filled in once the ledger has applied the change
        self.inventory.insert_adjustment(
            Adjustment(
                adjustment_id=adjustment_id,
                product_id=product_id,
                date=date,
                type=type,
                unit=unit,
                quantity=quantity,
                quantity_base=base_qty,
                old_stock=old_stock,
                new_stock=old_stock,
                reason=reason,
                notes=notes,
                created_at=now_iso(),
            )
        )
        ref = Reference(REF_ADJUSTMENT, adjustment_id)
        if type == ADJ_INCREASE:
            new_stock = self.stock.increase(product_id, base_qty, ref)
        elif type == ADJ_DECREASE:
            new_stock = self.stock.decrease(product_id, base_qty, ref)
        else:
            new_stock = self.stock.set_to(product_id, base_qty, ref)

        self.inventory.set_adjustment_new_stock(adjustment_id, new_stock)
        self.products.touch_last_inventory(product_id, date)
        _log.info(
            "Adjustment %s on %s: %s %.4f (%s) stock %.4f -> %.4f",
            adjustment_id, product_id, type, quantity, unit, old_stock, new_stock,
        )
        return adjustment_id

    def delete_adjustment(self, adjustment_id: str) -> Adjustment:
        adj = self.inventory.get_adjustment(adjustment_id)
        if adj is None:
            raise ValidationError(f"Adjustment {adjustment_id} not found.")
        current = self.products.stock_of(adj.product_id)
        self.stock.restore_to(adj.product_id, adj.old_stock, Reference(REF_ADJUSTMENT, adjustment_id))
        self.inventory.delete_adjustment(adjustment_id)
        _log.info(
            "Deleted adjustment %s; %s stock %.4f -> %.4f",
            adjustment_id, adj.product_id, current, adj.old_stock,
        )
        return adj

    # ------------------------------------------------------------------
    # Returns
    # ------------------------------------------------------------------
    def apply_return(self, draft: ReturnDraft) -> str:
        require_choice(draft.return_type, RETURN_TYPES, "return type")
        require_choice(draft.unit, UNITS, "unit")
        product = self.products.require(draft.product_id)
        quantity = require_positive(draft.quantity, "Quantity")
        unit_price = require_positive(draft.unit_price, "Unit price")
        reason = require_text(draft.return_reason, "Return reason")
        entity_type = self._entity_type(draft.return_type)
        self._require_entity(entity_type, draft.entity_id)
        if draft.invoice_id:
            self._require_invoice(entity_type, draft.invoice_id)

        date = draft.date or today_str()
        return_id = new_document_id(self.conn, "returns", "return_id", PREFIX_RETURN, date)
        restored = restocks(reason)
        total = quantity * unit_price

        self.returns.insert(
            ReturnRecord(
                return_id=return_id,
                return_type=draft.return_type,
                entity_id=draft.entity_id,
                product_id=draft.product_id,
                invoice_id=draft.invoice_id or None,
                date=date,
                unit=draft.unit,
                quantity=quantity,
                unit_price=unit_price,
                total_amount=total,
                return_reason=reason,
                restored_to_stock=restored,
                restore_balance=bool(draft.restore_balance),
                notes=draft.notes,
                created_at=now_iso(),
            )
        )

        if restored:
            ref = Reference(REF_RETURN, return_id)
            base_qty = product.to_smallest(quantity, draft.unit)
            if draft.return_type == RETURN_FROM_CUSTOMER:
                self.stock.increase(draft.product_id, base_qty, ref)
            else:
                self.stock.decrease(draft.product_id, base_qty, ref)

        if draft.restore_balance:
            self.events.add_event(
                BalanceEvent(
                    event_id=None,
                    entity_type=entity_type,
                    entity_id=draft.entity_id,
                    amount=-total,
                    reference_type=REF_RETURN,
                    reference_id=return_id,
                    date=date,
                )
            )
            self.balances.recompute(entity_type, draft.entity_id)

        _log.info(
            "Return %s (%s) %s x%.4f reason=%s restocked=%s balance=%s",
            return_id, draft.return_type, draft.product_id, quantity, reason,
            restored, bool(draft.restore_balance),
        )
        return return_id

    def delete_return(self, return_id: str) -> ReturnRecord:
        rec = self.returns.get(return_id)
        if rec is None:
            raise ValidationError(f"Return {return_id} not found.")
        entity_type = self._entity_type(rec.return_type)

        if rec.restored_to_stock:
            self.stock.revert(Reference(REF_RETURN, return_id))
        if rec.restore_balance:
            self.events.delete_event_for(REF_RETURN, return_id)
        self.returns.delete(return_id)
        if rec.restore_balance:
            self.balances.recompute(entity_type, rec.entity_id)

        _log.info("Deleted return %s", return_id)
        return rec

    # --------------------------------------------------------------- helpers

    @staticmethod
    def _entity_type(return_type: str) -> str:
        return ENTITY_CUSTOMER if return_type == RETURN_FROM_CUSTOMER else ENTITY_SUPPLIER

    def _require_entity(self, entity_type: str, entity_id: str) -> None:
        if entity_type == ENTITY_CUSTOMER:
            self.customers.require(entity_id)
        else:
            self.suppliers.require(entity_id)

    def _require_invoice(self, entity_type: str, invoice_id: str) -> None:
        if entity_type == ENTITY_CUSTOMER:
            found = self.events.sales_invoice_exists(invoice_id)
        else:
            found = self.events.purchase_invoice_exists(invoice_id)
        if not found:
            raise ValidationError(f"Invoice {invoice_id} not found.")
