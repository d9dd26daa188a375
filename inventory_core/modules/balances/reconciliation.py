"""
Balance reconciliation: every cached party balance is a full recompute
from its sources, so running it twice changes nothing.

    customer = opening + Σ remaining(delivered invoices) + Σ balance events
    supplier = opening + Σ remaining(purchase invoices) − Σ payments + Σ balance events
"""
from __future__ import annotations

import logging
import sqlite3

from ...constants import ENTITY_CUSTOMER, ENTITY_SUPPLIER, ENTITY_TYPES
from ...database.repositories.balances_repo import BalancesRepo
from ...database.repositories.customers_repo import CustomersRepo
from ...database.repositories.suppliers_repo import SuppliersRepo
from ...utils.validators import require_choice
from ..ledger.events import SignalQueue

_log = logging.getLogger(__name__)


def _latest(*dates: str | None) -> str | None:
    present = [d for d in dates if d]
    return max(present) if present else None


class BalanceReconciler:
    def __init__(self, conn: sqlite3.Connection, queue: SignalQueue | None = None):
        self.conn = conn
        self.repo = BalancesRepo(conn)
        self.customers = CustomersRepo(conn)
        self.suppliers = SuppliersRepo(conn)
        self.queue = queue if queue is not None else SignalQueue()

    def recompute_customer_balance(self, customer_id: str) -> float:
        c = self.customers.require(customer_id)
        balance = (
            c.opening_balance
            + self.repo.delivered_remaining_total(customer_id)
            + self.repo.events_total(ENTITY_CUSTOMER, customer_id)
        )
        first, last = self.repo.invoice_date_range(customer_id)
        last = _latest(last, self.repo.last_event_date(ENTITY_CUSTOMER, customer_id))
        self.customers.set_balance(customer_id, balance, last)
        self.customers.set_first_transaction_date(customer_id, first)
        _log.debug("customer %s balance %.4f -> %.4f", customer_id, c.balance, balance)
        self.queue.push("balanceChanged", ENTITY_CUSTOMER, customer_id, balance)
        return balance

    def recompute_supplier_balance(self, supplier_id: str) -> float:
        s = self.suppliers.require(supplier_id)
        balance = (
            s.opening_balance
            + self.repo.purchase_remaining_total(supplier_id)
            - self.repo.supplier_payments_total(supplier_id)
            + self.repo.events_total(ENTITY_SUPPLIER, supplier_id)
        )
        last = _latest(
            self.repo.supplier_last_activity(supplier_id),
            self.repo.last_event_date(ENTITY_SUPPLIER, supplier_id),
        )
        self.suppliers.set_balance(supplier_id, balance, last)
        _log.debug("supplier %s balance %.4f -> %.4f", supplier_id, s.balance, balance)
        self.queue.push("balanceChanged", ENTITY_SUPPLIER, supplier_id, balance)
        return balance

    def recompute(self, entity_type: str, entity_id: str) -> float:
        require_choice(entity_type, ENTITY_TYPES, "entity type")
        if entity_type == ENTITY_CUSTOMER:
            return self.recompute_customer_balance(entity_id)
        return self.recompute_supplier_balance(entity_id)

    def recompute_all(self) -> dict[tuple[str, str], float]:
        out: dict[tuple[str, str], float] = {}
        for c in self.customers.list_customers():
            out[(ENTITY_CUSTOMER, c.customer_id)] = self.recompute_customer_balance(c.customer_id)
        for s in self.suppliers.list_suppliers():
            out[(ENTITY_SUPPLIER, s.supplier_id)] = self.recompute_supplier_balance(s.supplier_id)
        return out
