# utils/cache.py
"""
Read-through record cache for forms and pickers.

Entries are loaded from the repositories on first access and dropped when
LedgerEvents reports a change to the record, so a reader never sees a
figure older than the last committed operation.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any, Callable

from ..constants import ENTITY_CUSTOMER, ENTITY_SUPPLIER
from ..database.repositories.customers_repo import CustomersRepo
from ..database.repositories.products_repo import ProductsRepo
from ..database.repositories.sales_repo import SalesRepo
from ..database.repositories.suppliers_repo import SuppliersRepo

_log = logging.getLogger(__name__)

PRODUCTS = "products"
CUSTOMERS = "customers"
SUPPLIERS = "suppliers"
INVOICES = "invoices"


class RecordCache:
    def __init__(self, conn: sqlite3.Connection):
        products = ProductsRepo(conn)
        customers = CustomersRepo(conn)
        suppliers = SuppliersRepo(conn)
        sales = SalesRepo(conn)
        self._loaders: dict[str, Callable[[str], Any]] = {
            PRODUCTS: products.get,
            CUSTOMERS: customers.get,
            SUPPLIERS: suppliers.get,
            INVOICES: sales.get_header,
        }
        self._data: dict[str, dict[str, Any]] = {k: {} for k in self._loaders}
        self.hits = 0
        self.misses = 0

    # ---- reads ------------------------------------------------------------

    def get(self, kind: str, record_id: str) -> Any:
        bucket = self._data[kind]
        if record_id in bucket:
            self.hits += 1
            return bucket[record_id]
        self.misses += 1
        rec = self._loaders[kind](record_id)
        if rec is not None:
            bucket[record_id] = rec
        return rec

    def product(self, product_id: str):
        return self.get(PRODUCTS, product_id)

    def customer(self, customer_id: str):
        return self.get(CUSTOMERS, customer_id)

    def supplier(self, supplier_id: str):
        return self.get(SUPPLIERS, supplier_id)

    def invoice(self, invoice_id: str):
        return self.get(INVOICES, invoice_id)

    def is_cached(self, kind: str, record_id: str) -> bool:
        return record_id in self._data[kind]

    # ---- invalidation -----------------------------------------------------

    def invalidate(self, kind: str, record_id: str | None = None) -> None:
        if record_id is None:
            self._data[kind].clear()
        else:
            self._data[kind].pop(record_id, None)

    def clear(self) -> None:
        for bucket in self._data.values():
            bucket.clear()

    def _on_balance_changed(self, entity_type: str, entity_id: str, _balance: float) -> None:
        if entity_type == ENTITY_CUSTOMER:
            self.invalidate(CUSTOMERS, entity_id)
        elif entity_type == ENTITY_SUPPLIER:
            self.invalidate(SUPPLIERS, entity_id)

    def bind(self, events) -> "RecordCache":
        """Subscribe to a LedgerEvents instance."""
        events.stockChanged.connect(lambda pid: self.invalidate(PRODUCTS, pid))
        events.balanceChanged.connect(self._on_balance_changed)
        events.invoiceSaved.connect(lambda iid: self.invalidate(INVOICES, iid))
        events.invoiceDeleted.connect(lambda iid: self.invalidate(INVOICES, iid))
        # last_sale_date / last_inventory_date move with these
        events.invoiceSaved.connect(lambda _iid: self.invalidate(PRODUCTS))
        events.adjustmentSaved.connect(lambda _aid: self.invalidate(PRODUCTS))
        _log.debug("RecordCache bound to %r", events)
        return self
