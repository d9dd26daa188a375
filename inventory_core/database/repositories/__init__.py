# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from inventory_core.database.repositories import (
        # Catalog and parties
        ProductsRepo, Product, CustomersRepo, Customer, SuppliersRepo, Supplier,
        # Delivery notes
        DeliveryNotesRepo, DeliveryNote, DeliveryNoteItem, ReservationKey,
        # Sales
        SalesRepo, SalesInvoiceHeader, SalesInvoiceItem,
        # Inventory
        InventoryRepo, Adjustment, StockMovement,
        # Returns and balances
        ReturnsRepo, ReturnRecord, BalancesRepo, BalanceEvent,
    )

Repositories never commit; callers wrap them in `immediate_tx`.
"""

# ---------------- Balances -----------------
from .balances_repo import BalancesRepo, BalanceEvent

# ---------------- Customers ----------------
from .customers_repo import CustomersRepo, Customer

# ------------- Delivery notes --------------
from .delivery_notes_repo import (
    DeliveryNotesRepo,
    DeliveryNote,
    DeliveryNoteItem,
    ReservationKey,
)

# ---------------- Inventory ----------------
from .inventory_repo import InventoryRepo, Adjustment, StockMovement

# ---------------- Products -----------------
from .products_repo import ProductsRepo, Product

# ----------------- Returns -----------------
from .returns_repo import ReturnsRepo, ReturnRecord

# ------------------ Sales ------------------
from .sales_repo import SalesRepo, SalesInvoiceHeader, SalesInvoiceItem

# ---------------- Suppliers ----------------
from .suppliers_repo import SuppliersRepo, Supplier

__all__ = [
    "BalancesRepo",
    "BalanceEvent",
    "CustomersRepo",
    "Customer",
    "DeliveryNotesRepo",
    "DeliveryNote",
    "DeliveryNoteItem",
    "ReservationKey",
    "InventoryRepo",
    "Adjustment",
    "StockMovement",
    "ProductsRepo",
    "Product",
    "ReturnsRepo",
    "ReturnRecord",
    "SalesRepo",
    "SalesInvoiceHeader",
    "SalesInvoiceItem",
    "SuppliersRepo",
    "Supplier",
]
