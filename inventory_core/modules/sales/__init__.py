# modules/sales/__init__.py

from .allocator import SalesInvoiceAllocator, compute_totals

__all__ = [
    "SalesInvoiceAllocator",
    "compute_totals",
]
