"""
Unsaved documents handed to the ledger by forms.

A draft with `invoice_id`/`return_id` set edits that document; without it
a new one is created.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from ...constants import INVOICE_PENDING, UNIT_SMALLEST


@dataclass
class InvoiceLineDraft:
    product_id: str
    quantity: float
    price: float
    unit: str = UNIT_SMALLEST

    @property
    def total(self) -> float:
        return float(self.quantity) * float(self.price)


@dataclass
class InvoiceDraft:
    customer_id: str
    date: str
    lines: list[InvoiceLineDraft] = field(default_factory=list)
    status: str = INVOICE_PENDING
    delivery_note_id: str | None = None
    tax_rate: float = 0.0
    shipping: float = 0.0
    discount: float = 0.0
    paid: float = 0.0
    payment_method: str | None = None
    notes: str | None = None
    invoice_id: str | None = None


@dataclass
class ReturnDraft:
    return_type: str
    entity_id: str
    product_id: str
    quantity: float
    unit_price: float
    return_reason: str
    date: str | None = None
    unit: str = UNIT_SMALLEST
    invoice_id: str | None = None
    restore_balance: bool = True
    notes: str | None = None


@dataclass
class DeliveryNoteLineDraft:
    product_id: str
    quantity: float
    unit: str = UNIT_SMALLEST
