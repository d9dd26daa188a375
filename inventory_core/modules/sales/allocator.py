"""
Sales invoice allocator.

Creates, edits and deletes sales invoices together with their stock side:
a line on an invoice that references a delivery note reserves quantity on
that note; a line on an invoice without a note takes stock directly. An
edit reads the stored invoice first, then swaps its old effects for the new
ones through the ledgers' apply_delta, which always reverses before it
applies.
"""
from __future__ import annotations

import logging
import sqlite3
from collections import defaultdict

from ...constants import (
    EPS,
    INVOICE_DELIVERED,
    INVOICE_STATUSES,
    PREFIX_INVOICE,
    REF_SALES_INVOICE,
    UNITS,
)
from ...database.repositories.customers_repo import CustomersRepo
from ...database.repositories.delivery_notes_repo import DeliveryNotesRepo, ReservationKey
from ...database.repositories.products_repo import ProductsRepo
from ...database.repositories.sales_repo import SalesInvoiceHeader, SalesInvoiceItem, SalesRepo
from ...errors import ValidationError
from ...utils.helpers import new_document_id, now_iso, today_str
from ...utils.validators import require_choice, require_non_negative, require_positive
from ..balances.reconciliation import BalanceReconciler
from ..delivery_notes.reservation_ledger import ReservationLedger
from ..inventory.stock_ledger import Reference, StockLedger
from ..ledger.drafts import InvoiceDraft, InvoiceLineDraft
from ..ledger.events import SignalQueue

_log = logging.getLogger(__name__)


def compute_totals(lines: list[InvoiceLineDraft], tax_rate: float, shipping: float,
                   discount: float, paid: float) -> dict[str, float]:
    subtotal = sum(float(ln.quantity) * float(ln.price) for ln in lines)
    tax_amount = subtotal * float(tax_rate) / 100.0
    total = subtotal + tax_amount + float(shipping) - float(discount)
    return {
        "subtotal": subtotal,
        "tax_amount": tax_amount,
        "total": total,
        "remaining": total - float(paid),
    }


class SalesInvoiceAllocator:
    def __init__(
        self,
        conn: sqlite3.Connection,
        stock: StockLedger,
        reservations: ReservationLedger,
        balances: BalanceReconciler,
        queue: SignalQueue | None = None,
    ):
        self.conn = conn
        self.repo = SalesRepo(conn)
        self.products = ProductsRepo(conn)
        self.customers = CustomersRepo(conn)
        self.notes = DeliveryNotesRepo(conn)
        self.stock = stock
        self.reservations = reservations
        self.balances = balances
        self.queue = queue if queue is not None else SignalQueue()

    # ---------------------------------------------------------------- public

    def create(self, draft: InvoiceDraft) -> str:
        self._validate(draft)
        date = draft.date or today_str()
        invoice_id = new_document_id(self.conn, "sales_invoices", "invoice_id", PREFIX_INVOICE, date)

        self.reservations.apply_delta({}, self._reservation_map(draft))
        header = self._header(invoice_id, draft, created_at=now_iso())
        self.repo.insert_header(header)
        self.repo.insert_items(self._items(invoice_id, draft))
        self.stock.apply_delta(self._ref(invoice_id), self._stock_effects(draft))
        self._touch_products(draft, date)

        if draft.status == INVOICE_DELIVERED:
            self.balances.recompute_customer_balance(draft.customer_id)
        _log.info("Created sales invoice %s for %s (%s)", invoice_id, draft.customer_id, draft.status)
        return invoice_id

    def update(self, draft: InvoiceDraft) -> str:
        invoice_id = draft.invoice_id
        old = self.repo.get_header(invoice_id) if invoice_id else None
        if old is None:
            raise ValidationError(f"Sales invoice {invoice_id} not found.")
        old_items = self.repo.list_items(invoice_id)
        self._validate(draft)
        date = draft.date or today_str()

        self.reservations.apply_delta(
            self._stored_reservation_map(old, old_items),
            self._reservation_map(draft),
        )
        self.repo.delete_items(invoice_id)
        self.repo.update_header(self._header(invoice_id, draft, created_at=old.created_at))
        self.repo.insert_items(self._items(invoice_id, draft))
        self.stock.apply_delta(self._ref(invoice_id), self._stock_effects(draft))
        self._touch_products(draft, date)

        if INVOICE_DELIVERED in (old.status, draft.status):
            self.balances.recompute_customer_balance(draft.customer_id)
            if old.customer_id != draft.customer_id:
                self.balances.recompute_customer_balance(old.customer_id)
        _log.info("Updated sales invoice %s (%s -> %s)", invoice_id, old.status, draft.status)
        return invoice_id

    def delete(self, invoice_id: str) -> SalesInvoiceHeader:
        old = self.repo.get_header(invoice_id)
        if old is None:
            raise ValidationError(f"Sales invoice {invoice_id} not found.")
        old_items = self.repo.list_items(invoice_id)

        self.reservations.apply_delta(self._stored_reservation_map(old, old_items), {})
        self.stock.revert(self._ref(invoice_id))
        self.repo.delete_invoice(invoice_id)

        if old.status == INVOICE_DELIVERED:
            self.balances.recompute_customer_balance(old.customer_id)
        _log.info("Deleted sales invoice %s", invoice_id)
        return old

    def get_available_quantity(
        self,
        delivery_note_id: str,
        product_id: str,
        unit: str,
        excluding_invoice_id: str | None = None,
    ) -> float:
        key = ReservationKey(delivery_note_id, product_id, unit)
        return self.reservations.available_for_selection(key, excluding_invoice_id)

    # --------------------------------------------------------------- helpers

    @staticmethod
    def _ref(invoice_id: str) -> Reference:
        return Reference(REF_SALES_INVOICE, invoice_id)

    def _validate(self, draft: InvoiceDraft) -> None:
        self.customers.require(draft.customer_id)
        require_choice(draft.status, INVOICE_STATUSES, "invoice status")
        if not draft.lines:
            raise ValidationError("An invoice needs at least one line.")
        for ln in draft.lines:
            self.products.require(ln.product_id)
            require_choice(ln.unit, UNITS, "unit")
            require_positive(ln.quantity, "Quantity")
            require_non_negative(ln.price, "Price")
        require_non_negative(draft.tax_rate, "Tax rate")
        require_non_negative(draft.shipping, "Shipping")
        require_non_negative(draft.discount, "Discount")
        require_non_negative(draft.paid, "Paid amount")
        if draft.delivery_note_id:
            if self.notes.get_note(draft.delivery_note_id) is None:
                raise ValidationError(f"Delivery note {draft.delivery_note_id} not found.")
            for ln in draft.lines:
                self.reservations.require_item(
                    ReservationKey(draft.delivery_note_id, ln.product_id, ln.unit)
                )

    def _reservation_map(self, draft: InvoiceDraft) -> dict[ReservationKey, float]:
        out: dict[ReservationKey, float] = defaultdict(float)
        if draft.delivery_note_id:
            for ln in draft.lines:
                out[ReservationKey(draft.delivery_note_id, ln.product_id, ln.unit)] += float(ln.quantity)
        return dict(out)

    @staticmethod
    def _stored_reservation_map(header: SalesInvoiceHeader,
                                items: list[SalesInvoiceItem]) -> dict[ReservationKey, float]:
        out: dict[ReservationKey, float] = defaultdict(float)
        if header.delivery_note_id:
            for it in items:
                out[ReservationKey(header.delivery_note_id, it.product_id, it.unit)] += it.quantity
        return dict(out)

    def _stock_effects(self, draft: InvoiceDraft) -> list[tuple[str, float]]:
        """Lines drawn from a delivery note come off stock when the note is settled."""
        if draft.delivery_note_id:
            return []
        per_product: dict[str, float] = defaultdict(float)
        for ln in draft.lines:
            product = self.products.require(ln.product_id)
            per_product[ln.product_id] += product.to_smallest(ln.quantity, ln.unit)
        return [(pid, -qty) for pid, qty in per_product.items() if qty > EPS]

    def _header(self, invoice_id: str, draft: InvoiceDraft, *, created_at: str) -> SalesInvoiceHeader:
        t = compute_totals(draft.lines, draft.tax_rate, draft.shipping, draft.discount, draft.paid)
        return SalesInvoiceHeader(
            invoice_id=invoice_id,
            customer_id=draft.customer_id,
            date=draft.date or today_str(),
            status=draft.status,
            delivery_note_id=draft.delivery_note_id or None,
            subtotal=t["subtotal"],
            tax_rate=float(draft.tax_rate),
            tax_amount=t["tax_amount"],
            shipping=float(draft.shipping),
            discount=float(draft.discount),
            total=t["total"],
            paid=float(draft.paid),
            remaining=t["remaining"],
            payment_method=draft.payment_method,
            notes=draft.notes,
            created_at=created_at,
            updated_at=now_iso(),
        )

    @staticmethod
    def _items(invoice_id: str, draft: InvoiceDraft) -> list[SalesInvoiceItem]:
        return [
            SalesInvoiceItem(
                item_id=None,
                invoice_id=invoice_id,
                product_id=ln.product_id,
                unit=ln.unit,
                quantity=float(ln.quantity),
                price=float(ln.price),
                total=ln.total,
            )
            for ln in draft.lines
        ]

    def _touch_products(self, draft: InvoiceDraft, date: str) -> None:
        for pid in {ln.product_id for ln in draft.lines}:
            self.products.touch_last_sale(pid, date)
