# tests/test_invoice_allocation.py
from __future__ import annotations

from dataclasses import replace

import pytest

from inventory_core.database.repositories.sales_repo import SalesRepo
from inventory_core.errors import InsufficientAvailableQuantity, ValidationError
from inventory_core.modules.ledger.drafts import DeliveryNoteLineDraft, InvoiceDraft, InvoiceLineDraft

from conftest import DAY, balance_of, split_of, stock_of


def _draft(catalog, qty, *, note_id=None, status="pending", unit="smallest", product="water", **kw):
    return InvoiceDraft(
        customer_id=catalog["customer"],
        date=DAY,
        status=status,
        delivery_note_id=note_id,
        lines=[InvoiceLineDraft(catalog[product], qty, 2.0, unit)],
        **kw,
    )


# ---------------- delivery note mode ----------------

def test_create_then_edit_moves_reservation(conn, ctrl, catalog, note_id):
    inv = ctrl.save_invoice(_draft(catalog, 30, note_id=note_id))
    assert split_of(conn, note_id, catalog["water"]) == (100, 30, 70)

    ctrl.save_invoice(_draft(catalog, 50, note_id=note_id, invoice_id=inv))
    assert split_of(conn, note_id, catalog["water"]) == (100, 50, 50)
    # note lines were already taken off stock; invoices drawn on them do not touch it
    assert stock_of(conn, catalog["water"]) == pytest.approx(240)


def test_edit_with_same_quantity_round_trips(conn, ctrl, catalog, note_id):
    inv = ctrl.save_invoice(_draft(catalog, 70, note_id=note_id))
    after_create = split_of(conn, note_id, catalog["water"])
    ctrl.save_invoice(_draft(catalog, 70, note_id=note_id, invoice_id=inv))
    assert split_of(conn, note_id, catalog["water"]) == after_create


def test_edit_can_use_everything_it_already_holds(conn, ctrl, catalog, note_id):
    inv = ctrl.save_invoice(_draft(catalog, 100, note_id=note_id))
    assert ctrl.get_available_quantity(note_id, catalog["water"], "smallest") == 0
    assert ctrl.get_available_quantity(note_id, catalog["water"], "smallest", inv) == pytest.approx(100)
    ctrl.save_invoice(_draft(catalog, 100, note_id=note_id, invoice_id=inv, notes="edited"))
    assert split_of(conn, note_id, catalog["water"]) == (100, 100, 0)


def test_delete_restores_split(conn, ctrl, catalog, note_id):
    before = split_of(conn, note_id, catalog["water"])
    inv = ctrl.save_invoice(_draft(catalog, 40, note_id=note_id))
    ctrl.delete_invoice(inv)
    assert split_of(conn, note_id, catalog["water"]) == before
    assert SalesRepo(conn).get_header(inv) is None
    assert SalesRepo(conn).list_items(inv) == []


def test_two_invoices_cannot_oversell_one_line(conn, ctrl, catalog, note_id):
    ctrl.save_invoice(_draft(catalog, 70, note_id=note_id))
    with pytest.raises(InsufficientAvailableQuantity):
        ctrl.save_invoice(_draft(catalog, 31, note_id=note_id))
    assert split_of(conn, note_id, catalog["water"]) == (100, 70, 30)


def test_reservation_is_held_in_the_line_unit(conn, ctrl, catalog, note_id):
    ctrl.save_invoice(_draft(catalog, 4, note_id=note_id, product="juice", unit="largest"))
    assert split_of(conn, note_id, catalog["juice"], "largest") == (10, 4, 6)
    assert stock_of(conn, catalog["juice"]) == pytest.approx(20)


def test_line_not_on_the_note_is_rejected(conn, ctrl, catalog, note_id):
    with pytest.raises(ValidationError):
        ctrl.save_invoice(_draft(catalog, 1, note_id=note_id, product="juice", unit="smallest"))


# ---------------- direct stock mode ----------------

def test_invoice_without_note_takes_stock_in_smallest_unit(conn, ctrl, catalog):
    inv = ctrl.save_invoice(_draft(catalog, 2, unit="largest"))
    assert stock_of(conn, catalog["water"]) == pytest.approx(240 - 24)

    ctrl.save_invoice(_draft(catalog, 5, unit="smallest", invoice_id=inv))
    assert stock_of(conn, catalog["water"]) == pytest.approx(235)

    ctrl.delete_invoice(inv)
    assert stock_of(conn, catalog["water"]) == pytest.approx(240)


def test_switching_from_stock_to_note_mode(conn, ctrl, catalog, note_id):
    inv = ctrl.save_invoice(_draft(catalog, 10))
    assert stock_of(conn, catalog["water"]) == pytest.approx(230)

    ctrl.save_invoice(_draft(catalog, 10, note_id=note_id, invoice_id=inv))
    assert stock_of(conn, catalog["water"]) == pytest.approx(240)
    assert split_of(conn, note_id, catalog["water"]) == (100, 10, 90)

    ctrl.save_invoice(_draft(catalog, 10, invoice_id=inv))
    assert split_of(conn, note_id, catalog["water"]) == (100, 0, 100)
    assert stock_of(conn, catalog["water"]) == pytest.approx(230)


# ---------------- header math and balances ----------------

def test_totals(conn, ctrl, catalog):
    draft = InvoiceDraft(
        customer_id=catalog["customer"],
        date=DAY,
        lines=[
            InvoiceLineDraft(catalog["water"], 10, 1.5),
            InvoiceLineDraft(catalog["juice"], 2, 10.0),
        ],
        tax_rate=10,
        shipping=5,
        discount=3,
        paid=20,
    )
    inv = ctrl.save_invoice(draft)
    h = SalesRepo(conn).get_header(inv)
    assert h.subtotal == pytest.approx(35)
    assert h.tax_amount == pytest.approx(3.5)
    assert h.total == pytest.approx(40.5)
    assert h.remaining == pytest.approx(20.5)
    assert inv.startswith("SI20261017-")


def test_delivered_invoice_drives_customer_balance(conn, ctrl, catalog):
    d = _draft(catalog, 10, status="delivered")
    inv = ctrl.save_invoice(d)
    assert balance_of(conn, "customers", "customer_id", catalog["customer"]) == pytest.approx(20)

    ctrl.save_invoice(replace(d, status="pending", invoice_id=inv))
    assert balance_of(conn, "customers", "customer_id", catalog["customer"]) == pytest.approx(0)


def test_moving_invoice_to_another_customer_recomputes_both(conn, ctrl, catalog):
    d = _draft(catalog, 10, status="delivered")
    inv = ctrl.save_invoice(d)
    ctrl.save_invoice(replace(d, customer_id=catalog["customer2"], invoice_id=inv))
    assert balance_of(conn, "customers", "customer_id", catalog["customer"]) == pytest.approx(0)
    assert balance_of(conn, "customers", "customer_id", catalog["customer2"]) == pytest.approx(45)


def test_last_sale_date_is_stamped(conn, ctrl, catalog):
    ctrl.save_invoice(_draft(catalog, 1))
    assert ctrl.cache.product(catalog["water"]).last_sale_date == DAY


@pytest.mark.parametrize(
    "changes",
    [
        {"customer_id": "C-NOPE"},
        {"status": "shipped"},
        {"lines": []},
        {"tax_rate": -1},
    ],
)
def test_invalid_drafts_are_rejected(conn, ctrl, catalog, changes):
    with pytest.raises(ValidationError):
        ctrl.save_invoice(replace(_draft(catalog, 1), **changes))
    assert stock_of(conn, catalog["water"]) == pytest.approx(240)


def test_non_positive_quantity_is_rejected(conn, ctrl, catalog):
    with pytest.raises(ValidationError):
        ctrl.save_invoice(_draft(catalog, 0))
