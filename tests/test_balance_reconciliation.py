# tests/test_balance_reconciliation.py
from __future__ import annotations

import pytest

from inventory_core.database.repositories.balances_repo import BalancesRepo
from inventory_core.database.repositories.customers_repo import CustomersRepo
from inventory_core.errors import ValidationError
from inventory_core.modules.balances.reconciliation import BalanceReconciler
from inventory_core.modules.ledger.drafts import InvoiceDraft, InvoiceLineDraft

from conftest import DAY, balance_of


def _delivered(ctrl, catalog, amount, *, date=DAY, customer="customer"):
    return ctrl.save_invoice(
        InvoiceDraft(
            customer_id=catalog[customer],
            date=date,
            status="delivered",
            lines=[InvoiceLineDraft(catalog["water"], 1, amount)],
        )
    )


def test_recompute_from_delivered_invoices(conn, ctrl, catalog):
    _delivered(ctrl, catalog, 100)
    small = _delivered(ctrl, catalog, 50)
    assert ctrl.recompute_balance("customer", catalog["customer"]) == pytest.approx(150)

    ctrl.delete_invoice(small)
    assert ctrl.recompute_balance("customer", catalog["customer"]) == pytest.approx(100)


def test_recompute_is_idempotent_and_heals_drift(conn, ctrl, catalog):
    _delivered(ctrl, catalog, 40)
    conn.execute("UPDATE customers SET balance=9999 WHERE customer_id=?", (catalog["customer"],))
    conn.commit()

    first = ctrl.recompute_balance("customer", catalog["customer"])
    second = ctrl.recompute_balance("customer", catalog["customer"])
    assert first == second == pytest.approx(40)


def test_pending_invoices_do_not_count(conn, ctrl, catalog):
    ctrl.save_invoice(
        InvoiceDraft(
            customer_id=catalog["customer2"],
            date=DAY,
            lines=[InvoiceLineDraft(catalog["water"], 1, 500)],
        )
    )
    assert ctrl.recompute_balance("customer", catalog["customer2"]) == pytest.approx(25)


def test_transaction_dates_follow_invoices(conn, ctrl, catalog):
    _delivered(ctrl, catalog, 10, date="2026-10-01")
    _delivered(ctrl, catalog, 10, date="2026-10-09")
    c = CustomersRepo(conn).get(catalog["customer"])
    assert c.first_transaction_date == "2026-10-01"
    assert c.last_transaction_date == "2026-10-09"


def test_supplier_recompute(conn, ctrl, catalog):
    repo = BalancesRepo(conn)
    repo.add_purchase_invoice("PI-1", catalog["supplier"], "2026-10-02", total=300, paid=100)
    repo.add_purchase_invoice("PI-2", catalog["supplier"], "2026-10-05", total=80)
    repo.add_supplier_payment("SP-1", catalog["supplier"], "2026-10-06", 30)
    conn.commit()

    assert ctrl.recompute_balance("supplier", catalog["supplier"]) == pytest.approx(200 + 80 - 30)
    assert balance_of(conn, "suppliers", "supplier_id", catalog["supplier"]) == pytest.approx(250)


def test_recompute_all(conn, ctrl, catalog):
    _delivered(ctrl, catalog, 12)
    out = ctrl.recompute_all_balances()
    assert out[("customer", catalog["customer"])] == pytest.approx(12)
    assert out[("customer", catalog["customer2"])] == pytest.approx(25)
    assert out[("supplier", catalog["supplier"])] == pytest.approx(0)


def test_unknown_entity(conn, catalog):
    rec = BalanceReconciler(conn)
    with pytest.raises(ValidationError):
        rec.recompute("customer", "C-NOPE")
    with pytest.raises(ValidationError):
        rec.recompute("partner", catalog["customer"])
