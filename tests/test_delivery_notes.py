# tests/test_delivery_notes.py
from __future__ import annotations

import pytest

from inventory_core.database.repositories.delivery_notes_repo import DeliveryNotesRepo
from inventory_core.errors import ValidationError
from inventory_core.modules.ledger.drafts import DeliveryNoteLineDraft, InvoiceDraft, InvoiceLineDraft

from conftest import DAY, split_of, stock_of


def _invoice(catalog, note_id, qty, status="pending", invoice_id=None):
    return InvoiceDraft(
        customer_id=catalog["customer"],
        date=DAY,
        status=status,
        delivery_note_id=note_id,
        lines=[InvoiceLineDraft(catalog["water"], qty, 1.0)],
        invoice_id=invoice_id,
    )


def test_issue_starts_fully_available_and_merges_lines(conn, ctrl, catalog):
    nid = ctrl.issue_delivery_note(
        [
            DeliveryNoteLineDraft(catalog["water"], 10),
            DeliveryNoteLineDraft(catalog["water"], 15),
            DeliveryNoteLineDraft(catalog["water"], 2, "largest"),
        ],
        "  Sam  ",
        date=DAY,
    )
    assert nid == "DN20261017-0001"
    note = DeliveryNotesRepo(conn).get_note(nid)
    assert note.status == "issued"
    assert note.warehouse_keeper_name == "Sam"
    assert split_of(conn, nid, catalog["water"]) == (25, 0, 25)
    assert split_of(conn, nid, catalog["water"], "largest") == (2, 0, 2)


@pytest.mark.parametrize(
    "lines, keeper",
    [
        ([], "Sam"),
        ([DeliveryNoteLineDraft("P-NOPE", 1)], "Sam"),
        ([DeliveryNoteLineDraft("P-WATER", 0)], "Sam"),
        ([DeliveryNoteLineDraft("P-WATER", 1, "crate")], "Sam"),
        ([DeliveryNoteLineDraft("P-WATER", 1)], ""),
    ],
)
def test_issue_validation(conn, ctrl, catalog, lines, keeper):
    with pytest.raises(ValidationError):
        ctrl.issue_delivery_note(lines, keeper)
    assert DeliveryNotesRepo(conn).list_notes() == []


def test_delete_refused_while_invoices_reference_the_note(conn, ctrl, catalog, note_id):
    inv = ctrl.save_invoice(_invoice(catalog, note_id, 5))
    with pytest.raises(ValidationError):
        ctrl.delete_delivery_note(note_id)

    ctrl.delete_invoice(inv)
    ctrl.delete_delivery_note(note_id)
    assert DeliveryNotesRepo(conn).get_note(note_id) is None
    assert DeliveryNotesRepo(conn).list_items(note_id) == []


def test_settle_requires_delivered_invoices(conn, ctrl, catalog, note_id):
    inv = ctrl.save_invoice(_invoice(catalog, note_id, 5))
    with pytest.raises(ValidationError):
        ctrl.settle_delivery_note(note_id)

    ctrl.save_invoice(_invoice(catalog, note_id, 5, status="delivered", invoice_id=inv))
    ctrl.settle_delivery_note(note_id)
    assert DeliveryNotesRepo(conn).get_note(note_id).status == "settled"

    # settled notes take no new invoices until reopened
    with pytest.raises(ValidationError):
        ctrl.save_invoice(_invoice(catalog, note_id, 1))

    ctrl.reopen_delivery_note(note_id)
    ctrl.save_invoice(_invoice(catalog, note_id, 1))
    assert split_of(conn, note_id, catalog["water"]) == (100, 6, 94)


def test_note_change_signal(qtbot, ctrl, catalog, note_id):
    ctrl.settle_delivery_note(note_id)
    with qtbot.waitSignal(ctrl.events.deliveryNoteChanged, timeout=1000) as blocker:
        ctrl.reopen_delivery_note(note_id)
    assert blocker.args == [note_id]


def test_unknown_note(ctrl, catalog):
    with pytest.raises(ValidationError):
        ctrl.settle_delivery_note("DN-NOPE")
    with pytest.raises(ValidationError):
        ctrl.save_invoice(_invoice(catalog, "DN-NOPE", 1))


def test_settlement_takes_sold_goods_off_stock(conn, ctrl, catalog, note_id):
    # issuing the note leaves the goods in the warehouse
    assert stock_of(conn, catalog["water"]) == pytest.approx(240)
    ctrl.save_invoice(_invoice(catalog, note_id, 30, status="delivered"))
    assert stock_of(conn, catalog["water"]) == pytest.approx(240)

    ctrl.settle_delivery_note(note_id)
    assert stock_of(conn, catalog["water"]) == pytest.approx(210)
    assert stock_of(conn, catalog["juice"]) == pytest.approx(20)

    ctrl.reopen_delivery_note(note_id)
    assert stock_of(conn, catalog["water"]) == pytest.approx(240)
    assert DeliveryNotesRepo(conn).get_note(note_id).status == "issued"


def test_settlement_converts_largest_units(conn, ctrl, catalog, note_id):
    ctrl.save_invoice(
        InvoiceDraft(
            customer_id=catalog["customer"],
            date=DAY,
            status="delivered",
            delivery_note_id=note_id,
            lines=[InvoiceLineDraft(catalog["juice"], 2, 9.0, "largest")],
        )
    )
    ctrl.settle_delivery_note(note_id)
    assert stock_of(conn, catalog["juice"]) == pytest.approx(8)


def test_settled_note_follows_invoice_edits(conn, ctrl, catalog, note_id):
    inv = ctrl.save_invoice(_invoice(catalog, note_id, 30, status="delivered"))
    ctrl.settle_delivery_note(note_id)

    ctrl.save_invoice(_invoice(catalog, note_id, 20, status="delivered", invoice_id=inv))
    assert split_of(conn, note_id, catalog["water"]) == (100, 20, 80)
    assert stock_of(conn, catalog["water"]) == pytest.approx(220)

    ctrl.delete_invoice(inv)
    assert stock_of(conn, catalog["water"]) == pytest.approx(240)

    # nothing sold any more: the settled note can go
    ctrl.delete_delivery_note(note_id)
    assert stock_of(conn, catalog["water"]) == pytest.approx(240)
    assert conn.execute(
        "SELECT COUNT(*) FROM stock_movements WHERE reference_type='delivery_note'"
    ).fetchone()[0] == 0


def test_only_settled_notes_reopen(conn, ctrl, catalog, note_id):
    with pytest.raises(ValidationError):
        ctrl.reopen_delivery_note(note_id)

    ctrl.settle_delivery_note(note_id)
    with pytest.raises(ValidationError):
        ctrl.settle_delivery_note(note_id)
    ctrl.reopen_delivery_note(note_id)
    assert DeliveryNotesRepo(conn).get_note(note_id).status == "issued"
