# tests/test_reservation_ledger.py
from __future__ import annotations

import pytest

from inventory_core.database.repositories.delivery_notes_repo import DeliveryNotesRepo, ReservationKey
from inventory_core.errors import InsufficientAvailableQuantity, ValidationError
from inventory_core.modules.delivery_notes.reservation_ledger import ReservationLedger

from conftest import split_of


@pytest.fixture()
def ledger(conn, note_id) -> ReservationLedger:
    return ReservationLedger(conn)


def _key(note_id, catalog, unit="smallest"):
    return ReservationKey(note_id, catalog["water"], unit)


def _assert_split_holds(conn, note_id):
    for it in DeliveryNotesRepo(conn).list_items(note_id):
        assert it.reserved_quantity + it.available_quantity == pytest.approx(it.quantity)
        assert it.reserved_quantity >= 0
        assert it.available_quantity >= 0


def test_reserve_and_release_keep_split(conn, catalog, note_id, ledger):
    key = _key(note_id, catalog)
    ledger.reserve(key, 30)
    assert split_of(conn, note_id, catalog["water"]) == (100, 30, 70)
    ledger.release(key, 10)
    assert split_of(conn, note_id, catalog["water"]) == (100, 20, 80)
    # over-release floors reserved at zero and keeps the split
    ledger.release(key, 500)
    assert split_of(conn, note_id, catalog["water"]) == (100, 0, 100)
    _assert_split_holds(conn, note_id)


def test_over_reservation_is_rejected_without_mutation(conn, catalog, note_id, ledger):
    key = _key(note_id, catalog)
    ledger.reserve(key, 30)

    with pytest.raises(InsufficientAvailableQuantity) as ei:
        ledger.reserve(key, 80)

    assert ei.value.key == key
    assert ei.value.requested == pytest.approx(80)
    assert ei.value.available == pytest.approx(70)
    assert split_of(conn, note_id, catalog["water"]) == (100, 30, 70)


def test_apply_delta_releases_before_reserving(conn, catalog, note_id, ledger, monkeypatch):
    key = _key(note_id, catalog)
    ledger.reserve(key, 30)

    seen = []
    original = ledger.notes.update_split

    def spy(item_id, reserved, available):
        seen.append((reserved, available))
        return original(item_id, reserved, available)

    monkeypatch.setattr(ledger.notes, "update_split", spy)
    ledger.apply_delta({key: 30}, {key: 50})

    assert seen == [(0, 100), (50, 50)]
    assert split_of(conn, note_id, catalog["water"]) == (100, 50, 50)


def test_apply_delta_same_quantity_is_a_no_op(conn, catalog, note_id, ledger):
    key = _key(note_id, catalog)
    ledger.reserve(key, 100)
    ledger.apply_delta({key: 100}, {key: 100})
    assert split_of(conn, note_id, catalog["water"]) == (100, 100, 0)


def test_apply_delta_validates_every_key_first(conn, catalog, note_id, ledger):
    water = _key(note_id, catalog)
    juice = ReservationKey(note_id, catalog["juice"], "largest")
    ledger.reserve(water, 10)

    with pytest.raises(InsufficientAvailableQuantity):
        ledger.apply_delta({water: 10}, {water: 20, juice: 11})

    assert split_of(conn, note_id, catalog["water"]) == (100, 10, 90)
    assert split_of(conn, note_id, catalog["juice"], "largest") == (10, 0, 10)


def test_missing_key_is_a_validation_error(conn, catalog, note_id, ledger):
    with pytest.raises(ValidationError):
        ledger.reserve(ReservationKey(note_id, catalog["water"], "largest"), 1)


def test_settled_note_refuses_new_reservations(conn, catalog, note_id, ledger, ctrl):
    key = _key(note_id, catalog)
    ledger.reserve(key, 5)
    conn.commit()
    ctrl.settle_delivery_note(note_id)

    with pytest.raises(ValidationError):
        ledger.reserve(key, 1)
    # unchanged quantity is still allowed through apply_delta
    ledger.apply_delta({key: 5}, {key: 5})
    assert split_of(conn, note_id, catalog["water"]) == (100, 5, 95)


def test_selectable_items_hide_exhausted_lines(conn, catalog, note_id, ledger):
    ledger.reserve(_key(note_id, catalog), 100)
    items = ledger.selectable_items(note_id)
    assert [(it.product_id, it.unit) for it in items] == [(catalog["juice"], "largest")]
