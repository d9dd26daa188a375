# tests/test_schema_guards.py
from __future__ import annotations

import sqlite3

import pytest

from inventory_core.database import MEMORY, get_connection
from inventory_core.database.versioning import get_current_version
from inventory_core.constants import SCHEMA_VERSION
from inventory_core.utils.helpers import new_document_id


def test_schema_is_idempotent_and_versioned(tmp_path):
    path = tmp_path / "twice.db"
    get_connection(path).close()
    con = get_connection(path)
    try:
        assert get_current_version(con) == SCHEMA_VERSION
        assert con.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    finally:
        con.close()


def test_memory_database_with_seed():
    con = get_connection(MEMORY, seed=True)
    try:
        n = con.execute("SELECT COUNT(*) FROM products").fetchone()[0]
        assert n >= 2
    finally:
        con.close()


def test_negative_stock_is_refused(conn, catalog):
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute("UPDATE products SET stock=-1 WHERE product_id=?", (catalog["water"],))
    conn.rollback()


def test_split_must_add_up(conn, ctrl, catalog, note_id):
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "UPDATE delivery_note_items SET reserved_quantity=10 WHERE delivery_note_id=?",
            (note_id,),
        )
    conn.rollback()


def test_issued_quantity_is_fixed(conn, ctrl, catalog, note_id):
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "UPDATE delivery_note_items SET quantity=200, available_quantity=200 "
            "WHERE delivery_note_id=? AND product_id=?",
            (note_id, catalog["water"]),
        )
    conn.rollback()


def test_invoice_line_must_exist_on_note(conn, ctrl, catalog, note_id):
    conn.execute(
        "INSERT INTO sales_invoices(invoice_id, customer_id, date, delivery_note_id, created_at, updated_at) "
        "VALUES ('SI-X', ?, '2026-10-17', ?, 'now', 'now')",
        (catalog["customer"], note_id),
    )
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "INSERT INTO sales_invoice_items(invoice_id, product_id, unit, quantity, price, total) "
            "VALUES ('SI-X', ?, 'smallest', 1, 1, 1)",
            (catalog["juice"],),
        )
    conn.rollback()


def test_document_ids_count_per_day(conn, catalog):
    assert new_document_id(conn, "returns", "return_id", "RT", "2026-10-17") == "RT20261017-0001"
    conn.execute(
        "INSERT INTO returns(return_id, return_type, entity_id, product_id, date, quantity, unit_price, "
        "total_amount, return_reason, restored_to_stock, restore_balance, created_at) "
        "VALUES ('RT20261017-0007', 'from_customer', 'C-1', 'P-WATER', '2026-10-17', 1, 1, 1, 'x', 1, 0, 'now')"
    )
    assert new_document_id(conn, "returns", "return_id", "RT", "2026-10-17") == "RT20261017-0008"
    assert new_document_id(conn, "returns", "return_id", "RT", "2026-10-18") == "RT20261018-0001"
    conn.rollback()


def test_document_ids_past_four_digits(conn, catalog):
    for rid in ("RT20261017-9999", "RT20261017-10000"):
        conn.execute(
            "INSERT INTO returns(return_id, return_type, entity_id, product_id, date, quantity, unit_price, "
            "total_amount, return_reason, restored_to_stock, restore_balance, created_at) "
            "VALUES (?, 'from_customer', 'C-1', 'P-WATER', '2026-10-17', 1, 1, 1, 'x', 1, 0, 'now')",
            (rid,),
        )
    assert new_document_id(conn, "returns", "return_id", "RT", "2026-10-17") == "RT20261017-10001"
    conn.rollback()
