# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures)
# - Every test gets its own SQLite file under tmp_path (schema applied)
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON
# - Provide a small catalog: two products, a customer, a supplier
# - Silence benign Qt signal warnings
# ---------------------------------------------------------------------

from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import re
import sqlite3

import pytest
from PySide6 import QtCore

from inventory_core.database import get_connection
from inventory_core.database.repositories.customers_repo import CustomersRepo
from inventory_core.database.repositories.products_repo import ProductsRepo
from inventory_core.database.repositories.suppliers_repo import SuppliersRepo
from inventory_core.modules.ledger.controller import LedgerController
from inventory_core.modules.ledger.drafts import DeliveryNoteLineDraft

DAY = "2026-10-17"


# ---------- Silence benign Qt warnings ----------
_BENIGN_QT_PATTERNS = [
    r"^QObject::connect: .* already connected",
    r"^QObject::disconnect: Unexpected null parameter",
]


@pytest.fixture(autouse=True, scope="session")
def _silence_benign_qt():
    """Filter common harmless Qt messages during tests."""
    rx = [re.compile(p) for p in _BENIGN_QT_PATTERNS]

    def handler(msg_type, context, message):
        text = str(message)
        if any(r.search(text) for r in rx):
            return
        print(text)

    original = QtCore.qInstallMessageHandler(handler)
    try:
        yield
    finally:
        QtCore.qInstallMessageHandler(original)


# ---------- Per-test database ----------
@pytest.fixture()
def conn(tmp_path) -> sqlite3.Connection:
    con = get_connection(tmp_path / "inventory.db")
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def catalog(conn: sqlite3.Connection) -> dict:
    """
    WATER: 12 bottles per carton, 240 bottles on hand.
    JUICE: 6 bottles per carton, 20 bottles on hand.
    """
    products = ProductsRepo(conn)
    products.create("P-WATER", "WATER", "Water 500ml", "Bottle", "Carton", 12, 240)
    products.create("P-JUICE", "JUICE", "Juice 1L", "Bottle", "Carton", 6, 20)
    CustomersRepo(conn).create("C-1", "C-1", "Acme Stores", opening_balance=0.0)
    CustomersRepo(conn).create("C-2", "C-2", "Corner Shop", opening_balance=25.0)
    SuppliersRepo(conn).create("S-1", "S-1", "Main Distributor", opening_balance=0.0)
    conn.commit()
    return {
        "water": "P-WATER",
        "juice": "P-JUICE",
        "customer": "C-1",
        "customer2": "C-2",
        "supplier": "S-1",
    }


@pytest.fixture()
def ctrl(qapp, conn: sqlite3.Connection, catalog) -> LedgerController:
    return LedgerController(conn)


@pytest.fixture()
def note_id(ctrl: LedgerController, catalog) -> str:
    """An issued delivery note with 100 bottles of water and 10 cartons of juice."""
    return ctrl.issue_delivery_note(
        [
            DeliveryNoteLineDraft(catalog["water"], 100, "smallest"),
            DeliveryNoteLineDraft(catalog["juice"], 10, "largest"),
        ],
        "Warehouse Keeper",
        date=DAY,
    )


# ---------- small readers shared by the suites ----------
def stock_of(conn: sqlite3.Connection, product_id: str) -> float:
    return ProductsRepo(conn).stock_of(product_id)


def split_of(conn: sqlite3.Connection, note_id: str, product_id: str, unit: str = "smallest") -> tuple[float, float, float]:
    r = conn.execute(
        """
        SELECT CAST(quantity AS REAL) AS q, CAST(reserved_quantity AS REAL) AS r,
               CAST(available_quantity AS REAL) AS a
          FROM delivery_note_items
         WHERE delivery_note_id=? AND product_id=? AND unit=?
        """,
        (note_id, product_id, unit),
    ).fetchone()
    return float(r["q"]), float(r["r"]), float(r["a"])


def balance_of(conn: sqlite3.Connection, table: str, key: str, entity_id: str) -> float:
    r = conn.execute(f"SELECT CAST(balance AS REAL) AS b FROM {table} WHERE {key}=?", (entity_id,)).fetchone()
    return float(r["b"])
