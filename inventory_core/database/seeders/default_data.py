"""
Demo rows for a fresh database (dev launcher / manual testing).

Idempotent: INSERT OR IGNORE on fixed ids, so running it on every start
never duplicates or overwrites anything.
"""

_PRODUCTS = [
    # product_id, code, name, smallest_unit, largest_unit, factor, stock
    ("P-0001", "P-0001", "Mineral Water 500ml", "Bottle", "Carton", 12, 240),
    ("P-0002", "P-0002", "Orange Juice 1L", "Bottle", "Carton", 6, 60),
]

_CUSTOMERS = [
    ("C-0001", "C-0001", "Walk-in Customer", 0.0),
]

_SUPPLIERS = [
    ("S-0001", "S-0001", "Main Distributor", 0.0),
]


def seed(conn):
    conn.executemany(
        """
        INSERT OR IGNORE INTO products(
            product_id, code, name, smallest_unit, largest_unit, conversion_factor, stock
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        _PRODUCTS,
    )
    conn.executemany(
        """
        INSERT OR IGNORE INTO customers(customer_id, code, name, opening_balance, balance)
        VALUES (?, ?, ?, ?, ?)
        """,
        [(cid, code, name, ob, ob) for cid, code, name, ob in _CUSTOMERS],
    )
    conn.executemany(
        """
        INSERT OR IGNORE INTO suppliers(supplier_id, code, name, opening_balance, balance)
        VALUES (?, ?, ?, ?, ?)
        """,
        [(sid, code, name, ob, ob) for sid, code, name, ob in _SUPPLIERS],
    )
