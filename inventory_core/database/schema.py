from pathlib import Path
import sqlite3
import sys

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== CORE TABLES ======================== */

/* -------- products -------- */
CREATE TABLE IF NOT EXISTS products (
    product_id          TEXT PRIMARY KEY,
    code                TEXT UNIQUE NOT NULL,
    name                TEXT NOT NULL,
    category            TEXT,
    smallest_unit       TEXT NOT NULL,
    largest_unit        TEXT NOT NULL,
    conversion_factor   NUMERIC NOT NULL DEFAULT 1 CHECK (CAST(conversion_factor AS REAL) > 0),
    smallest_price      NUMERIC NOT NULL DEFAULT 0,
    largest_price       NUMERIC NOT NULL DEFAULT 0,
    stock               NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(stock AS REAL) >= 0),
    status              TEXT NOT NULL DEFAULT 'active',
    last_sale_date      TEXT,
    last_inventory_date TEXT
);

/* -------- parties -------- */
CREATE TABLE IF NOT EXISTS customers (
    customer_id            TEXT PRIMARY KEY,
    code                   TEXT UNIQUE NOT NULL,
    name                   TEXT NOT NULL,
    phone                  TEXT,
    address                TEXT,
    opening_balance        NUMERIC NOT NULL DEFAULT 0,
    balance                NUMERIC NOT NULL DEFAULT 0,
    first_transaction_date TEXT,
    last_transaction_date  TEXT
);

CREATE TABLE IF NOT EXISTS suppliers (
    supplier_id           TEXT PRIMARY KEY,
    code                  TEXT UNIQUE NOT NULL,
    name                  TEXT NOT NULL,
    phone                 TEXT,
    address               TEXT,
    opening_balance       NUMERIC NOT NULL DEFAULT 0,
    balance               NUMERIC NOT NULL DEFAULT 0,
    last_transaction_date TEXT
);

/* ======================== DELIVERY NOTES ======================== */

CREATE TABLE IF NOT EXISTS delivery_notes (
    delivery_note_id      TEXT PRIMARY KEY,
    date                  DATE NOT NULL,
    status                TEXT NOT NULL DEFAULT 'issued'
                          CHECK (status IN ('issued','settled')),
    warehouse_keeper_name TEXT NOT NULL,
    sales_rep_name        TEXT,
    notes                 TEXT,
    created_at            TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS delivery_note_items (
    item_id            INTEGER PRIMARY KEY AUTOINCREMENT,
    delivery_note_id   TEXT NOT NULL,
    product_id         TEXT NOT NULL,
    unit               TEXT NOT NULL CHECK (unit IN ('smallest','largest')),
    quantity           NUMERIC NOT NULL CHECK (CAST(quantity AS REAL) > 0),
    reserved_quantity  NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(reserved_quantity AS REAL) >= 0),
    available_quantity NUMERIC NOT NULL CHECK (CAST(available_quantity AS REAL) >= 0),
    UNIQUE (delivery_note_id, product_id, unit),
    /* reserved + available == issued quantity, always */
    CHECK (ABS(CAST(reserved_quantity AS REAL) + CAST(available_quantity AS REAL)
               - CAST(quantity AS REAL)) < 1e-6),
    FOREIGN KEY (delivery_note_id) REFERENCES delivery_notes(delivery_note_id) ON DELETE CASCADE,
    FOREIGN KEY (product_id)       REFERENCES products(product_id)
);
CREATE INDEX IF NOT EXISTS idx_dn_items_note ON delivery_note_items(delivery_note_id);

/* ======================== SALES INVOICES ======================== */

CREATE TABLE IF NOT EXISTS sales_invoices (
    invoice_id       TEXT PRIMARY KEY,
    customer_id      TEXT NOT NULL,
    date             DATE NOT NULL,
    status           TEXT NOT NULL DEFAULT 'pending'
                     CHECK (status IN ('pending','delivered')),
    delivery_note_id TEXT,
    subtotal         NUMERIC NOT NULL DEFAULT 0,
    tax_rate         NUMERIC NOT NULL DEFAULT 0,
    tax_amount       NUMERIC NOT NULL DEFAULT 0,
    shipping         NUMERIC NOT NULL DEFAULT 0,
    discount         NUMERIC NOT NULL DEFAULT 0,
    total            NUMERIC NOT NULL DEFAULT 0,
    paid             NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(paid AS REAL) >= 0),
    remaining        NUMERIC NOT NULL DEFAULT 0,
    payment_method   TEXT,
    notes            TEXT,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL,
    FOREIGN KEY (customer_id)      REFERENCES customers(customer_id),
    FOREIGN KEY (delivery_note_id) REFERENCES delivery_notes(delivery_note_id)
);
CREATE INDEX IF NOT EXISTS idx_sales_invoices_customer ON sales_invoices(customer_id, status);
CREATE INDEX IF NOT EXISTS idx_sales_invoices_note     ON sales_invoices(delivery_note_id);

CREATE TABLE IF NOT EXISTS sales_invoice_items (
    item_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_id TEXT NOT NULL,
    product_id TEXT NOT NULL,
    unit       TEXT NOT NULL CHECK (unit IN ('smallest','largest')),
    quantity   NUMERIC NOT NULL CHECK (CAST(quantity AS REAL) > 0),
    price      NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(price AS REAL) >= 0),
    total      NUMERIC NOT NULL DEFAULT 0,
    FOREIGN KEY (invoice_id) REFERENCES sales_invoices(invoice_id) ON DELETE CASCADE,
    FOREIGN KEY (product_id) REFERENCES products(product_id)
);
CREATE INDEX IF NOT EXISTS idx_sales_invoice_items_invoice ON sales_invoice_items(invoice_id);

/* ======================== PURCHASE SIDE (balance inputs) ======================== */

CREATE TABLE IF NOT EXISTS purchase_invoices (
    invoice_id  TEXT PRIMARY KEY,
    supplier_id TEXT NOT NULL,
    date        DATE NOT NULL,
    total       NUMERIC NOT NULL DEFAULT 0,
    paid        NUMERIC NOT NULL DEFAULT 0,
    remaining   NUMERIC NOT NULL DEFAULT 0,
    FOREIGN KEY (supplier_id) REFERENCES suppliers(supplier_id)
);

CREATE TABLE IF NOT EXISTS supplier_payments (
    payment_id  TEXT PRIMARY KEY,
    supplier_id TEXT NOT NULL,
    date        DATE NOT NULL,
    amount      NUMERIC NOT NULL CHECK (CAST(amount AS REAL) > 0),
    FOREIGN KEY (supplier_id) REFERENCES suppliers(supplier_id)
);

/* ======================== INVENTORY ======================== */

CREATE TABLE IF NOT EXISTS inventory_adjustments (
    adjustment_id TEXT PRIMARY KEY,
    product_id    TEXT NOT NULL,
    date          DATE NOT NULL,
    type          TEXT NOT NULL CHECK (type IN ('increase','decrease','set')),
    unit          TEXT NOT NULL DEFAULT 'smallest' CHECK (unit IN ('smallest','largest')),
    quantity      NUMERIC NOT NULL CHECK (CAST(quantity AS REAL) >= 0),
    quantity_base NUMERIC NOT NULL CHECK (CAST(quantity_base AS REAL) >= 0),
    old_stock     NUMERIC NOT NULL,
    new_stock     NUMERIC NOT NULL,
    reason        TEXT NOT NULL,
    notes         TEXT,
    created_at    TEXT NOT NULL,
    FOREIGN KEY (product_id) REFERENCES products(product_id)
);

/* every stock mutation, requested vs applied (decrease clamps at zero) */
CREATE TABLE IF NOT EXISTS stock_movements (
    movement_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id      TEXT NOT NULL,
    reference_type  TEXT NOT NULL,
    reference_id    TEXT NOT NULL,
    requested_delta NUMERIC NOT NULL,
    applied_delta   NUMERIC NOT NULL,
    stock_before    NUMERIC NOT NULL,
    stock_after     NUMERIC NOT NULL,
    clamped         INTEGER NOT NULL DEFAULT 0 CHECK (clamped IN (0,1)),
    created_at      TEXT NOT NULL,
    FOREIGN KEY (product_id) REFERENCES products(product_id)
);
CREATE INDEX IF NOT EXISTS idx_stock_movements_ref
ON stock_movements(reference_type, reference_id);

/* ======================== RETURNS ======================== */

CREATE TABLE IF NOT EXISTS returns (
    return_id         TEXT PRIMARY KEY,
    return_type       TEXT NOT NULL CHECK (return_type IN ('from_customer','to_supplier')),
    entity_id         TEXT NOT NULL,
    product_id        TEXT NOT NULL,
    invoice_id        TEXT,
    date              DATE NOT NULL,
    unit              TEXT NOT NULL DEFAULT 'smallest' CHECK (unit IN ('smallest','largest')),
    quantity          NUMERIC NOT NULL CHECK (CAST(quantity AS REAL) > 0),
    unit_price        NUMERIC NOT NULL CHECK (CAST(unit_price AS REAL) >= 0),
    total_amount      NUMERIC NOT NULL,
    return_reason     TEXT NOT NULL,
    restored_to_stock INTEGER NOT NULL CHECK (restored_to_stock IN (0,1)),
    restore_balance   INTEGER NOT NULL CHECK (restore_balance IN (0,1)),
    notes             TEXT,
    created_at        TEXT NOT NULL,
    FOREIGN KEY (product_id) REFERENCES products(product_id)
    /* entity_id points at customers OR suppliers; validated in application code */
);

/* ======================== BALANCE EVENTS ======================== */

/* signed non-invoice amounts folded into the balance recompute */
CREATE TABLE IF NOT EXISTS balance_events (
    event_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    entity_type    TEXT NOT NULL CHECK (entity_type IN ('customer','supplier')),
    entity_id      TEXT NOT NULL,
    amount         NUMERIC NOT NULL,
    reference_type TEXT NOT NULL,
    reference_id   TEXT NOT NULL,
    date           DATE NOT NULL,
    UNIQUE (reference_type, reference_id)
);
CREATE INDEX IF NOT EXISTS idx_balance_events_entity ON balance_events(entity_type, entity_id);


/* ======================== GUARDS ======================== */

/* issued quantity is fixed once the note exists; only the split moves */
DROP TRIGGER IF EXISTS trg_dn_items_quantity_fixed;
CREATE TRIGGER trg_dn_items_quantity_fixed
BEFORE UPDATE OF quantity, delivery_note_id, product_id, unit ON delivery_note_items
FOR EACH ROW
WHEN NEW.quantity <> OLD.quantity
  OR NEW.delivery_note_id <> OLD.delivery_note_id
  OR NEW.product_id <> OLD.product_id
  OR NEW.unit <> OLD.unit
BEGIN
  SELECT RAISE(ABORT, 'Delivery note item quantity is fixed once issued');
END;

/* the inverse of a return is computed from these flags; never rewrite them */
DROP TRIGGER IF EXISTS trg_returns_flags_immutable;
CREATE TRIGGER trg_returns_flags_immutable
BEFORE UPDATE ON returns
FOR EACH ROW
WHEN NEW.restored_to_stock <> OLD.restored_to_stock
  OR NEW.restore_balance   <> OLD.restore_balance
  OR NEW.return_type       <> OLD.return_type
  OR NEW.quantity          <> OLD.quantity
  OR NEW.unit_price        <> OLD.unit_price
BEGIN
  SELECT RAISE(ABORT, 'Return effect fields are immutable');
END;

/* invoice lines must match a line on the referenced delivery note */
DROP TRIGGER IF EXISTS trg_sales_items_note_line_exists;
CREATE TRIGGER trg_sales_items_note_line_exists
BEFORE INSERT ON sales_invoice_items
FOR EACH ROW
WHEN (SELECT delivery_note_id FROM sales_invoices WHERE invoice_id = NEW.invoice_id) IS NOT NULL
BEGIN
  SELECT CASE
    WHEN NOT EXISTS (
      SELECT 1
      FROM delivery_note_items dni
      JOIN sales_invoices si ON si.delivery_note_id = dni.delivery_note_id
      WHERE si.invoice_id  = NEW.invoice_id
        AND dni.product_id = NEW.product_id
        AND dni.unit       = NEW.unit
    )
    THEN RAISE(ABORT, 'Invoice line has no matching delivery note line')
    ELSE 1
  END;
END;
"""


def init_schema(db_path: Path | str = "inventory.db") -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        apply_schema(conn)
        conn.commit()


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema on an already-open connection."""
    conn.executescript(SQL)


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else Path(__file__).resolve().parents[1] / "data" / "inventory.db"
    init_schema(target)
    print(f"✓ DB applied to {target}")
