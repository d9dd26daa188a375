APP_NAME = "Inventory Core"

DATA_DIR = "data"
DB_FILE_NAME = "inventory.db"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

# Tolerance for float comparisons on quantities and money
EPS = 1e-9

# ---- units ----
UNIT_SMALLEST = "smallest"
UNIT_LARGEST = "largest"
UNITS = (UNIT_SMALLEST, UNIT_LARGEST)

# ---- sales invoices ----
INVOICE_PENDING = "pending"
INVOICE_DELIVERED = "delivered"
INVOICE_STATUSES = (INVOICE_PENDING, INVOICE_DELIVERED)

# ---- delivery notes ----
NOTE_ISSUED = "issued"
NOTE_SETTLED = "settled"

# ---- adjustments ----
ADJ_INCREASE = "increase"
ADJ_DECREASE = "decrease"
ADJ_SET = "set"
ADJUSTMENT_TYPES = (ADJ_INCREASE, ADJ_DECREASE, ADJ_SET)

# ---- returns ----
RETURN_FROM_CUSTOMER = "from_customer"
RETURN_TO_SUPPLIER = "to_supplier"
RETURN_TYPES = (RETURN_FROM_CUSTOMER, RETURN_TO_SUPPLIER)

# goods returned for these reasons never go back on the shelf
NON_RESTOCK_REASONS = frozenset({"damaged", "expired"})

# ---- parties ----
ENTITY_CUSTOMER = "customer"
ENTITY_SUPPLIER = "supplier"
ENTITY_TYPES = (ENTITY_CUSTOMER, ENTITY_SUPPLIER)

# ---- stock movement / balance event references ----
REF_SALES_INVOICE = "sales_invoice"
REF_ADJUSTMENT = "adjustment"
REF_RETURN = "return"
REF_DELIVERY_NOTE = "delivery_note"

# ---- document id prefixes (PREFIXYYYYMMDD-NNNN) ----
PREFIX_INVOICE = "SI"
PREFIX_DELIVERY_NOTE = "DN"
PREFIX_ADJUSTMENT = "ADJ"
PREFIX_RETURN = "RT"
