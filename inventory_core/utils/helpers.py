# utils/helpers.py
from datetime import date, datetime
import logging
import sqlite3
from typing import Optional

_log = logging.getLogger(__name__)


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def now_iso() -> str:
    """Timestamp used for created_at / last_transaction_date columns."""
    return datetime.now().isoformat(timespec="seconds")


def new_document_id(
    conn: sqlite3.Connection,
    table: str,
    column: str,
    prefix: str,
    date_str: Optional[str] = None,
) -> str:
    """
    Next id of the form PREFIXYYYYMMDD-NNNN for `table.column`.

    Sequence restarts every day. Callers run this inside the same
    transaction as the INSERT so two saves cannot pick the same number.
    """
    d = (date_str or today_str()).replace("-", "")
    stem = f"{prefix}{d}-"
    # numeric MAX: as text "-9999" sorts above "-10000"
    row = conn.execute(
        f"SELECT MAX(CAST(substr({column}, ?) AS INTEGER)) AS m "
        f"FROM {table} WHERE {column} LIKE ?",
        (len(stem) + 1, stem + "%"),
    ).fetchone()
    last = int(row[0] or 0) if row else 0
    if row and row[0] == 0:
        _log.warning("new_document_id: non-numeric ids under %s in %s.%s", stem, table, column)
    return f"{stem}{last + 1:04d}"
