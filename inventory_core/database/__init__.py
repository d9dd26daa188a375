# database/__init__.py
from __future__ import annotations

from pathlib import Path
import sqlite3

from ..config import DB_PATH
from . import schema as schema_module
from .seeders.default_data import seed as seed_default_data
from .transactions import immediate_tx
from .versioning import ensure_version

MEMORY = ":memory:"


def get_connection(db_path: Path | str | None = None, *, seed: bool = False) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - WAL mode (file databases only)
      - foreign_keys ON
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
    Ensures schema (and, when asked, demo seed data) are applied idempotently.

    Pass ":memory:" for a throwaway database; anything else is a file path
    (defaults to config.DB_PATH).
    """
    target = str(db_path) if db_path is not None else str(DB_PATH)
    if target != MEMORY:
        Path(target).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(target)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    if target != MEMORY:
        conn.execute("PRAGMA journal_mode = WAL;")

    # Always apply the schema (idempotent: CREATE IF NOT EXISTS / DROP TRIGGER IF EXISTS)
    schema_module.apply_schema(conn)
    ensure_version(conn)

    if seed:
        seed_default_data(conn)

    conn.commit()
    return conn


__all__ = [
    "get_connection",
    "immediate_tx",
    "MEMORY",
]
