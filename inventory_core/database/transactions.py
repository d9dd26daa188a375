# database/transactions.py
"""
Unit-of-work helper shared by repositories and ledger services.

`immediate_tx(conn)` opens a BEGIN IMMEDIATE transaction (write lock taken
up front), commits on success and rolls back on any error. When the
connection is already inside a transaction the block runs under a
SAVEPOINT instead, so helpers can nest freely inside one business
operation and the outermost caller owns the commit.
"""
from __future__ import annotations

import itertools
import sqlite3
from contextlib import contextmanager
from typing import Iterator

_savepoints = itertools.count(1)


@contextmanager
def immediate_tx(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    if conn.in_transaction:
        name = f"sp_{next(_savepoints)}"
        conn.execute(f"SAVEPOINT {name}")
        try:
            yield conn
        except BaseException:
            conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
            conn.execute(f"RELEASE SAVEPOINT {name}")
            raise
        conn.execute(f"RELEASE SAVEPOINT {name}")
        return

    cur = conn.cursor()
    try:
        cur.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        conn.commit()
    finally:
        cur.close()


__all__ = ["immediate_tx"]
