from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator

from .errors import StorageError


@contextmanager
def immediate_tx(conn: sqlite3.Connection, mode: str = "IMMEDIATE") -> Iterator[sqlite3.Connection]:
    """
    Start a transaction (write lock taken up front for IMMEDIATE), commit on
    success, rollback on error.

    If the connection is already inside a transaction the block joins it:
    the outermost unit owns commit/rollback, so nested repository calls made
    by a bulk operation are all-or-nothing.

    sqlite3 errors surface as StorageError with the original as __cause__.
    """
    if conn.in_transaction:
        try:
            yield conn
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        return

    try:
        conn.execute(f"BEGIN {mode}")
    except sqlite3.Error as e:
        raise StorageError(str(e)) from e
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise StorageError(str(e)) from e
    except BaseException:
        conn.rollback()
        raise


def read_tx(conn: sqlite3.Connection):
    """Deferred transaction: every SELECT inside sees the same snapshot."""
    return immediate_tx(conn, mode="DEFERRED")
