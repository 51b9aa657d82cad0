# database/__init__.py
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from ..config import DB_PATH
from . import schema as schema_module
from .errors import DomainError, NotFoundError, StorageError, ValidationError
from .tx import immediate_tx, read_tx

_log = logging.getLogger(__name__)

MEMORY = ":memory:"


class StorageClient:
    """
    Explicitly constructed handle to the ledger database.

    Lifecycle: `open()` connects and applies the schema (one all-or-nothing
    unit), `close()` releases the connection. Usable as a context manager.
    Components receive the client instead of reaching for a module-level
    connection.

    Connections get:
      - foreign_keys ON (cascades from customers/products)
      - WAL mode for file databases
      - row_factory = sqlite3.Row (rows behave like dicts and tuples)
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        if db_path is None:
            db_path = DB_PATH
        self.db_path = db_path if str(db_path) == MEMORY else Path(db_path)
        self._conn: sqlite3.Connection | None = None

    # ---- lifecycle ---------------------------------------------------------

    def open(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn
        try:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path))
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON;")
            if isinstance(self.db_path, Path):
                conn.execute("PRAGMA journal_mode = WAL;")
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Could not open database at {self.db_path}: {e}") from e
        try:
            schema_module.init_schema(conn)
        except BaseException:
            conn.close()
            raise
        self._conn = conn
        _log.debug("Opened ledger database %s", self.db_path)
        return conn

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        _log.debug("Closed ledger database %s", self.db_path)

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Storage client is not open; call open() first.")
        return self._conn

    def transaction(self):
        """Unit of work; repository writes inside it commit or roll back together."""
        return immediate_tx(self.conn)

    def snapshot(self):
        """Read-only unit giving a consistent view across several queries."""
        return read_tx(self.conn)

    def __enter__(self) -> "StorageClient":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = [
    "StorageClient",
    "MEMORY",
    "DomainError",
    "ValidationError",
    "NotFoundError",
    "StorageError",
]
