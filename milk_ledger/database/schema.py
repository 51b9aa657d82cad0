import logging
import sqlite3
import sys
from pathlib import Path

from ..constants import SCHEMA_VERSION
from .tx import immediate_tx
from .versioning import get_current_version, set_current_version

_log = logging.getLogger(__name__)

# One statement per entry so the whole schema can run inside a single
# transaction (executescript would commit on its own).
TABLES = (
    """
    /* -------- parties -------- */
    CREATE TABLE IF NOT EXISTS customers (
        customer_id INTEGER PRIMARY KEY AUTOINCREMENT,
        name        TEXT NOT NULL,
        address     TEXT,
        phone       TEXT,
        /* added via migration for old DBs; present by default for new DBs */
        is_active   INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1))
    )
    """,
    """
    /* -------- catalogue -------- */
    CREATE TABLE IF NOT EXISTS products (
        product_id    INTEGER PRIMARY KEY AUTOINCREMENT,
        name          TEXT NOT NULL,
        unit          TEXT NOT NULL,
        default_price REAL NOT NULL CHECK (default_price >= 0)
    )
    """,
    """
    /* -------- per-customer subscriptions -------- */
    CREATE TABLE IF NOT EXISTS customer_products (
        customer_id      INTEGER NOT NULL,
        product_id       INTEGER NOT NULL,
        custom_price     REAL CHECK (custom_price IS NULL OR custom_price >= 0),
        default_quantity REAL NOT NULL DEFAULT 1 CHECK (default_quantity >= 0),
        PRIMARY KEY (customer_id, product_id),
        FOREIGN KEY (customer_id) REFERENCES customers(customer_id) ON DELETE CASCADE,
        FOREIGN KEY (product_id)  REFERENCES products(product_id)   ON DELETE CASCADE
    )
    """,
    """
    /* -------- sale events (one per customer/product/day) -------- */
    CREATE TABLE IF NOT EXISTS daily_sales (
        sale_id        INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_id    INTEGER NOT NULL,
        product_id     INTEGER NOT NULL,
        quantity       REAL NOT NULL CHECK (quantity >= 0),
        price_per_unit REAL NOT NULL CHECK (price_per_unit >= 0),
        total_amount   REAL NOT NULL CHECK (total_amount >= 0),
        sale_date      TEXT NOT NULL,
        FOREIGN KEY (customer_id) REFERENCES customers(customer_id) ON DELETE CASCADE,
        FOREIGN KEY (product_id)  REFERENCES products(product_id)   ON DELETE CASCADE
    )
    """,
    """
    /* -------- payment events -------- */
    CREATE TABLE IF NOT EXISTS payments (
        payment_id   INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_id  INTEGER NOT NULL,
        amount_paid  REAL NOT NULL CHECK (amount_paid > 0),
        payment_date TEXT NOT NULL,
        notes        TEXT,
        FOREIGN KEY (customer_id) REFERENCES customers(customer_id) ON DELETE CASCADE
    )
    """,
    """
    /* -------- business expenses (not tied to a customer) -------- */
    CREATE TABLE IF NOT EXISTS expenses (
        expense_id   INTEGER PRIMARY KEY AUTOINCREMENT,
        amount       REAL NOT NULL CHECK (amount >= 0),
        category     TEXT NOT NULL,
        note         TEXT,
        expense_date TEXT NOT NULL
    )
    """,
)

INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_customers_active ON customers(is_active)",
    "CREATE INDEX IF NOT EXISTS idx_customer_products_product ON customer_products(product_id)",
    # Enforces the sale upsert key at the storage layer.
    "CREATE UNIQUE INDEX IF NOT EXISTS uq_daily_sales_key "
    "ON daily_sales(customer_id, product_id, sale_date)",
    "CREATE INDEX IF NOT EXISTS idx_daily_sales_date ON daily_sales(sale_date)",
    "CREATE INDEX IF NOT EXISTS idx_payments_customer_date ON payments(customer_id, payment_date)",
    "CREATE INDEX IF NOT EXISTS idx_payments_date ON payments(payment_date)",
    "CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses(expense_date)",
)


def _ensure_customer_is_active(conn: sqlite3.Connection) -> None:
    """
    Safe migration for older DBs that created `customers` before `is_active` existed.
    Adds the column if missing. No-op if already present.
    """
    cur = conn.execute("PRAGMA table_info(customers);")
    cols = {row[1] for row in cur.fetchall()}  # row[1] = name
    if "is_active" not in cols:
        conn.execute(
            "ALTER TABLE customers "
            "ADD COLUMN is_active INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1));"
        )


def _collapse_duplicate_sales(conn: sqlite3.Connection) -> int:
    """
    Older DBs had no unique key on daily_sales and may hold several rows for
    one (customer, product, day). Keep the most recent row per key so the
    unique index can be created. Returns the number of rows removed.
    """
    cur = conn.execute(
        """
        DELETE FROM daily_sales
        WHERE sale_id NOT IN (
            SELECT MAX(sale_id)
            FROM daily_sales
            GROUP BY customer_id, product_id, sale_date
        )
        """
    )
    return cur.rowcount if cur.rowcount and cur.rowcount > 0 else 0


def init_schema(conn: sqlite3.Connection) -> None:
    """
    Apply tables, migrations and indexes as one all-or-nothing unit.
    Idempotent: safe to run on every open.
    """
    with immediate_tx(conn):
        before = get_current_version(conn)
        for stmt in TABLES:
            conn.execute(stmt)
        _ensure_customer_is_active(conn)
        removed = _collapse_duplicate_sales(conn)
        if removed:
            _log.warning("Removed %d duplicate daily_sales rows before adding unique key", removed)
        for stmt in INDEXES:
            conn.execute(stmt)
        set_current_version(conn, SCHEMA_VERSION)
    if before != SCHEMA_VERSION:
        _log.info("Schema initialised (version %s -> %s)", before, SCHEMA_VERSION)


if __name__ == "__main__":
    from ..config import DB_PATH

    target = Path(sys.argv[1]) if len(sys.argv) > 1 else DB_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(target)
    try:
        con.execute("PRAGMA foreign_keys = ON;")
        init_schema(con)
    finally:
        con.close()
    print(f"DB applied to {target}")
