from __future__ import annotations
from dataclasses import dataclass
import sqlite3
from typing import Optional

from ...utils.validators import try_parse_float
from ..errors import NotFoundError, ValidationError
from ..tx import immediate_tx


@dataclass
class Sale:
    sale_id: int | None
    customer_id: int
    product_id: int
    quantity: float
    price_per_unit: float
    total_amount: float
    sale_date: str
    product_name: str | None = None

    @classmethod
    def from_row(cls, r: sqlite3.Row) -> "Sale":
        keys = r.keys()
        return cls(
            sale_id=int(r["sale_id"]),
            customer_id=int(r["customer_id"]),
            product_id=int(r["product_id"]),
            quantity=float(r["quantity"]),
            price_per_unit=float(r["price_per_unit"]),
            total_amount=float(r["total_amount"]),
            sale_date=str(r["sale_date"]),
            product_name=r["product_name"] if "product_name" in keys else None,
        )


@dataclass
class DaySheetRow:
    """
    One line of the daily delivery sheet: an active customer and one of their
    assigned products, with the sale already recorded for the day (if any).
    Customers without assignments appear once with product fields set to None.
    """
    customer_id: int
    customer_name: str
    product_id: int | None
    product_name: str | None
    unit: str | None
    default_price: float | None
    custom_price: float | None
    default_quantity: float | None
    sale_id: int | None
    sale_quantity: float | None
    sale_price: float | None

    @property
    def proposed_price(self) -> float | None:
        if self.sale_price is not None:
            return self.sale_price
        if self.custom_price is not None:
            return self.custom_price
        return self.default_price

    @property
    def proposed_quantity(self) -> float | None:
        return self.sale_quantity if self.sale_quantity is not None else self.default_quantity


_SALE_COLUMNS = (
    "ds.sale_id, ds.customer_id, ds.product_id, ds.quantity, "
    "ds.price_per_unit, ds.total_amount, ds.sale_date"
)


def line_total(quantity: float, price_per_unit: float) -> float:
    return float(quantity) * float(price_per_unit)


class SalesRepo:
    """
    daily_sales repository.

    Key behavior:
      - At most one row per (customer_id, product_id, sale_date); the unique
        index uq_daily_sales_key backs this up at the storage layer.
      - total_amount is always written as quantity * price_per_unit.
      - price_per_unit is a snapshot; catalogue price changes never touch it.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @staticmethod
    def validate_line(quantity, price_per_unit) -> tuple[float, float]:
        """Finite and >= 0; zero is a valid 'nothing delivered' entry."""
        ok_q, q = try_parse_float(quantity)
        if not ok_q or q < 0:
            raise ValidationError("Quantity must be a finite number >= 0.")
        ok_p, p = try_parse_float(price_per_unit)
        if not ok_p or p < 0:
            raise ValidationError("Price per unit must be a finite number >= 0.")
        return q, p

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def get(self, sale_id: int) -> Sale | None:
        r = self.conn.execute(
            f"SELECT {_SALE_COLUMNS} FROM daily_sales ds WHERE ds.sale_id=?",
            (sale_id,),
        ).fetchone()
        return Sale.from_row(r) if r else None

    def require(self, sale_id: int) -> Sale:
        s = self.get(sale_id)
        if s is None:
            raise NotFoundError(f"Sale {sale_id} does not exist.")
        return s

    def find(self, customer_id: int, product_id: int, sale_date: str) -> Sale | None:
        r = self.conn.execute(
            f"""
            SELECT {_SALE_COLUMNS}
            FROM daily_sales ds
            WHERE ds.customer_id = ? AND ds.product_id = ? AND ds.sale_date = ?
            """,
            (customer_id, product_id, sale_date),
        ).fetchone()
        return Sale.from_row(r) if r else None

    def list_for_customer(self, customer_id: int, date_from: str, date_to: str) -> list[Sale]:
        """Sale lines in [date_from, date_to] (inclusive), oldest first."""
        rows = self.conn.execute(
            f"""
            SELECT {_SALE_COLUMNS}, p.name AS product_name
            FROM daily_sales ds
            JOIN products p ON p.product_id = ds.product_id
            WHERE ds.customer_id = ?
              AND ds.sale_date >= ? AND ds.sale_date <= ?
            ORDER BY ds.sale_date ASC, ds.sale_id ASC
            """,
            (customer_id, date_from, date_to),
        ).fetchall()
        return [Sale.from_row(r) for r in rows]

    def list_between(self, date_from: str, date_to: str) -> list[Sale]:
        rows = self.conn.execute(
            f"""
            SELECT {_SALE_COLUMNS}
            FROM daily_sales ds
            WHERE ds.sale_date >= ? AND ds.sale_date <= ?
            ORDER BY ds.sale_date ASC, ds.sale_id ASC
            """,
            (date_from, date_to),
        ).fetchall()
        return [Sale.from_row(r) for r in rows]

    def sale_dates_for_customer(self, customer_id: int, date_from: str, date_to: str) -> list[str]:
        """Distinct days in the inclusive window on which the customer had any sale."""
        rows = self.conn.execute(
            """
            SELECT DISTINCT sale_date
            FROM daily_sales
            WHERE customer_id = ? AND sale_date >= ? AND sale_date <= ?
            ORDER BY sale_date ASC
            """,
            (customer_id, date_from, date_to),
        ).fetchall()
        return [str(r["sale_date"]) for r in rows]

    def day_sheet(self, sale_date: str) -> list[DaySheetRow]:
        rows = self.conn.execute(
            """
            SELECT
                c.customer_id,
                c.name              AS customer_name,
                p.product_id,
                p.name              AS product_name,
                p.unit,
                p.default_price,
                cp.custom_price,
                cp.default_quantity,
                ds.sale_id,
                ds.quantity         AS sale_quantity,
                ds.price_per_unit   AS sale_price
            FROM customers c
            LEFT JOIN customer_products cp ON cp.customer_id = c.customer_id
            LEFT JOIN products p           ON p.product_id  = cp.product_id
            LEFT JOIN daily_sales ds       ON ds.customer_id = c.customer_id
                                          AND ds.product_id  = p.product_id
                                          AND ds.sale_date   = ?
            WHERE c.is_active = 1
            ORDER BY c.name COLLATE NOCASE, c.customer_id, p.name COLLATE NOCASE
            """,
            (sale_date,),
        ).fetchall()

        def _f(v) -> Optional[float]:
            return None if v is None else float(v)

        return [
            DaySheetRow(
                customer_id=int(r["customer_id"]),
                customer_name=str(r["customer_name"]),
                product_id=None if r["product_id"] is None else int(r["product_id"]),
                product_name=r["product_name"],
                unit=r["unit"],
                default_price=_f(r["default_price"]),
                custom_price=_f(r["custom_price"]),
                default_quantity=_f(r["default_quantity"]),
                sale_id=None if r["sale_id"] is None else int(r["sale_id"]),
                sale_quantity=_f(r["sale_quantity"]),
                sale_price=_f(r["sale_price"]),
            )
            for r in rows
        ]

    # ---------------------------------------------------------------------
    # WRITES
    # ---------------------------------------------------------------------
    def insert(
        self,
        customer_id: int,
        product_id: int,
        quantity: float,
        price_per_unit: float,
        sale_date: str,
    ) -> int:
        q, p = self.validate_line(quantity, price_per_unit)
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                """
                INSERT INTO daily_sales
                    (customer_id, product_id, quantity, price_per_unit, total_amount, sale_date)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (customer_id, product_id, q, p, line_total(q, p), sale_date),
            )
            return int(cur.lastrowid)

    def update_line(self, sale_id: int, quantity: float, price_per_unit: float) -> None:
        """Overwrite quantity/price in place and recompute the total; id and key unchanged."""
        q, p = self.validate_line(quantity, price_per_unit)
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                """
                UPDATE daily_sales
                SET quantity = ?, price_per_unit = ?, total_amount = ?
                WHERE sale_id = ?
                """,
                (q, p, line_total(q, p), sale_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Sale {sale_id} does not exist.")

    def delete(self, sale_id: int) -> bool:
        with immediate_tx(self.conn):
            cur = self.conn.execute("DELETE FROM daily_sales WHERE sale_id = ?", (sale_id,))
            return cur.rowcount > 0
