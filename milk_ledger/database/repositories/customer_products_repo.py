from __future__ import annotations

"""
Repository for per-customer product subscriptions (customer_products).

One row per (customer, product); `assign` is an upsert so re-assigning a
product replaces the previous custom price and default quantity instead of
adding a second row. Rows disappear with their customer or product
(ON DELETE CASCADE).

custom_price may be NULL, meaning "use the product's default price".
"""

import sqlite3
from dataclasses import dataclass
from typing import Optional

from ...utils.validators import is_non_negative_number
from ..errors import ValidationError
from ..tx import immediate_tx


@dataclass
class CustomerProductAssignment:
    customer_id: int
    product_id: int
    custom_price: float | None
    default_quantity: float

    @classmethod
    def from_row(cls, r: sqlite3.Row) -> "CustomerProductAssignment":
        return cls(
            customer_id=int(r["customer_id"]),
            product_id=int(r["product_id"]),
            custom_price=None if r["custom_price"] is None else float(r["custom_price"]),
            default_quantity=float(r["default_quantity"]),
        )


@dataclass
class AssignedProduct:
    """Assignment joined with its catalogue row, as shown on a customer's page."""
    product_id: int
    name: str
    unit: str
    default_price: float
    custom_price: float | None
    default_quantity: float

    @property
    def effective_price(self) -> float:
        return self.custom_price if self.custom_price is not None else self.default_price


class CustomerProductsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @staticmethod
    def _validate(custom_price: Optional[float], default_quantity: float) -> None:
        if custom_price is not None and not is_non_negative_number(custom_price):
            raise ValidationError("Custom price must be a non-negative number.")
        if not is_non_negative_number(default_quantity):
            raise ValidationError("Default quantity must be a non-negative number.")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, customer_id: int, product_id: int) -> CustomerProductAssignment | None:
        r = self.conn.execute(
            "SELECT customer_id, product_id, custom_price, default_quantity "
            "FROM customer_products WHERE customer_id=? AND product_id=?",
            (customer_id, product_id),
        ).fetchone()
        return CustomerProductAssignment.from_row(r) if r else None

    def list_for_customer(self, customer_id: int) -> list[AssignedProduct]:
        rows = self.conn.execute(
            """
            SELECT p.product_id, p.name, p.unit, p.default_price,
                   cp.custom_price, cp.default_quantity
            FROM customer_products cp
            JOIN products p ON p.product_id = cp.product_id
            WHERE cp.customer_id = ?
            ORDER BY p.name COLLATE NOCASE, p.product_id
            """,
            (customer_id,),
        ).fetchall()
        return [
            AssignedProduct(
                product_id=int(r["product_id"]),
                name=str(r["name"]),
                unit=str(r["unit"]),
                default_price=float(r["default_price"]),
                custom_price=None if r["custom_price"] is None else float(r["custom_price"]),
                default_quantity=float(r["default_quantity"]),
            )
            for r in rows
        ]

    def list_for_product(self, product_id: int) -> list[CustomerProductAssignment]:
        rows = self.conn.execute(
            "SELECT customer_id, product_id, custom_price, default_quantity "
            "FROM customer_products WHERE product_id=? ORDER BY customer_id",
            (product_id,),
        ).fetchall()
        return [CustomerProductAssignment.from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def assign(
        self,
        customer_id: int,
        product_id: int,
        custom_price: Optional[float],
        default_quantity: float = 1.0,
    ) -> None:
        """Insert or overwrite the (customer, product) assignment."""
        self._validate(custom_price, default_quantity)
        with immediate_tx(self.conn):
            self.conn.execute(
                """
                INSERT INTO customer_products(customer_id, product_id, custom_price, default_quantity)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(customer_id, product_id) DO UPDATE SET
                    custom_price     = excluded.custom_price,
                    default_quantity = excluded.default_quantity
                """,
                (
                    customer_id,
                    product_id,
                    None if custom_price is None else float(custom_price),
                    float(default_quantity),
                ),
            )

    def remove(self, customer_id: int, product_id: int) -> bool:
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "DELETE FROM customer_products WHERE customer_id=? AND product_id=?",
                (customer_id, product_id),
            )
            return cur.rowcount > 0

    def set_custom_price_for_product(self, product_id: int, custom_price: float) -> int:
        """Overwrite custom_price on every assignment of one product. Returns rows touched."""
        if not is_non_negative_number(custom_price):
            raise ValidationError("Custom price must be a non-negative number.")
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "UPDATE customer_products SET custom_price=? WHERE product_id=?",
                (float(custom_price), product_id),
            )
            return cur.rowcount
