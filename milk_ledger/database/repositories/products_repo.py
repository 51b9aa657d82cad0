# milk_ledger/database/repositories/products_repo.py
from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from ...utils.validators import is_non_negative_number, non_empty
from ..errors import NotFoundError, ValidationError
from ..tx import immediate_tx


@dataclass
class Product:
    product_id: int | None
    name: str
    unit: str
    default_price: float

    @classmethod
    def from_row(cls, r: sqlite3.Row) -> "Product":
        return cls(
            product_id=int(r["product_id"]),
            name=str(r["name"]),
            unit=str(r["unit"]),
            default_price=float(r["default_price"]),
        )


class ProductsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @staticmethod
    def _validate(name: str, unit: str, default_price: float) -> None:
        if not non_empty(name):
            raise ValidationError("Product name cannot be empty.")
        if not non_empty(unit):
            raise ValidationError("Unit cannot be empty.")
        if not is_non_negative_number(default_price):
            raise ValidationError("Default price must be a non-negative number.")

    # ---------------------------- Products ----------------------------

    def list_products(self) -> list[Product]:
        rows = self.conn.execute(
            "SELECT product_id, name, unit, default_price "
            "FROM products "
            "ORDER BY name COLLATE NOCASE, product_id"
        ).fetchall()
        return [Product.from_row(r) for r in rows]

    def get(self, product_id: int) -> Product | None:
        r = self.conn.execute(
            "SELECT product_id, name, unit, default_price "
            "FROM products WHERE product_id=?",
            (product_id,),
        ).fetchone()
        return Product.from_row(r) if r else None

    def require(self, product_id: int) -> Product:
        p = self.get(product_id)
        if p is None:
            raise NotFoundError(f"Product {product_id} does not exist.")
        return p

    def create(self, name: str, unit: str, default_price: float) -> int:
        self._validate(name, unit, default_price)
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO products(name, unit, default_price) VALUES (?, ?, ?)",
                (name.strip(), unit.strip(), float(default_price)),
            )
            return int(cur.lastrowid)

    def update(self, product_id: int, name: str, unit: str, default_price: float) -> None:
        """
        Catalogue edit. Past sales keep their own price_per_unit snapshot,
        so nothing recorded before is affected.
        """
        self._validate(name, unit, default_price)
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "UPDATE products SET name=?, unit=?, default_price=? WHERE product_id=?",
                (name.strip(), unit.strip(), float(default_price), product_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Product {product_id} does not exist.")

    def set_default_price(self, product_id: int, default_price: float) -> None:
        if not is_non_negative_number(default_price):
            raise ValidationError("Default price must be a non-negative number.")
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "UPDATE products SET default_price=? WHERE product_id=?",
                (float(default_price), product_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Product {product_id} does not exist.")

    def delete(self, product_id: int) -> None:
        """Hard delete; cascades to assignments and sales of this product."""
        with immediate_tx(self.conn):
            self.conn.execute("DELETE FROM products WHERE product_id=?", (product_id,))
