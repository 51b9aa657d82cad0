from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from ..errors import NotFoundError, ValidationError
from ..tx import immediate_tx


@dataclass
class Customer:
    customer_id: int | None
    name: str
    address: str | None
    phone: str | None
    is_active: bool = True

    @classmethod
    def from_row(cls, r: sqlite3.Row) -> "Customer":
        return cls(
            customer_id=int(r["customer_id"]),
            name=str(r["name"]),
            address=r["address"],
            phone=r["phone"],
            is_active=bool(r["is_active"]),
        )


_COLUMNS = "customer_id, name, address, phone, is_active"


class CustomersRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: str | None) -> str | None:
        if s is None:
            return None
        s = s.strip()
        return s or None

    @staticmethod
    def _ensure_non_empty(value: str | None, field_label: str) -> None:
        if value is None or value.strip() == "":
            raise ValidationError(f"{field_label} cannot be empty.")

    # ---- Queries ----------------------------------------------------------

    def list_customers(self, active_only: bool = True) -> list[Customer]:
        """
        Returns customers ordered by name. By default, only active rows
        (is_active=1). Set active_only=False to include inactive as well.
        """
        if active_only:
            rows = self.conn.execute(
                f"SELECT {_COLUMNS} FROM customers "
                "WHERE is_active = 1 "
                "ORDER BY name COLLATE NOCASE, customer_id"
            ).fetchall()
        else:
            rows = self.conn.execute(
                f"SELECT {_COLUMNS} FROM customers "
                "ORDER BY name COLLATE NOCASE, customer_id"
            ).fetchall()
        return [Customer.from_row(r) for r in rows]

    def search(self, term: str, active_only: bool = True) -> list[Customer]:
        """
        LIKE search over name, phone and address.
        """
        pattern = f"%{term.strip()}%"
        sql = (
            f"SELECT {_COLUMNS} FROM customers "
            "WHERE (name LIKE ? OR phone LIKE ? OR address LIKE ?)"
        )
        if active_only:
            sql += " AND is_active = 1"
        sql += " ORDER BY name COLLATE NOCASE, customer_id"
        rows = self.conn.execute(sql, (pattern, pattern, pattern)).fetchall()
        return [Customer.from_row(r) for r in rows]

    def get(self, customer_id: int) -> Customer | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM customers WHERE customer_id=?",
            (customer_id,),
        ).fetchone()
        return Customer.from_row(r) if r else None

    def require(self, customer_id: int) -> Customer:
        """Like get(), but a missing customer is an error."""
        c = self.get(customer_id)
        if c is None:
            raise NotFoundError(f"Customer {customer_id} does not exist.")
        return c

    # ---- Mutations --------------------------------------------------------

    def create(self, name: str, address: str | None = None, phone: str | None = None) -> int:
        self._ensure_non_empty(name, "Name")
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO customers(name, address, phone) VALUES (?,?,?)",
                (self._normalize_text(name), self._normalize_text(address), self._normalize_text(phone)),
            )
            return int(cur.lastrowid)

    def update(self, customer_id: int, name: str, address: str | None, phone: str | None) -> None:
        self._ensure_non_empty(name, "Name")
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "UPDATE customers SET name=?, address=?, phone=? WHERE customer_id=?",
                (self._normalize_text(name), self._normalize_text(address), self._normalize_text(phone), customer_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Customer {customer_id} does not exist.")

    def set_active(self, customer_id: int, active: bool) -> None:
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "UPDATE customers SET is_active=? WHERE customer_id=?",
                (1 if active else 0, customer_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Customer {customer_id} does not exist.")

    def deactivate(self, customer_id: int) -> None:
        """
        Soft delete: hides the customer from active lists. Sales and payments
        stay attached and keep counting towards dues.
        """
        self.set_active(customer_id, False)

    def reactivate(self, customer_id: int) -> None:
        self.set_active(customer_id, True)

    def delete(self, customer_id: int) -> None:
        """Hard delete; cascades to assignments, sales and payments."""
        with immediate_tx(self.conn):
            self.conn.execute("DELETE FROM customers WHERE customer_id=?", (customer_id,))
