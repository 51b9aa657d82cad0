from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Optional

from ...utils.validators import require_iso_date, try_parse_float
from ..errors import NotFoundError, ValidationError
from ..tx import immediate_tx


@dataclass
class Payment:
    payment_id: int | None
    customer_id: int
    amount_paid: float
    payment_date: str
    notes: str | None

    @classmethod
    def from_row(cls, r: sqlite3.Row) -> "Payment":
        return cls(
            payment_id=int(r["payment_id"]),
            customer_id=int(r["customer_id"]),
            amount_paid=float(r["amount_paid"]),
            payment_date=str(r["payment_date"]),
            notes=r["notes"],
        )


_COLUMNS = "payment_id, customer_id, amount_paid, payment_date, notes"


class PaymentsRepo:
    """
    Repository for customer receipts (rows in payments).

    Rules:
      • amount must be a finite number > 0.
      • Several payments per customer per day are allowed; there is no key
        other than payment_id.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @staticmethod
    def _validate_amount(amount) -> float:
        ok, val = try_parse_float(amount)
        if not ok or val <= 0:
            raise ValidationError("Payment amount must be a positive number.")
        return val

    @staticmethod
    def _normalize_notes(notes: Optional[str]) -> Optional[str]:
        if notes is None:
            return None
        if not isinstance(notes, str):
            raise ValidationError("Notes must be text.")
        notes = notes.strip()
        return notes or None

    # ---- reads ------------------------------------------------------------

    def get(self, payment_id: int) -> Payment | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM payments WHERE payment_id=?",
            (payment_id,),
        ).fetchone()
        return Payment.from_row(r) if r else None

    def list_for_customer(self, customer_id: int, date_from: str, date_to: str) -> list[Payment]:
        """Payments in [date_from, date_to] (inclusive), oldest first."""
        rows = self.conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM payments
            WHERE customer_id = ?
              AND payment_date >= ? AND payment_date <= ?
            ORDER BY payment_date ASC, payment_id ASC
            """,
            (customer_id, date_from, date_to),
        ).fetchall()
        return [Payment.from_row(r) for r in rows]

    def list_between(self, date_from: str, date_to: str) -> list[Payment]:
        rows = self.conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM payments
            WHERE payment_date >= ? AND payment_date <= ?
            ORDER BY payment_date ASC, payment_id ASC
            """,
            (date_from, date_to),
        ).fetchall()
        return [Payment.from_row(r) for r in rows]

    # ---- writes -----------------------------------------------------------

    def record(
        self,
        customer_id: int,
        amount: float,
        payment_date: str,
        notes: Optional[str] = None,
    ) -> int:
        val = self._validate_amount(amount)
        day = require_iso_date(payment_date, "Payment date")
        notes = self._normalize_notes(notes)
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO payments(customer_id, amount_paid, payment_date, notes) VALUES (?,?,?,?)",
                (customer_id, val, day, notes),
            )
            return int(cur.lastrowid)

    def update(
        self,
        payment_id: int,
        amount: float,
        payment_date: str,
        notes: Optional[str] = None,
    ) -> None:
        val = self._validate_amount(amount)
        day = require_iso_date(payment_date, "Payment date")
        notes = self._normalize_notes(notes)
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "UPDATE payments SET amount_paid=?, payment_date=?, notes=? WHERE payment_id=?",
                (val, day, notes, payment_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Payment {payment_id} does not exist.")

    def delete(self, payment_id: int) -> bool:
        with immediate_tx(self.conn):
            cur = self.conn.execute("DELETE FROM payments WHERE payment_id=?", (payment_id,))
            return cur.rowcount > 0
