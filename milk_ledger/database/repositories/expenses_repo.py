from __future__ import annotations

"""
Repository for business expenses.

Expenses are business-wide: they feed profit/loss reporting and never take
part in any customer's dues. Categories are free text; the list offered to
an entry form is the built-in defaults plus every category already used.

Schema reference (see `database/schema.py`):

CREATE TABLE expenses (
    expense_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    amount       REAL NOT NULL CHECK (amount >= 0),
    category     TEXT NOT NULL,
    note         TEXT,
    expense_date TEXT NOT NULL
);
"""

import sqlite3
from dataclasses import dataclass
from typing import Dict, List, Optional

from ...constants import DEFAULT_EXPENSE_CATEGORIES
from ...utils.validators import is_non_negative_number, non_empty, require_iso_date
from ..errors import NotFoundError, ValidationError
from ..tx import immediate_tx


@dataclass
class Expense:
    expense_id: int | None
    amount: float
    category: str
    note: str | None
    expense_date: str

    @classmethod
    def from_row(cls, r: sqlite3.Row) -> "Expense":
        return cls(
            expense_id=int(r["expense_id"]),
            amount=float(r["amount"]),
            category=str(r["category"]),
            note=r["note"],
            expense_date=str(r["expense_date"]),
        )


_COLUMNS = "expense_id, amount, category, note, expense_date"


class ExpensesRepo:
    """
    CRUD for expenses plus the period aggregates used by reports.
    Writes commit immediately unless the caller already holds a unit of work.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @staticmethod
    def _validate(amount, category, expense_date, note) -> tuple:
        """Returns (amount, category, note, expense_date) normalized for storage."""
        if not is_non_negative_number(amount):
            raise ValidationError("Amount must be non-negative.")
        if not isinstance(category, str) or not non_empty(category):
            raise ValidationError("Category cannot be empty.")
        if note is not None and not isinstance(note, str):
            raise ValidationError("Note must be text.")
        day = require_iso_date(expense_date, "Expense date")
        return float(amount), category.strip(), (note or "").strip() or None, day

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, expense_id: int) -> Expense | None:
        row = self.conn.execute(
            f"SELECT {_COLUMNS} FROM expenses WHERE expense_id = ?",
            (expense_id,),
        ).fetchone()
        return Expense.from_row(row) if row else None

    def list_for_period(self, date_from: str, date_to: str) -> List[Expense]:
        """Expenses in [date_from, date_to], newest first."""
        rows = self.conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM expenses
            WHERE expense_date >= ? AND expense_date <= ?
            ORDER BY expense_date DESC, expense_id DESC
            """,
            (date_from, date_to),
        ).fetchall()
        return [Expense.from_row(r) for r in rows]

    def total_for_period(self, date_from: str, date_to: str) -> float:
        row = self.conn.execute(
            """
            SELECT COALESCE(SUM(amount), 0.0) AS total
            FROM expenses
            WHERE expense_date >= ? AND expense_date <= ?
            """,
            (date_from, date_to),
        ).fetchone()
        return float(row["total"])

    def totals_by_category(self, date_from: str, date_to: str) -> List[Dict]:
        """[{category, total_amount}] for the period, ordered by category name."""
        rows = self.conn.execute(
            """
            SELECT category, COALESCE(SUM(amount), 0.0) AS total_amount
            FROM expenses
            WHERE expense_date >= ? AND expense_date <= ?
            GROUP BY category
            ORDER BY category COLLATE NOCASE
            """,
            (date_from, date_to),
        ).fetchall()
        return [{"category": r["category"], "total_amount": float(r["total_amount"])} for r in rows]

    def categories(self) -> List[str]:
        """
        Default categories first, then every other category already in use,
        sorted. Names are unique ignoring case; the first spelling seen wins.
        """
        used = [
            r["category"]
            for r in self.conn.execute(
                "SELECT DISTINCT category FROM expenses ORDER BY category COLLATE NOCASE"
            )
        ]
        out = list(DEFAULT_EXPENSE_CATEGORIES)
        seen = {c.casefold() for c in out}
        for c in used:
            if c.casefold() not in seen:
                seen.add(c.casefold())
                out.append(c)
        return out

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        amount: float,
        category: str,
        expense_date: str,
        note: Optional[str] = None,
    ) -> int:
        row = self._validate(amount, category, expense_date, note)
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO expenses(amount, category, note, expense_date) VALUES (?,?,?,?)",
                row,
            )
            return int(cur.lastrowid)

    def update(
        self,
        expense_id: int,
        amount: float,
        category: str,
        expense_date: str,
        note: Optional[str] = None,
    ) -> None:
        amount, category, note, day = self._validate(amount, category, expense_date, note)
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                """
                UPDATE expenses
                SET amount = ?, category = ?, note = ?, expense_date = ?
                WHERE expense_id = ?
                """,
                (amount, category, note, day, expense_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Expense {expense_id} does not exist.")

    def delete(self, expense_id: int) -> bool:
        with immediate_tx(self.conn):
            cur = self.conn.execute("DELETE FROM expenses WHERE expense_id = ?", (expense_id,))
            return cur.rowcount > 0
