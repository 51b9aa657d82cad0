# milk_ledger/database/repositories/ledger_repo.py
from __future__ import annotations

import sqlite3
from typing import Any, Dict, List, Optional, Sequence


def _to_float(x: Optional[Any]) -> float:
    return float(x or 0.0)


class LedgerRepo:
    """
    Read-only sums over the sale and payment event tables.

    Nothing here is cached or stored: every figure is recomputed from
    daily_sales and payments on each call.

    Date handling:
    - Dates are ISO 'YYYY-MM-DD' text and are compared directly so SQLite can
      use the date indexes.
    - Every bound is INCLUSIVE, for sales and payments alike
      ("as of" = `<= ?`, periods = `>= ? AND <= ?`).
    - Empty sums come back as 0.0 (COALESCE), never None.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    # ----------------------------- helpers -------------------------------

    def _scalar(self, sql: str, params: Sequence[Any] = ()) -> float:
        row = self.conn.execute(sql, tuple(params)).fetchone()
        return _to_float(row[0] if row is not None else None)

    # --------------------------- point in time ---------------------------

    def sales_up_to(self, customer_id: int, as_of: str) -> float:
        return self._scalar(
            """
            SELECT COALESCE(SUM(total_amount), 0.0)
            FROM daily_sales
            WHERE customer_id = ? AND sale_date <= ?
            """,
            (customer_id, as_of),
        )

    def payments_up_to(self, customer_id: int, as_of: str) -> float:
        return self._scalar(
            """
            SELECT COALESCE(SUM(amount_paid), 0.0)
            FROM payments
            WHERE customer_id = ? AND payment_date <= ?
            """,
            (customer_id, as_of),
        )

    def balances_as_of(self, as_of: str, active_only: bool = True) -> List[Dict[str, Any]]:
        """
        Per-customer sales and payments up to `as_of` (inclusive), one query.
        Returns [{customer_id, name, is_active, total_sales, total_payments}] by name.
        """
        sql = """
            SELECT
                c.customer_id,
                c.name,
                c.is_active,
                (SELECT COALESCE(SUM(ds.total_amount), 0.0)
                   FROM daily_sales ds
                  WHERE ds.customer_id = c.customer_id AND ds.sale_date <= ?) AS total_sales,
                (SELECT COALESCE(SUM(p.amount_paid), 0.0)
                   FROM payments p
                  WHERE p.customer_id = c.customer_id AND p.payment_date <= ?) AS total_payments
            FROM customers c
        """
        if active_only:
            sql += " WHERE c.is_active = 1"
        sql += " ORDER BY c.name COLLATE NOCASE, c.customer_id"
        rows = self.conn.execute(sql, (as_of, as_of)).fetchall()
        return [
            {
                "customer_id": int(r["customer_id"]),
                "name": r["name"],
                "is_active": bool(r["is_active"]),
                "total_sales": _to_float(r["total_sales"]),
                "total_payments": _to_float(r["total_payments"]),
            }
            for r in rows
        ]

    # ------------------------------ windows ------------------------------

    def sales_between(self, date_from: str, date_to: str, customer_id: Optional[int] = None) -> float:
        """Sales in [date_from, date_to]; all customers when customer_id is None."""
        sql = """
            SELECT COALESCE(SUM(total_amount), 0.0)
            FROM daily_sales
            WHERE sale_date >= ? AND sale_date <= ?
        """
        params: list[Any] = [date_from, date_to]
        if customer_id is not None:
            sql += " AND customer_id = ?"
            params.append(customer_id)
        return self._scalar(sql, params)

    def payments_between(self, date_from: str, date_to: str, customer_id: Optional[int] = None) -> float:
        sql = """
            SELECT COALESCE(SUM(amount_paid), 0.0)
            FROM payments
            WHERE payment_date >= ? AND payment_date <= ?
        """
        params: list[Any] = [date_from, date_to]
        if customer_id is not None:
            sql += " AND customer_id = ?"
            params.append(customer_id)
        return self._scalar(sql, params)

    def period_totals_by_customer(
        self, date_from: str, date_to: str, active_only: bool = True
    ) -> List[Dict[str, Any]]:
        """
        [{customer_id, name, opening_sales, opening_payments, period_sales,
          period_payments}] for every (active) customer. The opening_* sums
        cover everything strictly before date_from.
        """
        sql = """
            SELECT
                c.customer_id,
                c.name,
                (SELECT COALESCE(SUM(ds.total_amount), 0.0)
                   FROM daily_sales ds
                  WHERE ds.customer_id = c.customer_id AND ds.sale_date < ?) AS opening_sales,
                (SELECT COALESCE(SUM(p.amount_paid), 0.0)
                   FROM payments p
                  WHERE p.customer_id = c.customer_id AND p.payment_date < ?) AS opening_payments,
                (SELECT COALESCE(SUM(ds.total_amount), 0.0)
                   FROM daily_sales ds
                  WHERE ds.customer_id = c.customer_id
                    AND ds.sale_date >= ? AND ds.sale_date <= ?) AS period_sales,
                (SELECT COALESCE(SUM(p.amount_paid), 0.0)
                   FROM payments p
                  WHERE p.customer_id = c.customer_id
                    AND p.payment_date >= ? AND p.payment_date <= ?) AS period_payments
            FROM customers c
        """
        if active_only:
            sql += " WHERE c.is_active = 1"
        sql += " ORDER BY c.name COLLATE NOCASE, c.customer_id"
        rows = self.conn.execute(
            sql, (date_from, date_from, date_from, date_to, date_from, date_to)
        ).fetchall()
        return [
            {
                "customer_id": int(r["customer_id"]),
                "name": r["name"],
                "opening_sales": _to_float(r["opening_sales"]),
                "opening_payments": _to_float(r["opening_payments"]),
                "period_sales": _to_float(r["period_sales"]),
                "period_payments": _to_float(r["period_payments"]),
            }
            for r in rows
        ]
