# milk_ledger/modules/dashboard/model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ...database import StorageClient
from ...database.repositories import ExpensesRepo, LedgerRepo
from ...utils.helpers import month_start, today_str
from ...utils.validators import require_iso_date
from ..ledger.engine import CustomerDue, LedgerEngine


@dataclass
class DashboardSummary:
    """
    Figures for one reference day:
      - today's sales (all customers)
      - month-to-date sales and expenses (1st of the month .. as_of, inclusive)
      - active customers who owe money as of that day
    """
    as_of: str
    today_sales: float
    month_sales: float
    month_expenses: float
    outstanding: List[CustomerDue] = field(default_factory=list)

    @property
    def total_outstanding(self) -> float:
        return sum(d.total_due for d in self.outstanding)

    @property
    def month_net(self) -> float:
        return self.month_sales - self.month_expenses


def build_dashboard(client: StorageClient, as_of: Optional[str] = None) -> DashboardSummary:
    """Read every figure in one snapshot; `as_of` defaults to today."""
    day = require_iso_date(as_of or today_str(), "As-of date")
    first = month_start(day)
    with client.snapshot():
        ledger = LedgerRepo(client.conn)
        today_sales = ledger.sales_between(day, day)
        month_sales = ledger.sales_between(first, day)
        month_expenses = ExpensesRepo(client.conn).total_for_period(first, day)
        outstanding = LedgerEngine(client).outstanding_dues(day)
    return DashboardSummary(
        as_of=day,
        today_sales=today_sales,
        month_sales=month_sales,
        month_expenses=month_expenses,
        outstanding=outstanding,
    )
