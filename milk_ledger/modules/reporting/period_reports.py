from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ...database import StorageClient
from ...database.repositories import (
    CustomersRepo,
    ExpensesRepo,
    LedgerRepo,
    Payment,
    PaymentsRepo,
    Sale,
    SalesRepo,
)
from ...utils.helpers import day_before
from ...utils.validators import require_date_range
from ..ledger.engine import LedgerEngine, is_settled


@dataclass
class PeriodSummary:
    customer_id: int
    start_date: str
    end_date: str
    opening_balance: float
    period_sales: float
    period_payments: float
    period_due: float = field(init=False)
    closing_balance: float = field(init=False)
    customer_name: Optional[str] = None

    def __post_init__(self) -> None:
        self.period_due = self.period_sales - self.period_payments
        self.closing_balance = self.opening_balance + self.period_due


@dataclass
class AggregatePeriodSummary:
    start_date: str
    end_date: str
    customers: List[PeriodSummary]
    total_sales: float
    total_payments: float
    total_expenses: float
    net_profit: float = field(init=False)

    def __post_init__(self) -> None:
        self.net_profit = self.total_sales - self.total_expenses

    @property
    def total_opening(self) -> float:
        return sum(s.opening_balance for s in self.customers)

    @property
    def total_closing(self) -> float:
        return sum(s.closing_balance for s in self.customers)


@dataclass
class StatementEntry:
    entry_date: str
    kind: str          # 'sale' | 'payment'
    description: str
    amount: float      # positive; payments reduce the balance
    ref_id: int


@dataclass
class Statement:
    """Everything a bill/statement renderer needs for one customer and window."""
    summary: PeriodSummary
    sales: List[Sale]
    payments: List[Payment]
    entries: List[StatementEntry]


class PeriodReports:
    """
    Calendar-window views over the ledger.

    opening = due as of the day before the window; closing = opening +
    period sales - period payments, which equals the due as of the window's
    last day because every bound is inclusive.

    Expenses only appear in the business-wide aggregate; they never touch a
    customer's figures.
    """

    def __init__(self, client: StorageClient) -> None:
        self.client = client
        self.ledger = LedgerEngine(client)

    @property
    def _repo(self) -> LedgerRepo:
        return LedgerRepo(self.client.conn)

    # ------------------------------------------------------------------
    # Per customer
    # ------------------------------------------------------------------

    def period_summary(self, customer_id: int, start_date, end_date) -> PeriodSummary:
        start, end = require_date_range(start_date, end_date)
        customer = CustomersRepo(self.client.conn).require(customer_id)
        repo = self._repo
        return PeriodSummary(
            customer_id=customer_id,
            start_date=start,
            end_date=end,
            opening_balance=self.ledger.total_due_as_of(customer_id, day_before(start)),
            period_sales=repo.sales_between(start, end, customer_id),
            period_payments=repo.payments_between(start, end, customer_id),
            customer_name=customer.name,
        )

    def statement(self, customer_id: int, start_date, end_date) -> Statement:
        """
        Summary plus the line items behind it, read in one snapshot. The
        summary's period figures are the sums of the returned lines, so the
        two always agree on the document.
        """
        start, end = require_date_range(start_date, end_date)
        with self.client.snapshot():
            customer = CustomersRepo(self.client.conn).require(customer_id)
            opening = self.ledger.total_due_as_of(customer_id, day_before(start))
            sales = SalesRepo(self.client.conn).list_for_customer(customer_id, start, end)
            payments = PaymentsRepo(self.client.conn).list_for_customer(customer_id, start, end)

        summary = PeriodSummary(
            customer_id=customer_id,
            start_date=start,
            end_date=end,
            opening_balance=opening,
            period_sales=sum(s.total_amount for s in sales),
            period_payments=sum(p.amount_paid for p in payments),
            customer_name=customer.name,
        )
        entries = [
            StatementEntry(s.sale_date, "sale", f"{s.product_name} ({s.quantity:g})", s.total_amount, s.sale_id)
            for s in sales
        ] + [
            StatementEntry(p.payment_date, "payment", p.notes or "Payment Received", p.amount_paid, p.payment_id)
            for p in payments
        ]
        # chronological; on the same day sales come before payments
        entries.sort(key=lambda e: (e.entry_date, 0 if e.kind == "sale" else 1, e.ref_id))
        return Statement(summary, sales, payments, entries)

    # ------------------------------------------------------------------
    # Across customers
    # ------------------------------------------------------------------

    def aggregate_period_summary(self, start_date, end_date) -> AggregatePeriodSummary:
        """
        period_summary for every active customer plus business-wide totals.
        total_sales/total_payments cover every customer (inactive ones
        included) so they match the day book; net_profit = sales - expenses.
        """
        start, end = require_date_range(start_date, end_date)
        with self.client.snapshot():
            repo = self._repo
            rows = repo.period_totals_by_customer(start, end, active_only=True)
            total_sales = repo.sales_between(start, end)
            total_payments = repo.payments_between(start, end)
            total_expenses = ExpensesRepo(self.client.conn).total_for_period(start, end)

        customers = [
            PeriodSummary(
                customer_id=r["customer_id"],
                start_date=start,
                end_date=end,
                opening_balance=r["opening_sales"] - r["opening_payments"],
                period_sales=r["period_sales"],
                period_payments=r["period_payments"],
                customer_name=r["name"],
            )
            for r in rows
        ]
        return AggregatePeriodSummary(
            start_date=start,
            end_date=end,
            customers=customers,
            total_sales=total_sales,
            total_payments=total_payments,
            total_expenses=total_expenses,
        )

    def customers_with_period_dues(self, start_date, end_date) -> List[PeriodSummary]:
        """Active customers whose period due is not (within epsilon) zero."""
        report = self.aggregate_period_summary(start_date, end_date)
        return [s for s in report.customers if not is_settled(s.period_due)]

    def sales_total(self, start_date, end_date) -> float:
        start, end = require_date_range(start_date, end_date)
        return self._repo.sales_between(start, end)
