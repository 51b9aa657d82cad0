from __future__ import annotations

from dataclasses import dataclass
from typing import List

from ...constants import DUE_EPSILON
from ...database import StorageClient
from ...database.repositories import CustomersRepo, LedgerRepo
from ...utils.validators import require_iso_date


@dataclass
class CustomerDue:
    customer_id: int
    name: str
    total_due: float
    is_active: bool = True


def is_settled(amount: float) -> bool:
    """|amount| below half a minor unit counts as zero (float noise)."""
    return abs(amount) < DUE_EPSILON


class LedgerEngine:
    """
    Running balances computed from the sale and payment events on demand.

    total_due(c, d) = sum(sales of c dated <= d) - sum(payments of c dated <= d)

    The bound is inclusive for both sums. Nothing is cached, so a balance can
    never drift from the events it is derived from.
    """

    def __init__(self, client: StorageClient) -> None:
        self.client = client

    @property
    def _repo(self) -> LedgerRepo:
        return LedgerRepo(self.client.conn)

    def total_due_as_of(self, customer_id: int, as_of) -> float:
        """0.0 for a customer with no sales or payments; NotFoundError for an unknown id."""
        day = require_iso_date(as_of, "As-of date")
        CustomersRepo(self.client.conn).require(customer_id)
        repo = self._repo
        return repo.sales_up_to(customer_id, day) - repo.payments_up_to(customer_id, day)

    def total_due_for_all_active_customers(
        self, as_of, include_settled: bool = True
    ) -> List[CustomerDue]:
        """
        One entry per active customer, ordered by name. Full reports keep
        settled (zero) balances; pass include_settled=False to drop them.
        """
        return self._dues(as_of, active_only=True, include_settled=include_settled)

    def customer_dues(self, as_of, active_only: bool = False) -> List[CustomerDue]:
        """All customers' balances (inactive ones still owe what they owe)."""
        return self._dues(as_of, active_only=active_only, include_settled=True)

    def outstanding_dues(self, as_of, active_only: bool = True) -> List[CustomerDue]:
        """Customers who owe money: due above the epsilon. Credits are excluded."""
        return [
            d for d in self._dues(as_of, active_only=active_only, include_settled=False)
            if d.total_due > 0
        ]

    def _dues(self, as_of, active_only: bool, include_settled: bool) -> List[CustomerDue]:
        day = require_iso_date(as_of, "As-of date")
        out: List[CustomerDue] = []
        for r in self._repo.balances_as_of(day, active_only=active_only):
            due = r["total_sales"] - r["total_payments"]
            if not include_settled and is_settled(due):
                continue
            out.append(CustomerDue(r["customer_id"], r["name"], due, r["is_active"]))
        return out
