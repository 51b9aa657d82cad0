"""
Tests for period summaries, the aggregate report and customer statements.
"""

from __future__ import annotations

import pytest

from milk_ledger.database import NotFoundError, ValidationError
from milk_ledger.database.repositories import CustomersRepo, ExpensesRepo, ProductsRepo
from milk_ledger.modules.ledger.engine import LedgerEngine
from milk_ledger.modules.ledger.payments import PaymentService
from milk_ledger.modules.pricing.resolver import PricingResolver
from milk_ledger.modules.reporting.period_reports import PeriodReports
from milk_ledger.modules.sales.entry import SaleEntryService


@pytest.fixture
def history(client, ids):
    """
    Asha:  Sep 30 sale 65*2=130; Oct 1 sale 120; Oct 5 paid 50; Oct 31 sale 0.5*65
           Nov 1 paid 100
    Bilal: Oct 10 curd 45*1=45, Oct 10 paid 45
    """
    sales = SaleEntryService(client)
    payments = PaymentService(client)
    sales.record_or_update_sale(ids["asha"], ids["milk"], 2, 65, "2023-09-30")
    sales.record_or_update_sale(ids["asha"], ids["curd"], 2, 60, "2023-10-01")
    payments.record_payment(ids["asha"], 50, "2023-10-05")
    sales.record_or_update_sale(ids["asha"], ids["milk"], 0.5, 65, "2023-10-31")
    payments.record_payment(ids["asha"], 100, "2023-11-01")
    sales.record_or_update_sale(ids["bilal"], ids["curd"], 1, 45, "2023-10-10")
    payments.record_payment(ids["bilal"], 45, "2023-10-10")
    return ids


# ---------------------------------------------------------------------------
# Suite L – Period summary
# ---------------------------------------------------------------------------

def test_l1_scenario_period_summary(client, ids) -> None:
    """L1: sale 120 on 10-01 and payment 50 on 10-05 give closing 70."""
    SaleEntryService(client).record_or_update_sale(ids["asha"], ids["milk"], 2, 60, "2023-10-01")
    PaymentService(client).record_payment(ids["asha"], 50, "2023-10-05")

    s = PeriodReports(client).period_summary(ids["asha"], "2023-10-01", "2023-10-31")

    assert s.opening_balance == 0.0
    assert s.period_sales == pytest.approx(120.0)
    assert s.period_payments == pytest.approx(50.0)
    assert s.period_due == pytest.approx(70.0)
    assert s.closing_balance == pytest.approx(70.0)
    assert s.customer_name == "Asha"


def test_l2_opening_is_due_as_of_day_before(client, history) -> None:
    """L2: a sale on the day before the window lands in the opening balance."""
    s = PeriodReports(client).period_summary(history["asha"], "2023-10-01", "2023-10-31")
    assert s.opening_balance == pytest.approx(130.0)
    assert s.period_sales == pytest.approx(120.0 + 32.5)
    assert s.period_payments == pytest.approx(50.0)
    assert s.closing_balance == pytest.approx(232.5)


@pytest.mark.parametrize("start", ["2023-09-01", "2023-09-30", "2023-10-01", "2023-10-05", "2023-10-31"])
@pytest.mark.parametrize("end", ["2023-10-31", "2023-11-01"])
def test_l3_closing_equals_total_due_at_end(client, history, start, end) -> None:
    """L3: closing balance matches the running balance for any start <= end."""
    reports = PeriodReports(client)
    engine = LedgerEngine(client)
    for cid in (history["asha"], history["bilal"]):
        s = reports.period_summary(cid, start, end)
        assert s.closing_balance == pytest.approx(engine.total_due_as_of(cid, end))


def test_l4_adjoining_windows_add_up(client, history) -> None:
    """L4: sales over [a, b] + [b+1, c] equal sales over [a, c]."""
    reports = PeriodReports(client)
    cid = history["asha"]
    first = reports.period_summary(cid, "2023-09-01", "2023-10-04")
    second = reports.period_summary(cid, "2023-10-05", "2023-11-30")
    whole = reports.period_summary(cid, "2023-09-01", "2023-11-30")
    assert first.period_sales + second.period_sales == pytest.approx(whole.period_sales)
    assert first.period_payments + second.period_payments == pytest.approx(whole.period_payments)
    assert reports.sales_total("2023-09-01", "2023-10-04") + reports.sales_total(
        "2023-10-05", "2023-11-30"
    ) == pytest.approx(reports.sales_total("2023-09-01", "2023-11-30"))


def test_l5_single_day_window(client, history) -> None:
    """L5: start == end is a valid window; both bounds are inclusive."""
    s = PeriodReports(client).period_summary(history["bilal"], "2023-10-10", "2023-10-10")
    assert (s.opening_balance, s.period_sales, s.period_payments, s.closing_balance) == (0.0, 45.0, 45.0, 0.0)


def test_l6_invalid_windows(client, history) -> None:
    """L6: start after end and unknown customers are rejected."""
    reports = PeriodReports(client)
    with pytest.raises(ValidationError):
        reports.period_summary(history["asha"], "2023-10-31", "2023-10-01")
    with pytest.raises(NotFoundError):
        reports.period_summary(999, "2023-10-01", "2023-10-31")


def test_l7_catalogue_price_change_does_not_rewrite_history(client, history) -> None:
    """L7: propagating a new price leaves past period figures alone."""
    reports = PeriodReports(client)
    before = reports.period_summary(history["asha"], "2023-10-01", "2023-10-31")
    PricingResolver(client).propagate_default_price_change(history["milk"], 99.0, apply_to_customers=True)
    ProductsRepo(client.conn).set_default_price(history["curd"], 1.0)
    after = reports.period_summary(history["asha"], "2023-10-01", "2023-10-31")
    assert after.period_sales == pytest.approx(before.period_sales)
    assert after.closing_balance == pytest.approx(before.closing_balance)


# ---------------------------------------------------------------------------
# Suite M – Aggregate report
# ---------------------------------------------------------------------------

def test_m1_aggregate_totals_and_profit(client, history) -> None:
    """M1: business totals include expenses; customers' figures never do."""
    ExpensesRepo(client.conn).create(100, "Cattle feed", "2023-10-15")
    ExpensesRepo(client.conn).create(999, "Other", "2023-11-15")

    report = PeriodReports(client).aggregate_period_summary("2023-10-01", "2023-10-31")

    assert report.total_sales == pytest.approx(120.0 + 32.5 + 45.0)
    assert report.total_payments == pytest.approx(95.0)
    assert report.total_expenses == pytest.approx(100.0)
    assert report.net_profit == pytest.approx(197.5 - 100.0)

    by_id = {s.customer_id: s for s in report.customers}
    asha = by_id[history["asha"]]
    assert (asha.opening_balance, asha.closing_balance) == (pytest.approx(130.0), pytest.approx(232.5))
    assert by_id[history["bilal"]].closing_balance == pytest.approx(0.0)
    assert report.total_closing == pytest.approx(232.5)
    assert report.total_opening == pytest.approx(130.0)


def test_m2_aggregate_rows_match_single_summaries(client, history) -> None:
    """M2: per-customer rows agree with period_summary for the same window."""
    reports = PeriodReports(client)
    report = reports.aggregate_period_summary("2023-10-02", "2023-11-01")
    for row in report.customers:
        single = reports.period_summary(row.customer_id, "2023-10-02", "2023-11-01")
        assert row.opening_balance == pytest.approx(single.opening_balance)
        assert row.period_sales == pytest.approx(single.period_sales)
        assert row.period_payments == pytest.approx(single.period_payments)
        assert row.closing_balance == pytest.approx(single.closing_balance)


def test_m3_inactive_customers_excluded_from_rows_not_totals(client, history) -> None:
    """M3: deactivated customers drop out of the rows but their sales still count."""
    CustomersRepo(client.conn).deactivate(history["bilal"])
    report = PeriodReports(client).aggregate_period_summary("2023-10-01", "2023-10-31")
    assert [s.customer_id for s in report.customers] == [history["asha"]]
    assert report.total_sales == pytest.approx(197.5)


def test_m4_period_dues_filter_uses_epsilon(client, ids) -> None:
    """M4: customers whose period due rounds to zero are left out."""
    sales = SaleEntryService(client)
    payments = PaymentService(client)
    sales.record_or_update_sale(ids["asha"], ids["milk"], 3, 0.1, "2023-10-01")
    payments.record_payment(ids["asha"], 0.3, "2023-10-02")
    sales.record_or_update_sale(ids["bilal"], ids["milk"], 1, 60, "2023-10-03")

    due = PeriodReports(client).customers_with_period_dues("2023-10-01", "2023-10-31")
    assert [(s.customer_id, s.period_due) for s in due] == [(ids["bilal"], 60.0)]


# ---------------------------------------------------------------------------
# Suite N – Statement
# ---------------------------------------------------------------------------

def test_n1_statement_lines_sum_to_summary(client, history) -> None:
    """N1: line items add up exactly to the period figures handed over."""
    st = PeriodReports(client).statement(history["asha"], "2023-10-01", "2023-10-31")
    assert sum(s.total_amount for s in st.sales) == st.summary.period_sales
    assert sum(p.amount_paid for p in st.payments) == st.summary.period_payments
    assert st.summary.opening_balance == pytest.approx(130.0)
    assert st.summary.closing_balance == pytest.approx(232.5)
    assert [s.product_name for s in st.sales] == ["Curd", "Cow Milk"]


def test_n2_statement_entries_are_chronological(client, ids) -> None:
    """N2: entries sorted by date; on one day the sale comes before the payment."""
    sales = SaleEntryService(client)
    payments = PaymentService(client)
    payments.record_payment(ids["bilal"], 20, "2023-10-10", "advance")
    sales.record_or_update_sale(ids["bilal"], ids["curd"], 1, 45, "2023-10-10")
    sales.record_or_update_sale(ids["bilal"], ids["milk"], 1, 60, "2023-10-02")

    st = PeriodReports(client).statement(ids["bilal"], "2023-10-01", "2023-10-31")
    assert [(e.entry_date, e.kind) for e in st.entries] == [
        ("2023-10-02", "sale"),
        ("2023-10-10", "sale"),
        ("2023-10-10", "payment"),
    ]
    assert st.entries[-1].description == "advance"
    assert st.summary.closing_balance == pytest.approx(85.0)


def test_n3_empty_statement(client, ids) -> None:
    """N3: a window without events still yields a summary."""
    st = PeriodReports(client).statement(ids["asha"], "2023-10-01", "2023-10-31")
    assert st.entries == []
    assert (st.summary.period_sales, st.summary.period_payments, st.summary.closing_balance) == (0, 0, 0)
