"""
Tests for customer and product repositories and the pricing resolver.
"""

from __future__ import annotations

import pytest

from milk_ledger.database import NotFoundError, ValidationError
from milk_ledger.database.repositories import (
    CustomerProductsRepo,
    CustomersRepo,
    ProductsRepo,
    SalesRepo,
)
from milk_ledger.modules.pricing.resolver import PricingResolver
from milk_ledger.modules.sales.entry import SaleEntryService


# ---------------------------------------------------------------------------
# Suite C – Customers
# ---------------------------------------------------------------------------

def test_c1_create_get_update(conn) -> None:
    """C1: create trims text fields; update overwrites them."""
    repo = CustomersRepo(conn)
    cid = repo.create("  Asha  ", " 12 Lake Road ", "   ")
    c = repo.require(cid)
    assert (c.name, c.address, c.phone, c.is_active) == ("Asha", "12 Lake Road", None, True)

    repo.update(cid, "Asha K", None, "9000000001")
    c = repo.require(cid)
    assert (c.name, c.address, c.phone) == ("Asha K", None, "9000000001")


def test_c2_validation_and_not_found(conn) -> None:
    """C2: empty names are rejected; unknown ids are NotFoundError."""
    repo = CustomersRepo(conn)
    with pytest.raises(ValidationError):
        repo.create("   ")
    assert repo.get(42) is None
    with pytest.raises(NotFoundError):
        repo.require(42)
    with pytest.raises(NotFoundError):
        repo.update(42, "X", None, None)
    with pytest.raises(NotFoundError):
        repo.deactivate(42)


def test_c3_deactivate_hides_from_active_lists(conn) -> None:
    """C3: soft delete hides the row from active lists; reactivate restores it."""
    repo = CustomersRepo(conn)
    a = repo.create("Asha")
    b = repo.create("bilal")
    repo.deactivate(a)

    assert [c.customer_id for c in repo.list_customers()] == [b]
    assert [c.customer_id for c in repo.list_customers(active_only=False)] == [a, b]
    assert repo.require(a).is_active is False

    repo.reactivate(a)
    assert [c.name for c in repo.list_customers()] == ["Asha", "bilal"]


def test_c4_search_matches_name_phone_address(conn) -> None:
    """C4: search looks at name, phone and address."""
    repo = CustomersRepo(conn)
    a = repo.create("Asha", "12 Lake Road", "9000000001")
    b = repo.create("Bilal", "4 Hill Street", "9000000002")
    assert [c.customer_id for c in repo.search("lake")] == [a]
    assert [c.customer_id for c in repo.search("0002")] == [b]
    assert [c.customer_id for c in repo.search("a")] == [a, b]
    repo.deactivate(b)
    assert [c.customer_id for c in repo.search("Bilal")] == []
    assert [c.customer_id for c in repo.search("Bilal", active_only=False)] == [b]


# ---------------------------------------------------------------------------
# Suite D – Products & assignments
# ---------------------------------------------------------------------------

def test_d1_product_crud_and_validation(conn) -> None:
    """D1: products need a name, a unit and a non-negative price."""
    repo = ProductsRepo(conn)
    pid = repo.create("Cow Milk", "Liter", 60)
    assert repo.require(pid).default_price == 60.0

    repo.update(pid, "Buffalo Milk", "Liter", 70)
    assert repo.require(pid).name == "Buffalo Milk"

    for bad in (("", "Liter", 1), ("X", " ", 1), ("X", "Liter", -1), ("X", "Liter", "abc")):
        with pytest.raises(ValidationError):
            repo.create(*bad)
    with pytest.raises(NotFoundError):
        repo.set_default_price(999, 10)


def test_d2_assign_is_an_upsert(client, ids) -> None:
    """D2: re-assigning replaces the custom price instead of adding a row."""
    pricing = PricingResolver(client)
    pricing.assign_product(ids["asha"], ids["milk"], 65.0, 2.0)
    pricing.assign_product(ids["asha"], ids["milk"], 70.0, 3.0)

    rows = CustomerProductsRepo(client.conn).list_for_product(ids["milk"])
    asha_rows = [r for r in rows if r.customer_id == ids["asha"]]
    assert len(asha_rows) == 1
    assert asha_rows[0].custom_price == 70.0
    assert asha_rows[0].default_quantity == 3.0


def test_d3_list_for_customer_exposes_effective_price(client, ids) -> None:
    """D3: the joined list resolves custom price over default price."""
    listed = CustomerProductsRepo(client.conn).list_for_customer(ids["bilal"])
    by_name = {p.name: p for p in listed}
    assert by_name["Cow Milk"].effective_price == 60.0
    assert by_name["Curd"].effective_price == 45.0
    assert by_name["Curd"].default_quantity == 0.5


def test_d4_assignment_validation(client, ids) -> None:
    """D4: negative custom prices/quantities are rejected; unknown ids are NotFound."""
    pricing = PricingResolver(client)
    with pytest.raises(ValidationError):
        pricing.assign_product(ids["asha"], ids["curd"], -1.0)
    with pytest.raises(ValidationError):
        pricing.assign_product(ids["asha"], ids["curd"], 10.0, -2)
    with pytest.raises(NotFoundError):
        pricing.assign_product(999, ids["curd"], 10.0)
    with pytest.raises(NotFoundError):
        pricing.assign_product(ids["asha"], 999, 10.0)


# ---------------------------------------------------------------------------
# Suite E – Pricing resolver
# ---------------------------------------------------------------------------

def test_e1_custom_price_wins_over_default(client, ids) -> None:
    """E1: custom price when assigned, otherwise the catalogue default."""
    pricing = PricingResolver(client)
    assert pricing.resolve_effective_price(ids["asha"], ids["milk"]) == 65.0
    assert pricing.resolve_effective_price(ids["bilal"], ids["milk"]) == 60.0
    # not assigned at all
    assert pricing.resolve_effective_price(ids["asha"], ids["curd"]) == 50.0
    assert pricing.default_quantity(ids["asha"], ids["curd"]) == 1.0
    assert pricing.default_quantity(ids["asha"], ids["milk"]) == 2.0


def test_e2_missing_parties_are_not_found(client, ids) -> None:
    """E2: the resolver never falls back to zero for unknown ids."""
    pricing = PricingResolver(client)
    with pytest.raises(NotFoundError):
        pricing.resolve_effective_price(999, ids["milk"])
    with pytest.raises(NotFoundError):
        pricing.resolve_effective_price(ids["asha"], 999)


def test_e3_scenario_reassign_replaces_custom_price(client, ids) -> None:
    """E3: assigning 65 over an existing assignment replaces, not duplicates."""
    pricing = PricingResolver(client)
    pricing.assign_product(ids["bilal"], ids["curd"], 65.0, 0.5)
    rows = [
        r for r in CustomerProductsRepo(client.conn).list_for_product(ids["curd"])
        if r.customer_id == ids["bilal"]
    ]
    assert len(rows) == 1
    assert rows[0].custom_price == 65.0
    assert pricing.resolve_effective_price(ids["bilal"], ids["curd"]) == 65.0


def test_e4_propagate_with_apply_overwrites_only_that_product(client, ids) -> None:
    """E4: apply_to_customers=True sets every assignment of P to the new price."""
    pricing = PricingResolver(client)
    touched = pricing.propagate_default_price_change(ids["milk"], 75.0, apply_to_customers=True)

    assert touched == 2
    assert ProductsRepo(client.conn).require(ids["milk"]).default_price == 75.0
    for row in CustomerProductsRepo(client.conn).list_for_product(ids["milk"]):
        assert row.custom_price == 75.0
    # other products untouched
    curd = CustomerProductsRepo(client.conn).get(ids["bilal"], ids["curd"])
    assert curd.custom_price == 45.0


def test_e5_propagate_without_apply_keeps_custom_prices(client, ids) -> None:
    """E5: apply_to_customers=False only changes the catalogue price."""
    pricing = PricingResolver(client)
    assert pricing.propagate_default_price_change(ids["milk"], 75.0, apply_to_customers=False) == 0
    assert pricing.resolve_effective_price(ids["asha"], ids["milk"]) == 65.0
    assert pricing.resolve_effective_price(ids["bilal"], ids["milk"]) == 75.0


def test_e6_propagate_unknown_product_changes_nothing(client, ids) -> None:
    """E6: a failing propagation leaves every assignment as it was."""
    pricing = PricingResolver(client)
    with pytest.raises(NotFoundError):
        pricing.propagate_default_price_change(999, 75.0, apply_to_customers=True)
    with pytest.raises(ValidationError):
        pricing.propagate_default_price_change(ids["milk"], -5.0, apply_to_customers=True)
    assert pricing.resolve_effective_price(ids["asha"], ids["milk"]) == 65.0
    assert ProductsRepo(client.conn).require(ids["milk"]).default_price == 60.0


def test_e7_price_change_does_not_touch_recorded_sales(client, ids) -> None:
    """E7: sales keep their own price snapshot."""
    sale = SaleEntryService(client).record_or_update_sale(ids["asha"], ids["milk"], 2, 65.0, "2023-10-01")
    PricingResolver(client).propagate_default_price_change(ids["milk"], 90.0, apply_to_customers=True)
    stored = SalesRepo(client.conn).require(sale.sale_id)
    assert stored.price_per_unit == 65.0
    assert stored.total_amount == pytest.approx(130.0)


def test_e8_save_assignments_is_one_unit(client, ids) -> None:
    """E8: bulk save upserts all rows, optionally removes the rest, and rolls back as a whole."""
    pricing = PricingResolver(client)
    repo = CustomerProductsRepo(client.conn)

    pricing.save_assignments(ids["bilal"], {ids["milk"]: (58.0, 2.0)}, remove_missing=True)
    listed = repo.list_for_customer(ids["bilal"])
    assert [(p.product_id, p.custom_price, p.default_quantity) for p in listed] == [(ids["milk"], 58.0, 2.0)]

    with pytest.raises(NotFoundError):
        pricing.save_assignments(
            ids["bilal"],
            {ids["milk"]: (10.0, 1.0), ids["curd"]: (20.0, 1.0), 999: (1.0, 1.0)},
        )
    listed = repo.list_for_customer(ids["bilal"])
    assert [(p.product_id, p.custom_price) for p in listed] == [(ids["milk"], 58.0)]


def test_e9_unassign_falls_back_to_default(client, ids) -> None:
    """E9: removing an assignment makes the catalogue price apply again."""
    pricing = PricingResolver(client)
    assert pricing.unassign_product(ids["asha"], ids["milk"]) is True
    assert pricing.unassign_product(ids["asha"], ids["milk"]) is False
    assert pricing.resolve_effective_price(ids["asha"], ids["milk"]) == 60.0
