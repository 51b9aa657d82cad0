# milk_ledger/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets its own in-memory StorageClient (schema applied on open)
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON (done by the client)
# - Small seed fixtures hand back ids so tests stay readable
# ---------------------------------------------------------------------

from __future__ import annotations

from typing import Dict

import pytest

from milk_ledger.database import MEMORY, StorageClient
from milk_ledger.database.repositories import (
    CustomerProductsRepo,
    CustomersRepo,
    ProductsRepo,
)


@pytest.fixture
def client():
    c = StorageClient(MEMORY)
    c.open()
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def conn(client):
    return client.conn


@pytest.fixture
def ids(client) -> Dict[str, int]:
    """
    Two customers and two products:
      - Asha buys Cow Milk at a custom 65.0 (default 60.0), qty 2
      - Bilal buys Cow Milk at the default price and Curd at a custom 45.0
    """
    customers = CustomersRepo(client.conn)
    products = ProductsRepo(client.conn)
    assignments = CustomerProductsRepo(client.conn)

    asha = customers.create("Asha", "12 Lake Road", "9000000001")
    bilal = customers.create("Bilal", "4 Hill Street", "9000000002")
    milk = products.create("Cow Milk", "Liter", 60.0)
    curd = products.create("Curd", "Kg", 50.0)

    assignments.assign(asha, milk, 65.0, 2.0)
    assignments.assign(bilal, milk, None, 1.0)
    assignments.assign(bilal, curd, 45.0, 0.5)

    return {"asha": asha, "bilal": bilal, "milk": milk, "curd": curd}
