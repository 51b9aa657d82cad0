from __future__ import annotations

import logging
from typing import Mapping, Optional, Tuple

from ...database import StorageClient
from ...database.repositories import (
    CustomerProductsRepo,
    CustomersRepo,
    ProductsRepo,
)

_log = logging.getLogger(__name__)

# product_id -> (custom_price, default_quantity)
AssignmentMap = Mapping[int, Tuple[Optional[float], float]]


class PricingResolver:
    """
    Price proposal for new sale entries and custom-price maintenance.

    Precedence: the customer's custom price for the product, else the
    product's default price. A missing customer or product is a
    NotFoundError; the resolver never falls back to zero.
    """

    def __init__(self, client: StorageClient) -> None:
        self.client = client

    # ---- repos bound to the client's live connection ----------------------

    @property
    def _customers(self) -> CustomersRepo:
        return CustomersRepo(self.client.conn)

    @property
    def _products(self) -> ProductsRepo:
        return ProductsRepo(self.client.conn)

    @property
    def _assignments(self) -> CustomerProductsRepo:
        return CustomerProductsRepo(self.client.conn)

    # ---- resolution -------------------------------------------------------

    def resolve_effective_price(self, customer_id: int, product_id: int) -> float:
        self._customers.require(customer_id)
        product = self._products.require(product_id)
        assignment = self._assignments.get(customer_id, product_id)
        if assignment is not None and assignment.custom_price is not None:
            return assignment.custom_price
        return product.default_price

    def default_quantity(self, customer_id: int, product_id: int) -> float:
        """Quantity proposed for a new entry; 1 when the product is not assigned."""
        assignment = self._assignments.get(customer_id, product_id)
        return assignment.default_quantity if assignment is not None else 1.0

    # ---- assignments ------------------------------------------------------

    def assign_product(
        self,
        customer_id: int,
        product_id: int,
        custom_price: Optional[float],
        default_quantity: float = 1.0,
    ) -> None:
        """Upsert: re-assigning replaces the previous custom price/quantity."""
        self._customers.require(customer_id)
        self._products.require(product_id)
        self._assignments.assign(customer_id, product_id, custom_price, default_quantity)
        _log.info(
            "Assigned product %s to customer %s (price=%s, qty=%s)",
            product_id, customer_id, custom_price, default_quantity,
        )

    def unassign_product(self, customer_id: int, product_id: int) -> bool:
        return self._assignments.remove(customer_id, product_id)

    def save_assignments(
        self,
        customer_id: int,
        assignments: AssignmentMap,
        remove_missing: bool = False,
    ) -> None:
        """
        Save a customer's whole product list as one unit.

        Each entry is upserted; with remove_missing=True, assignments for
        products not in `assignments` are deleted. Re-running after a failure
        is safe because every write is an upsert.
        """
        with self.client.transaction():
            self._customers.require(customer_id)
            for product_id, (custom_price, default_quantity) in assignments.items():
                self._products.require(product_id)
                self._assignments.assign(customer_id, product_id, custom_price, default_quantity)
            if remove_missing:
                keep = set(assignments)
                for current in self._assignments.list_for_customer(customer_id):
                    if current.product_id not in keep:
                        self._assignments.remove(customer_id, current.product_id)
        _log.info("Saved %d product assignments for customer %s", len(assignments), customer_id)

    # ---- catalogue price changes -----------------------------------------

    def propagate_default_price_change(
        self,
        product_id: int,
        new_price: float,
        apply_to_customers: bool,
    ) -> int:
        """
        Set the product's default price; with apply_to_customers=True also
        overwrite custom_price on every assignment of this product, discarding
        negotiated prices. The caller must have confirmed that with the user.

        Runs as one unit. Returns the number of assignments overwritten.
        """
        touched = 0
        with self.client.transaction():
            self._products.set_default_price(product_id, new_price)
            if apply_to_customers:
                touched = self._assignments.set_custom_price_for_product(product_id, new_price)
        _log.info(
            "Default price of product %s set to %s; %d customer prices overwritten",
            product_id, new_price, touched,
        )
        return touched
