from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, List, Optional, Tuple

from ...constants import DELIVERY_STRIP_DAYS
from ...database import StorageClient
from ...database.errors import NotFoundError, ValidationError
from ...database.repositories import (
    CustomersRepo,
    DaySheetRow,
    ProductsRepo,
    Sale,
    SalesRepo,
)
from ...utils.helpers import parse_iso
from ...utils.validators import require_iso_date
from ..pricing.resolver import PricingResolver

_log = logging.getLogger(__name__)


@dataclass
class SaleProposal:
    """Values to pre-fill an entry form with; `sale` is set when the day is already recorded."""
    customer_id: int
    product_id: int
    sale_date: str
    quantity: float
    price_per_unit: float
    sale: Optional[Sale] = None


@dataclass
class DayEntry:
    customer_id: int
    product_id: int
    quantity: float
    price_per_unit: float


class SaleEntryService:
    """
    Records or amends exactly one sale line per (customer, product, date).

    Policies:
      - Recording for a key that already has a sale overwrites that row in
        place (same sale_id); it never inserts a second row.
      - Moving a sale to another date is delete-old-key + upsert-new-key in
        one unit. If the target date already holds a sale for the same
        customer/product, that row takes the moved values.
      - Invalid input raises ValidationError before anything is written.
    """

    def __init__(self, client: StorageClient) -> None:
        self.client = client
        self.pricing = PricingResolver(client)

    @property
    def _sales(self) -> SalesRepo:
        return SalesRepo(self.client.conn)

    def _require_parties(self, customer_id: int, product_id: int) -> None:
        CustomersRepo(self.client.conn).require(customer_id)
        ProductsRepo(self.client.conn).require(product_id)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_sale(self, customer_id: int, product_id: int, sale_date) -> Optional[Sale]:
        return self._sales.find(customer_id, product_id, require_iso_date(sale_date, "Sale date"))

    def propose_entry(self, customer_id: int, product_id: int, sale_date) -> SaleProposal:
        day = require_iso_date(sale_date, "Sale date")
        existing = self._sales.find(customer_id, product_id, day)
        if existing is not None:
            return SaleProposal(
                customer_id, product_id, day,
                quantity=existing.quantity,
                price_per_unit=existing.price_per_unit,
                sale=existing,
            )
        return SaleProposal(
            customer_id, product_id, day,
            quantity=self.pricing.default_quantity(customer_id, product_id),
            price_per_unit=self.pricing.resolve_effective_price(customer_id, product_id),
        )

    def day_sheet(self, sale_date) -> List[DaySheetRow]:
        return self._sales.day_sheet(require_iso_date(sale_date, "Sale date"))

    def delivery_strip(self, customer_id: int, as_of) -> List[Tuple[str, bool]]:
        """
        (date, delivered) for the last DELIVERY_STRIP_DAYS days ending at
        `as_of`, oldest first.
        """
        end = parse_iso(require_iso_date(as_of))
        start = end - timedelta(days=DELIVERY_STRIP_DAYS - 1)
        delivered = set(
            self._sales.sale_dates_for_customer(customer_id, start.isoformat(), end.isoformat())
        )
        days = [(start + timedelta(days=i)).isoformat() for i in range(DELIVERY_STRIP_DAYS)]
        return [(d, d in delivered) for d in days]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_or_update_sale(
        self,
        customer_id: int,
        product_id: int,
        quantity: float,
        price_per_unit: float,
        sale_date,
    ) -> Sale:
        day = require_iso_date(sale_date, "Sale date")
        try:
            q, p = SalesRepo.validate_line(quantity, price_per_unit)
        except ValidationError as e:
            _log.warning(
                "Rejected sale for customer %s product %s on %s: %s",
                customer_id, product_id, day, e,
            )
            raise
        with self.client.transaction():
            self._require_parties(customer_id, product_id)
            existing = self._sales.find(customer_id, product_id, day)
            if existing is not None:
                self._sales.update_line(existing.sale_id, q, p)
                sale_id = existing.sale_id
            else:
                sale_id = self._sales.insert(customer_id, product_id, q, p, day)
            sale = self._sales.require(sale_id)
        _log.info(
            "%s sale %s: customer=%s product=%s date=%s qty=%s price=%s total=%s",
            "Updated" if existing is not None else "Recorded",
            sale.sale_id, customer_id, product_id, day, q, p, sale.total_amount,
        )
        return sale

    def update_sale(self, sale_id: int, quantity: float, price_per_unit: float) -> Sale:
        """Amend quantity/price of an existing line; its key stays the same."""
        q, p = SalesRepo.validate_line(quantity, price_per_unit)
        with self.client.transaction():
            self._sales.update_line(sale_id, q, p)
            sale = self._sales.require(sale_id)
        _log.info("Updated sale %s: qty=%s price=%s total=%s", sale_id, q, p, sale.total_amount)
        return sale

    def move_sale(
        self,
        sale_id: int,
        new_date,
        quantity: Optional[float] = None,
        price_per_unit: Optional[float] = None,
    ) -> Sale:
        """Change a sale's date (optionally also its quantity/price) as one unit."""
        day = require_iso_date(new_date, "Sale date")
        with self.client.transaction():
            old = self._sales.require(sale_id)
            q = old.quantity if quantity is None else quantity
            p = old.price_per_unit if price_per_unit is None else price_per_unit
            SalesRepo.validate_line(q, p)
            if old.sale_date == day:
                self._sales.update_line(old.sale_id, q, p)
                moved = self._sales.require(old.sale_id)
            else:
                self._sales.delete(old.sale_id)
                moved = self.record_or_update_sale(old.customer_id, old.product_id, q, p, day)
        _log.info("Moved sale %s from %s to %s (now sale %s)", sale_id, old.sale_date, day, moved.sale_id)
        return moved

    def delete_sale(self, sale_id: int) -> None:
        """Remove one sale line; payments and other sales are untouched."""
        if not self._sales.delete(sale_id):
            raise NotFoundError(f"Sale {sale_id} does not exist.")
        _log.info("Deleted sale %s", sale_id)

    def save_day_entries(self, sale_date, entries: Iterable[DayEntry]) -> List[Sale]:
        """
        Upsert a whole day's delivery sheet as one unit. All entries are
        validated before the first write.
        """
        day = require_iso_date(sale_date, "Sale date")
        entries = list(entries)
        for e in entries:
            SalesRepo.validate_line(e.quantity, e.price_per_unit)
        saved: List[Sale] = []
        with self.client.transaction():
            for e in entries:
                saved.append(
                    self.record_or_update_sale(e.customer_id, e.product_id, e.quantity, e.price_per_unit, day)
                )
        _log.info("Saved %d entries for %s", len(saved), day)
        return saved
