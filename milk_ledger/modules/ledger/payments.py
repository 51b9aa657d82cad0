from __future__ import annotations

import logging
from typing import List, Optional

from ...database import StorageClient
from ...database.errors import NotFoundError, ValidationError
from ...database.repositories import CustomersRepo, Payment, PaymentsRepo
from ...utils.validators import require_date_range, require_iso_date

_log = logging.getLogger(__name__)


class PaymentService:
    """Customer receipts. Amounts must be > 0; a customer may pay several times a day."""

    def __init__(self, client: StorageClient) -> None:
        self.client = client

    @property
    def _repo(self) -> PaymentsRepo:
        return PaymentsRepo(self.client.conn)

    def record_payment(
        self,
        customer_id: int,
        amount: float,
        payment_date,
        notes: Optional[str] = None,
    ) -> Payment:
        day = require_iso_date(payment_date, "Payment date")
        try:
            with self.client.transaction():
                CustomersRepo(self.client.conn).require(customer_id)
                payment_id = self._repo.record(customer_id, amount, day, notes)
                payment = self._repo.get(payment_id)
        except ValidationError as e:
            _log.warning("Rejected payment for customer %s: %s", customer_id, e)
            raise
        _log.info("Recorded payment %s: customer=%s amount=%s date=%s", payment_id, customer_id, amount, day)
        return payment

    def update_payment(
        self,
        payment_id: int,
        amount: float,
        payment_date,
        notes: Optional[str] = None,
    ) -> Payment:
        day = require_iso_date(payment_date, "Payment date")
        with self.client.transaction():
            self._repo.update(payment_id, amount, day, notes)
            payment = self._repo.get(payment_id)
        _log.info("Updated payment %s: amount=%s date=%s", payment_id, amount, day)
        return payment

    def delete_payment(self, payment_id: int) -> None:
        if not self._repo.delete(payment_id):
            raise NotFoundError(f"Payment {payment_id} does not exist.")
        _log.info("Deleted payment %s", payment_id)

    def payments_for_customer(self, customer_id: int, start_date, end_date) -> List[Payment]:
        start, end = require_date_range(start_date, end_date)
        return self._repo.list_for_customer(customer_id, start, end)
