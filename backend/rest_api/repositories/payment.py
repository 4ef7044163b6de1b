"""
Payment Repository - Data access for ledger entries.
"""

from typing import Sequence
from sqlalchemy.orm import Session
from sqlalchemy import select

from rest_api.models import Payment
from shared.config.constants import SETTLED_STATUSES
from .base import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    """Repository for Payment entities."""

    @property
    def model(self) -> type[Payment]:
        return Payment

    def find_by_transaction_id(self, transaction_id: str) -> Payment | None:
        """Look up a payment by its idempotency key."""
        return self._db.scalar(
            select(Payment).where(Payment.transaction_id == transaction_id)
        )

    def latest_settled(self, customer_id: int, service_id: int) -> Payment | None:
        """Most recently created completed/approved payment for the pair."""
        return self._db.scalar(
            select(Payment)
            .where(
                Payment.customer_id == customer_id,
                Payment.service_id == service_id,
                Payment.status.in_([s.value for s in SETTLED_STATUSES]),
            )
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .limit(1)
        )

    def recent(self, customer_id: int, service_id: int, limit: int) -> Sequence[Payment]:
        """Latest payments for the pair ordered by processing time."""
        return self._db.execute(
            select(Payment)
            .where(
                Payment.customer_id == customer_id,
                Payment.service_id == service_id,
            )
            .order_by(Payment.processed_at.desc(), Payment.id.desc())
            .limit(limit)
        ).scalars().all()


def get_payment_repository(db: Session) -> PaymentRepository:
    """Factory function for dependency injection."""
    return PaymentRepository(db)
