"""
Payment Ledger - idempotent, atomic recording of payments.

Exactly-once effect despite at-least-once webhook delivery rests on three
things working together:
1. An existence check by transaction_id inside the unit of work
2. A UNIQUE index on payment.transaction_id
3. A single commit (or full rollback) per call

When two deliveries of the same transaction race, the loser either sees
the winner's row in step 1 or hits the unique index; in the latter case
the ledger rolls back, re-reads and returns the winner's row.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rest_api.models import Payment
from rest_api.repositories import CustomerDirectory, CustomerLookup, PaymentRepository
from shared.infrastructure.db import safe_commit
from shared.config.constants import Limits
from shared.config.logging import payments_logger as logger
from shared.utils.payment_schemas import WebhookPayload

from .errors import CustomerNotFoundError, ServiceNotFoundError


class PaymentLedger:
    """
    Records and reads payments.

    Owns the transaction boundary of record_payment: the session is
    committed or rolled back before the method returns.
    """

    def __init__(self, db: Session, directory: CustomerLookup | None = None):
        self._db = db
        self._payments = PaymentRepository(db)
        self._directory = directory or CustomerDirectory(db)

    def find(self, transaction_id: str) -> Payment | None:
        return self._payments.find_by_transaction_id(transaction_id)

    def record_payment(self, payload: WebhookPayload) -> Payment:
        """
        Persist a verified payload, or return the row already stored for its
        transaction id.

        Raises:
            CustomerNotFoundError: Customer missing or soft-deleted.
            ServiceNotFoundError: Service missing.
            SQLAlchemyError: Any other database failure (after rollback).
        """
        transaction_id = payload.transaction_id

        try:
            existing = self._payments.find_by_transaction_id(transaction_id)
            if existing is not None:
                logger.info(
                    "Payment already recorded, skipping",
                    transaction_id=transaction_id,
                    payment_id=existing.id,
                )
                return existing

            if self._directory.find_customer(payload.customer_id) is None:
                raise CustomerNotFoundError(payload.customer_id)
            if self._directory.find_service(payload.service_id) is None:
                raise ServiceNotFoundError(payload.service_id)

            payment = Payment(
                transaction_id=transaction_id,
                amount=payload.amount,
                status=payload.status.value,
                customer_id=payload.customer_id,
                service_id=payload.service_id,
                processed_at=datetime.now(timezone.utc),
            )
            self._payments.add(payment)
            safe_commit(self._db)

        except IntegrityError:
            self._db.rollback()
            winner = self._payments.find_by_transaction_id(transaction_id)
            if winner is None:
                # Not a duplicate: some other constraint failed
                logger.error(
                    "Payment insert violated a constraint",
                    transaction_id=transaction_id,
                    exc_info=True,
                )
                raise
            logger.info(
                "Concurrent delivery already recorded payment",
                transaction_id=transaction_id,
                payment_id=winner.id,
            )
            return winner

        except Exception:
            self._db.rollback()
            raise

        self._db.refresh(payment)
        logger.info(
            "Payment recorded",
            transaction_id=transaction_id,
            payment_id=payment.id,
            status=payment.status,
            amount=str(payment.amount),
            customer_id=payment.customer_id,
            service_id=payment.service_id,
        )
        return payment

    # =========================================================================
    # History
    # =========================================================================

    def latest_settled(self, customer_id: int, service_id: int) -> Payment | None:
        """Most recent completed or approved payment for the pair."""
        return self._payments.latest_settled(customer_id, service_id)

    def recent(
        self,
        customer_id: int,
        service_id: int,
        limit: int = Limits.DEFAULT_RECENT_PAYMENTS,
    ) -> Sequence[Payment]:
        """Latest payments for the pair by processing time. limit is clamped to 1..50."""
        limit = min(max(1, limit), Limits.MAX_RECENT_PAYMENTS)
        return self._payments.recent(customer_id, service_id, limit)
