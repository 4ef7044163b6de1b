"""
Payment Model: the durable ledger entry.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import Limits, PaymentStatus

from .base import BigIntPK, Base, TimestampMixin

if TYPE_CHECKING:
    from .customer import Customer
    from .service import ServiceType


class Payment(TimestampMixin, Base):
    """
    One recorded payment for a (customer, service) pair.

    transaction_id is the idempotency key: at most one row per value,
    enforced by a unique index and by the ledger's existence check.
    Rows are written once and never updated by the payment core.
    """

    __tablename__ = "payment"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    transaction_id: Mapped[str] = mapped_column(
        String(Limits.MAX_TRANSACTION_ID_LENGTH), nullable=False, unique=True, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        Text, default=PaymentStatus.PENDING.value, nullable=False, index=True
    )  # pending, approved, completed, rejected, failed
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    customer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customer.id"), nullable=False, index=True
    )
    service_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("service_type.id"), nullable=False, index=True
    )

    # Relationships
    customer: Mapped["Customer"] = relationship(back_populates="payments")
    service: Mapped["ServiceType"] = relationship(back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_payment_amount_positive"),
        # History queries filter by the pair and sort by time
        Index("ix_payment_customer_service", "customer_id", "service_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, tx={self.transaction_id}, amount={self.amount}, "
            f"status={self.status})>"
        )
