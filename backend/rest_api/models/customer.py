"""
Customer Model (owned by the customer-management module).

Only the columns the payment core reads are mapped here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BigIntPK, Base, SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from .payment import Payment
    from .service import ServiceType


class Customer(SoftDeleteMixin, TimestampMixin, Base):
    """
    An ISP customer.
    Inherits: is_active, deleted_at (soft delete), created_at, updated_at.
    """

    __tablename__ = "customer"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    # Chilean tax id, e.g. "12.345.678-9"
    rut: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    commune: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    service_type_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("service_type.id"), nullable=True, index=True
    )

    # Relationships
    service_type: Mapped[Optional["ServiceType"]] = relationship()
    payments: Mapped[list["Payment"]] = relationship(back_populates="customer")

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, rut={self.rut}, active={self.is_active})>"
