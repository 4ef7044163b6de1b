"""
Service Type Model (owned by the service-catalog module).
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BigIntPK, Base, TimestampMixin

if TYPE_CHECKING:
    from .payment import Payment


class ServiceType(TimestampMixin, Base):
    """An internet plan or service customers pay for."""

    __tablename__ = "service_type"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    monthly_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    payments: Mapped[list["Payment"]] = relationship(back_populates="service")

    def __repr__(self) -> str:
        return f"<ServiceType(id={self.id}, name={self.name!r})>"
