"""
SQLAlchemy ORM Models Package.

- base: Base class, TimestampMixin, SoftDeleteMixin
- customer: Customer (collaborator entity)
- service: ServiceType (collaborator entity)
- payment: Payment (ledger entry)
"""

from .base import Base, TimestampMixin, SoftDeleteMixin
from .service import ServiceType
from .customer import Customer
from .payment import Payment

__all__ = [
    "Base",
    "TimestampMixin",
    "SoftDeleteMixin",
    "ServiceType",
    "Customer",
    "Payment",
]
