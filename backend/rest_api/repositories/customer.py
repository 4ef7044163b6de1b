"""
Customer Directory - lookup of the collaborator entities a payment references.

Customers and service types are owned by other modules; the payment core
only needs to know whether they exist.
"""

from typing import Protocol
from sqlalchemy.orm import Session

from rest_api.models import Customer, ServiceType
from .base import BaseRepository


class CustomerLookup(Protocol):
    """Contract the payment ledger consumes to validate references."""

    def find_customer(self, customer_id: int) -> Customer | None: ...

    def find_service(self, service_id: int) -> ServiceType | None: ...


class CustomerRepository(BaseRepository[Customer]):
    """Repository for Customer entities (soft-deleted rows are hidden)."""

    @property
    def model(self) -> type[Customer]:
        return Customer


class ServiceTypeRepository(BaseRepository[ServiceType]):
    """Repository for ServiceType entities."""

    @property
    def model(self) -> type[ServiceType]:
        return ServiceType


class CustomerDirectory:
    """Database-backed CustomerLookup."""

    def __init__(self, db: Session):
        self._customers = CustomerRepository(db)
        self._services = ServiceTypeRepository(db)

    def find_customer(self, customer_id: int) -> Customer | None:
        return self._customers.find_by_id(customer_id)

    def find_service(self, service_id: int) -> ServiceType | None:
        return self._services.find_by_id(service_id)


def get_customer_directory(db: Session) -> CustomerDirectory:
    """Factory function for dependency injection."""
    return CustomerDirectory(db)
