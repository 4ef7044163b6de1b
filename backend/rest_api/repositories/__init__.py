"""
Repository Pattern implementation.
Centralizes data access for the payment core.

Usage:
    from rest_api.repositories import get_payment_repository

    repo = get_payment_repository(db)
    payment = repo.find_by_transaction_id("cli-1-srv-2-1700000000000")
"""

from .base import BaseRepository
from .payment import PaymentRepository, get_payment_repository
from .customer import (
    CustomerLookup,
    CustomerRepository,
    ServiceTypeRepository,
    CustomerDirectory,
    get_customer_directory,
)

__all__ = [
    # Base
    "BaseRepository",
    # Payment
    "PaymentRepository",
    "get_payment_repository",
    # Collaborators
    "CustomerLookup",
    "CustomerRepository",
    "ServiceTypeRepository",
    "CustomerDirectory",
    "get_customer_directory",
]
