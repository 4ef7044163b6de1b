"""
Centralized constants for the backend application.
Avoid magic strings and repeated constants.

Usage:
    from shared.config.constants import Roles, PaymentStatus, SETTLED_STATUSES

    if status in SETTLED_STATUSES:
        ...
"""

from enum import Enum
from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """User role constants (roles are issued by the auth service)."""

    ADMIN: Final[str] = "ADMIN"
    TECHNICIAN: Final[str] = "TECHNICIAN"
    READ_ONLY: Final[str] = "READ_ONLY"

    ALL: Final[list[str]] = [ADMIN, TECHNICIAN, READ_ONLY]


# Role groups for common access patterns
PAYMENT_WRITE_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.TECHNICIAN})
PAYMENT_READ_ROLES: Final[frozenset[str]] = frozenset(
    {Roles.ADMIN, Roles.TECHNICIAN, Roles.READ_ONLY}
)


# =============================================================================
# Payment Status
# =============================================================================


class PaymentStatus(str, Enum):
    """Internal payment status stored on the ledger."""

    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


# Statuses that mean the gateway settled the payment in our favour
SETTLED_STATUSES: Final[frozenset[PaymentStatus]] = frozenset(
    {PaymentStatus.COMPLETED, PaymentStatus.APPROVED}
)


class GatewayStatus:
    """Mercado Pago payment status vocabulary."""

    APPROVED: Final[str] = "approved"
    AUTHORIZED: Final[str] = "authorized"
    IN_PROCESS: Final[str] = "in_process"
    IN_MEDIATION: Final[str] = "in_mediation"
    REJECTED: Final[str] = "rejected"
    CANCELLED: Final[str] = "cancelled"
    REFUNDED: Final[str] = "refunded"
    CHARGED_BACK: Final[str] = "charged_back"


class GatewayNotificationType:
    """Mercado Pago notification topics."""

    PAYMENT: Final[str] = "payment"


# =============================================================================
# Validation Limits
# =============================================================================


class Limits:
    """Validation limits."""

    # String lengths
    MAX_TRANSACTION_ID_LENGTH: Final[int] = 255
    MAX_DESCRIPTION_LENGTH: Final[int] = 256

    # Payment history
    DEFAULT_RECENT_PAYMENTS: Final[int] = 3
    MAX_RECENT_PAYMENTS: Final[int] = 50
