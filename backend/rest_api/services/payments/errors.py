"""
Payment domain errors.

Every failure the payment core can report carries a PaymentErrorKind so the
HTTP layer can translate it with a single lookup instead of a chain of
except clauses. Duplicate transactions are not errors: the ledger returns
the existing row.
"""

from enum import Enum


class PaymentErrorKind(str, Enum):
    """Closed set of failure kinds raised by the payment core."""

    SIGNATURE_INVALID = "signature_invalid"
    CONFIGURATION_MISSING = "configuration_missing"
    CUSTOMER_NOT_FOUND = "customer_not_found"
    SERVICE_NOT_FOUND = "service_not_found"
    PAYMENT_NOT_FOUND = "payment_not_found"
    GATEWAY_TRANSPORT = "gateway_transport"
    GATEWAY_NOT_CONFIGURED = "gateway_not_configured"


class PaymentError(Exception):
    """Base class for payment domain errors."""

    kind: PaymentErrorKind

    def __init__(self, message: str, kind: PaymentErrorKind | None = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class SignatureInvalidError(PaymentError):
    """Inbound webhook signature does not match the computed value."""

    kind = PaymentErrorKind.SIGNATURE_INVALID

    def __init__(self, transaction_id: str | None = None):
        super().__init__("Webhook signature is invalid")
        self.transaction_id = transaction_id


class ConfigurationMissingError(PaymentError):
    """Signature verification is mandatory but no secret is configured."""

    kind = PaymentErrorKind.CONFIGURATION_MISSING

    def __init__(self):
        super().__init__("Webhook secret is not configured")


class CustomerNotFoundError(PaymentError):
    kind = PaymentErrorKind.CUSTOMER_NOT_FOUND

    def __init__(self, customer_id: int):
        super().__init__(f"Customer {customer_id} not found")
        self.customer_id = customer_id


class ServiceNotFoundError(PaymentError):
    kind = PaymentErrorKind.SERVICE_NOT_FOUND

    def __init__(self, service_id: int):
        super().__init__(f"Service {service_id} not found")
        self.service_id = service_id


class PaymentNotFoundError(PaymentError):
    """No payment for the transaction, locally or at the gateway."""

    kind = PaymentErrorKind.PAYMENT_NOT_FOUND

    def __init__(self, transaction_id: str):
        super().__init__(f"Payment {transaction_id} not found")
        self.transaction_id = transaction_id


class GatewayTransportError(PaymentError):
    """Network, HTTP or circuit-breaker failure talking to the gateway."""

    kind = PaymentErrorKind.GATEWAY_TRANSPORT

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


class GatewayNotConfiguredError(PaymentError):
    """No gateway access token has been provisioned."""

    kind = PaymentErrorKind.GATEWAY_NOT_CONFIGURED

    def __init__(self):
        super().__init__("Payment gateway is not configured")
