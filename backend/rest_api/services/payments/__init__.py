"""
Payment Services - webhook verification, gateway integration and the ledger.

Provides:
- HMAC signature verification for inbound webhooks
- Mercado Pago status mapping and external reference codec
- Mercado Pago API client protected by a circuit breaker
- Idempotent payment ledger
- Reconciler orchestrating webhooks, polling and backfill
"""

from .errors import (
    PaymentError,
    PaymentErrorKind,
    SignatureInvalidError,
    ConfigurationMissingError,
    CustomerNotFoundError,
    ServiceNotFoundError,
    PaymentNotFoundError,
    GatewayTransportError,
    GatewayNotConfiguredError,
)
from .signature import (
    SignatureVerifier,
    canonicalize_payload,
    compute_signature,
    verify_signature,
    verify_mercadopago_signature,
)
from .status_mapping import map_gateway_status
from .reference import encode_reference, decode_customer_id, decode_service_id
from .circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerError,
    CircuitState,
    create_gateway_breaker,
    get_all_breaker_stats,
)
from .gateway_client import GatewayPayment, PreferenceResult, MercadoPagoClient
from .ledger import PaymentLedger
from .reconciler import (
    NotificationOutcome,
    PaymentStatusView,
    PaymentReconciler,
    resolve_references,
)

__all__ = [
    # Errors
    "PaymentError",
    "PaymentErrorKind",
    "SignatureInvalidError",
    "ConfigurationMissingError",
    "CustomerNotFoundError",
    "ServiceNotFoundError",
    "PaymentNotFoundError",
    "GatewayTransportError",
    "GatewayNotConfiguredError",
    # Signatures
    "SignatureVerifier",
    "canonicalize_payload",
    "compute_signature",
    "verify_signature",
    "verify_mercadopago_signature",
    # Mapping and references
    "map_gateway_status",
    "encode_reference",
    "decode_customer_id",
    "decode_service_id",
    # Circuit breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitState",
    "create_gateway_breaker",
    "get_all_breaker_stats",
    # Gateway
    "GatewayPayment",
    "PreferenceResult",
    "MercadoPagoClient",
    # Ledger and reconciler
    "PaymentLedger",
    "NotificationOutcome",
    "PaymentStatusView",
    "PaymentReconciler",
    "resolve_references",
]
