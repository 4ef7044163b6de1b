"""
Services module for business logic.

- payments/: signature verification, Mercado Pago integration, ledger, reconciler

Usage:
    from rest_api.services.payments import PaymentLedger, PaymentReconciler

    ledger = PaymentLedger(db)
    payment = ledger.record_payment(payload)
"""

from .payments import (
    PaymentError,
    PaymentErrorKind,
    PaymentLedger,
    PaymentReconciler,
    SignatureVerifier,
    MercadoPagoClient,
)

__all__ = [
    "PaymentError",
    "PaymentErrorKind",
    "PaymentLedger",
    "PaymentReconciler",
    "SignatureVerifier",
    "MercadoPagoClient",
]
