"""
FastAPI dependency providers for the payment core.

Components receive their configuration through constructors; these
providers are the single place where settings are read. Tests replace
them through app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from shared.config.settings import settings
from shared.infrastructure.db import get_db
from rest_api.repositories import CustomerDirectory
from rest_api.services.payments import (
    MercadoPagoClient,
    PaymentLedger,
    PaymentReconciler,
    SignatureVerifier,
)


def get_signature_verifier() -> SignatureVerifier:
    return SignatureVerifier(
        secret=settings.payment_webhook_secret,
        require_signature=settings.payment_webhook_require_signature,
    )


@lru_cache
def get_gateway_client() -> MercadoPagoClient:
    """Process-wide client so the circuit breaker state is shared by all requests."""
    return MercadoPagoClient(
        access_token=settings.mercadopago_access_token,
        api_url=settings.mercadopago_api_url,
        timeout=settings.mercadopago_timeout_seconds,
        notification_url=settings.notification_url,
        base_url=settings.base_url,
        currency_id=settings.mercadopago_currency_id,
    )


def get_customer_directory(db: Session = Depends(get_db)) -> CustomerDirectory:
    return CustomerDirectory(db)


def get_payment_ledger(
    db: Session = Depends(get_db),
    directory: CustomerDirectory = Depends(get_customer_directory),
) -> PaymentLedger:
    return PaymentLedger(db, directory)


def get_reconciler(
    ledger: PaymentLedger = Depends(get_payment_ledger),
    verifier: SignatureVerifier = Depends(get_signature_verifier),
    gateway: MercadoPagoClient = Depends(get_gateway_client),
) -> PaymentReconciler:
    return PaymentReconciler(
        ledger=ledger,
        verifier=verifier,
        gateway=gateway,
        gateway_webhook_secret=settings.mercadopago_webhook_secret,
    )
