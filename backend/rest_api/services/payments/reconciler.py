"""
Payment Reconciler - ties webhooks and gateway polling to the ledger.

Per transaction the reconciler drives one of these paths:
    UNSEEN -> VERIFIED -> RECORDED
    UNSEEN -> REJECTED_SIGNATURE     (no record)
    UNSEEN -> MISSING_REFS           (no record, logged)

Entry points:
- process_webhook: verify the signature, then record through the ledger.
- process_gateway_notification: Mercado Pago notification -> fetch payment ->
  map status -> build a locally signed payload -> process_webhook.
- check_status: local lookup first, then the gateway; a settled payment the
  gateway knows but we don't is backfilled (self-healing for lost webhooks).
- lookup_gateway_reference: public gateway lookup with best-effort backfill.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Literal

from rest_api.models import Payment
from shared.config.constants import SETTLED_STATUSES, PaymentStatus
from shared.config.logging import payments_logger as logger
from shared.utils.payment_schemas import (
    GatewayNotification,
    GatewayStatusResponse,
    ReferenceMetadata,
    UnsupportedNotification,
    WebhookPayload,
)

from .errors import (
    GatewayNotConfiguredError,
    GatewayTransportError,
    PaymentNotFoundError,
)
from .gateway_client import GatewayPayment, MercadoPagoClient
from .ledger import PaymentLedger
from .reference import decode_customer_id, decode_service_id
from .signature import SignatureVerifier, verify_mercadopago_signature
from .status_mapping import map_gateway_status

_CENTS = Decimal("0.01")


class NotificationOutcome(str, Enum):
    """What happened to a gateway notification."""

    RECORDED = "recorded"
    IGNORED = "ignored"
    REJECTED_SIGNATURE = "rejected_signature"
    MISSING_REFS = "missing_refs"


@dataclass(frozen=True)
class PaymentStatusView:
    """Status of a transaction as seen by check_status."""

    transaction_id: str
    status: PaymentStatus
    amount: Decimal
    processed_at: datetime | None
    customer_id: int
    service_id: int
    source: Literal["local", "gateway"]

    @classmethod
    def from_payment(
        cls, payment: Payment, source: Literal["local", "gateway"] = "local"
    ) -> "PaymentStatusView":
        return cls(
            transaction_id=payment.transaction_id,
            status=PaymentStatus(payment.status),
            amount=payment.amount,
            processed_at=payment.processed_at,
            customer_id=payment.customer_id,
            service_id=payment.service_id,
            source=source,
        )


def _as_positive_int(value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    return number if number > 0 else 0


def resolve_references(
    gateway_payment: GatewayPayment, reference: str | None = None
) -> tuple[int, int]:
    """
    Customer and service ids for a gateway payment.

    Structured metadata is preferred; the encoded external reference is the
    fallback. 0 means the id could not be resolved.
    """
    metadata = gateway_payment.metadata or {}
    customer_id = _as_positive_int(metadata.get("customer_id", metadata.get("customerId")))
    service_id = _as_positive_int(metadata.get("service_id", metadata.get("serviceId")))

    ref = gateway_payment.external_reference or reference
    if not customer_id:
        customer_id = decode_customer_id(ref)
    if not service_id:
        service_id = decode_service_id(ref)
    return customer_id, service_id


class PaymentReconciler:
    """Orchestrates signature checks, gateway lookups and ledger writes."""

    def __init__(
        self,
        ledger: PaymentLedger,
        verifier: SignatureVerifier,
        gateway: MercadoPagoClient,
        gateway_webhook_secret: str = "",
    ):
        self._ledger = ledger
        self._verifier = verifier
        self._gateway = gateway
        self._gateway_webhook_secret = gateway_webhook_secret

    # =========================================================================
    # Webhooks
    # =========================================================================

    def process_webhook(self, payload: WebhookPayload) -> Payment:
        """
        Verify and record a webhook payload.

        Raises:
            SignatureInvalidError: Signature mismatch; nothing is written.
            ConfigurationMissingError: Signatures required but no secret configured.
            CustomerNotFoundError / ServiceNotFoundError: Unknown references.
        """
        self._verifier.ensure_valid(payload.signable(), payload.signature)
        return self._ledger.record_payment(payload)

    async def process_gateway_notification(
        self,
        notification: GatewayNotification,
        x_signature: str | None = None,
        x_request_id: str | None = None,
    ) -> NotificationOutcome:
        """
        Handle a Mercado Pago notification.

        Gateway and ledger errors propagate; the HTTP layer logs them and still
        acknowledges the notification.
        """
        if isinstance(notification, UnsupportedNotification):
            logger.info(
                "Gateway notification ignored",
                notification_type=notification.type,
                reason=notification.reason,
            )
            return NotificationOutcome.IGNORED

        data_id = notification.data.id
        if self._gateway_webhook_secret and not verify_mercadopago_signature(
            x_signature, x_request_id, data_id, self._gateway_webhook_secret
        ):
            logger.warning("Gateway notification rejected: bad x-signature", data_id=data_id)
            return NotificationOutcome.REJECTED_SIGNATURE

        gateway_payment = await self._gateway.fetch_payment_by_id(data_id)
        payload = self._payload_from_gateway(gateway_payment, gateway_payment.external_reference)
        if payload is None:
            return NotificationOutcome.MISSING_REFS

        # Re-sign locally so the payload takes the same path as a direct webhook
        signed = payload.model_copy(update={"signature": self._verifier.sign(payload.signable())})
        self.process_webhook(signed)
        return NotificationOutcome.RECORDED

    # =========================================================================
    # Polling
    # =========================================================================

    async def check_status(self, transaction_id: str) -> PaymentStatusView:
        """
        Local-first status lookup with gateway fallback.

        A settled gateway payment unknown locally is backfilled into the
        ledger and the stored row is returned. Non-settled gateway payments
        are reported without being stored.

        Raises:
            PaymentNotFoundError: Unknown locally and at the gateway, or the
                gateway could not be reached (the cause is logged first).
        """
        payment = self._ledger.find(transaction_id)
        if payment is not None:
            return PaymentStatusView.from_payment(payment, source="local")

        try:
            results = await self._gateway.search_by_external_reference(transaction_id)
        except (GatewayTransportError, GatewayNotConfiguredError) as exc:
            logger.warning(
                "Gateway lookup failed during status check",
                transaction_id=transaction_id,
                error=str(exc),
                error_kind=exc.kind.value,
            )
            raise PaymentNotFoundError(transaction_id) from exc

        if not results:
            raise PaymentNotFoundError(transaction_id)

        gateway_payment = results[0]
        status = map_gateway_status(gateway_payment.status)

        if status in SETTLED_STATUSES:
            payload = self._payload_from_gateway(gateway_payment, transaction_id, status)
            if payload is None:
                raise PaymentNotFoundError(transaction_id)
            # Trusted path: the data comes from our own authenticated call to the gateway
            self._ledger.record_payment(payload)
            stored = self._ledger.find(transaction_id)
            if stored is None:
                raise PaymentNotFoundError(transaction_id)
            logger.info(
                "Payment backfilled from gateway",
                transaction_id=transaction_id,
                gateway_payment_id=gateway_payment.id,
                status=status.value,
            )
            return PaymentStatusView.from_payment(stored, source="gateway")

        customer_id, service_id = resolve_references(gateway_payment, transaction_id)
        return PaymentStatusView(
            transaction_id=transaction_id,
            status=status,
            amount=gateway_payment.transaction_amount or Decimal("0"),
            processed_at=None,
            customer_id=customer_id,
            service_id=service_id,
            source="gateway",
        )

    async def lookup_gateway_reference(self, reference: str) -> GatewayStatusResponse:
        """
        Query the gateway directly for an external reference.

        Raises:
            GatewayTransportError / GatewayNotConfiguredError: Gateway unavailable.
        """
        results = await self._gateway.search_by_external_reference(reference)
        if not results:
            return GatewayStatusResponse(
                found=False,
                status="not_found",
                message=f"No payment found for reference: {reference}",
            )

        gateway_payment = results[0]
        status = map_gateway_status(gateway_payment.status)
        customer_id, service_id = resolve_references(gateway_payment, reference)

        if status in SETTLED_STATUSES:
            self._backfill_best_effort(gateway_payment, reference, status)

        return GatewayStatusResponse(
            found=True,
            status=status.value,
            payment_id=gateway_payment.id,
            amount=gateway_payment.transaction_amount,
            date=gateway_payment.date_created,
            metadata=ReferenceMetadata(customer_id=customer_id, service_id=service_id),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _backfill_best_effort(
        self,
        gateway_payment: GatewayPayment,
        reference: str,
        status: PaymentStatus,
    ) -> None:
        """
        Record a settled payment seen on the public lookup.
        Failures are logged and never fail the lookup itself.
        """
        payload = self._payload_from_gateway(gateway_payment, reference, status)
        if payload is None:
            return
        try:
            self._ledger.record_payment(payload)
        except Exception as exc:
            logger.warning(
                "Best-effort backfill failed",
                transaction_id=reference,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    def _payload_from_gateway(
        self,
        gateway_payment: GatewayPayment,
        transaction_id: str | None,
        status: PaymentStatus | None = None,
    ) -> WebhookPayload | None:
        """Unsigned payload for a gateway payment, or None when references are incomplete."""
        customer_id, service_id = resolve_references(gateway_payment, transaction_id)
        amount = gateway_payment.transaction_amount

        if not transaction_id or not customer_id or not service_id or not amount or amount <= 0:
            logger.warning(
                "Gateway payment is missing references, not recorded",
                gateway_payment_id=gateway_payment.id,
                transaction_id=transaction_id,
                customer_id=customer_id,
                service_id=service_id,
                amount=str(amount) if amount is not None else None,
            )
            return None

        return WebhookPayload(
            transaction_id=transaction_id,
            status=status or map_gateway_status(gateway_payment.status),
            amount=amount.quantize(_CENTS),
            customer_id=customer_id,
            service_id=service_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
