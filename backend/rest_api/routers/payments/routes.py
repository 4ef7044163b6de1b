"""
Payments router.

Inbound webhooks (generic and Mercado Pago), status reconciliation,
checkout preference creation and payment history.
"""

from typing import Any

from fastapi import APIRouter, Depends, Header, Path, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError

from rest_api.core.dependencies import (
    get_customer_directory,
    get_gateway_client,
    get_payment_ledger,
    get_reconciler,
)
from rest_api.repositories import CustomerDirectory
from rest_api.services.payments import (
    MercadoPagoClient,
    PaymentError,
    PaymentErrorKind,
    PaymentLedger,
    PaymentReconciler,
)
from shared.config.constants import PAYMENT_READ_ROLES, PAYMENT_WRITE_ROLES, Limits
from shared.config.logging import payments_logger as logger
from shared.config.settings import settings
from shared.security.auth import current_user_context, require_roles
from shared.security.rate_limit import limiter
from shared.utils.exceptions import (
    AppException,
    DatabaseError,
    ExternalServiceError,
    NotFoundError,
    UnauthorizedError,
)
from shared.utils.payment_schemas import (
    CreatePaymentRequest,
    GatewayStatusResponse,
    PaymentOut,
    PaymentStatusResponse,
    PreferenceResponse,
    WebhookPayload,
    parse_gateway_notification,
)
from shared.utils.schemas import ReceivedResponse


router = APIRouter(prefix="/api/payments", tags=["payments"])

GATEWAY_NAME = "Mercado Pago"


def payment_error_to_http(exc: PaymentError) -> AppException:
    """Translate a payment domain error into the matching HTTP exception."""
    kind = exc.kind

    if kind is PaymentErrorKind.SIGNATURE_INVALID:
        return UnauthorizedError(
            "Firma de webhook inválida",
            transaction_id=getattr(exc, "transaction_id", None),
        )
    if kind is PaymentErrorKind.CONFIGURATION_MISSING:
        return UnauthorizedError("Verificación de firma no configurada")
    if kind is PaymentErrorKind.CUSTOMER_NOT_FOUND:
        return NotFoundError("Cliente", getattr(exc, "customer_id", None))
    if kind is PaymentErrorKind.SERVICE_NOT_FOUND:
        return NotFoundError("Servicio", getattr(exc, "service_id", None))
    if kind is PaymentErrorKind.PAYMENT_NOT_FOUND:
        return NotFoundError("Pago", getattr(exc, "transaction_id", None))
    if kind is PaymentErrorKind.GATEWAY_NOT_CONFIGURED:
        return ExternalServiceError(GATEWAY_NAME, is_unavailable=True)

    # GATEWAY_TRANSPORT
    retry_after = getattr(exc, "retry_after", None)
    return ExternalServiceError(
        GATEWAY_NAME,
        retry_after=int(retry_after) + 1 if retry_after else None,
        error=exc.message,
    )


# =============================================================================
# Webhooks
# =============================================================================


@router.post("/webhook", response_model=PaymentOut, status_code=status.HTTP_200_OK)
async def payment_webhook(
    payload: WebhookPayload,
    reconciler: PaymentReconciler = Depends(get_reconciler),
) -> PaymentOut:
    """
    Generic signed payment webhook.

    Returns the persisted payment, or the existing one when the same
    transaction is delivered again.
    """
    logger.info(
        "Payment webhook received",
        transaction_id=payload.transaction_id,
        status=payload.status.value,
    )
    try:
        payment = reconciler.process_webhook(payload)
    except PaymentError as exc:
        raise payment_error_to_http(exc) from exc
    except SQLAlchemyError as exc:
        raise DatabaseError(
            "registro de pago",
            transaction_id=payload.transaction_id,
            error=str(exc),
        ) from exc

    return PaymentOut.model_validate(payment)


@router.post("/mercadopago/webhook", response_model=ReceivedResponse)
async def mercadopago_webhook(
    request: Request,
    reconciler: PaymentReconciler = Depends(get_reconciler),
    x_signature: str | None = Header(None),
    x_request_id: str | None = Header(None),
) -> ReceivedResponse:
    """
    Mercado Pago notification endpoint.

    Always answers {"received": true}: Mercado Pago retries any non-2xx
    answer, and failures here are logged for follow-up instead.
    """
    try:
        body: Any = await request.json()
    except ValueError:
        body = None

    notification = parse_gateway_notification(body)

    try:
        outcome = await reconciler.process_gateway_notification(
            notification,
            x_signature=x_signature,
            x_request_id=x_request_id,
        )
        logger.info("Gateway notification handled", outcome=outcome.value)
    except Exception as exc:
        # Acknowledged regardless of outcome
        logger.error(
            "Gateway notification processing failed",
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=True,
        )

    return ReceivedResponse()


# =============================================================================
# Status
# =============================================================================


@router.get("/status/{transaction_id}", response_model=PaymentStatusResponse)
async def payment_status(
    transaction_id: str = Path(min_length=1, max_length=Limits.MAX_TRANSACTION_ID_LENGTH),
    ctx: dict[str, Any] = Depends(current_user_context),
    reconciler: PaymentReconciler = Depends(get_reconciler),
) -> PaymentStatusResponse:
    """
    Payment status, local ledger first, Mercado Pago as fallback.
    A settled payment found only at the gateway is backfilled.
    """
    require_roles(ctx, PAYMENT_READ_ROLES)

    try:
        view = await reconciler.check_status(transaction_id)
    except PaymentError as exc:
        raise payment_error_to_http(exc) from exc
    except SQLAlchemyError as exc:
        raise DatabaseError(
            "consulta de pago",
            transaction_id=transaction_id,
            error=str(exc),
        ) from exc

    return PaymentStatusResponse(
        transaction_id=view.transaction_id,
        status=view.status,
        amount=view.amount,
        processed_at=view.processed_at,
        customer_id=view.customer_id,
        service_id=view.service_id,
        source=view.source,
    )


@router.get("/mercadopago/status", response_model=GatewayStatusResponse)
@limiter.limit(settings.public_status_rate_limit)
async def mercadopago_status(
    request: Request,
    reference: str = Query(min_length=1, max_length=Limits.MAX_TRANSACTION_ID_LENGTH),
    reconciler: PaymentReconciler = Depends(get_reconciler),
) -> GatewayStatusResponse:
    """
    Public lookup of a payment at Mercado Pago by external reference.

    Settled payments are recorded locally on a best-effort basis; a failed
    ledger write never fails this request.
    """
    try:
        return await reconciler.lookup_gateway_reference(reference)
    except PaymentError as exc:
        raise payment_error_to_http(exc) from exc


# =============================================================================
# Checkout preferences
# =============================================================================


@router.post("/create", response_model=PreferenceResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.payment_create_rate_limit)
async def create_payment(
    request: Request,
    body: CreatePaymentRequest,
    ctx: dict[str, Any] = Depends(current_user_context),
    directory: CustomerDirectory = Depends(get_customer_directory),
    gateway: MercadoPagoClient = Depends(get_gateway_client),
) -> PreferenceResponse:
    """
    Create a Mercado Pago checkout preference for a customer's service.

    The returned transactionId is the external reference and will be the
    ledger key once the payment is notified.
    """
    require_roles(ctx, PAYMENT_WRITE_ROLES)

    if directory.find_customer(body.customer_id) is None:
        raise NotFoundError("Cliente", body.customer_id)
    if directory.find_service(body.service_id) is None:
        raise NotFoundError("Servicio", body.service_id)

    try:
        preference = await gateway.create_preference(
            customer_id=body.customer_id,
            service_id=body.service_id,
            amount=body.amount,
            description=body.description,
        )
    except PaymentError as exc:
        raise payment_error_to_http(exc) from exc

    logger.info(
        "Checkout preference created",
        user_id=ctx.get("sub"),
        transaction_id=preference.transaction_id,
    )
    return PreferenceResponse(
        preference_id=preference.preference_id,
        init_point=preference.init_point,
        sandbox_init_point=preference.sandbox_init_point,
        transaction_id=preference.transaction_id,
    )


# =============================================================================
# History
# =============================================================================


@router.get(
    "/customers/{customer_id}/services/{service_id}/latest",
    response_model=PaymentOut,
)
async def latest_payment(
    customer_id: int = Path(gt=0),
    service_id: int = Path(gt=0),
    ctx: dict[str, Any] = Depends(current_user_context),
    ledger: PaymentLedger = Depends(get_payment_ledger),
) -> PaymentOut:
    """Most recent completed or approved payment for a customer's service."""
    require_roles(ctx, PAYMENT_READ_ROLES)

    payment = ledger.latest_settled(customer_id, service_id)
    if payment is None:
        raise NotFoundError(
            "Pago",
            customer_id=customer_id,
            service_id=service_id,
        )
    return PaymentOut.model_validate(payment)


@router.get(
    "/customers/{customer_id}/services/{service_id}/recent",
    response_model=list[PaymentOut],
)
async def recent_payments(
    customer_id: int = Path(gt=0),
    service_id: int = Path(gt=0),
    limit: int = Query(Limits.DEFAULT_RECENT_PAYMENTS),
    ctx: dict[str, Any] = Depends(current_user_context),
    ledger: PaymentLedger = Depends(get_payment_ledger),
) -> list[PaymentOut]:
    """Latest payments for a customer's service; limit is clamped to 1..50."""
    require_roles(ctx, PAYMENT_READ_ROLES)

    payments = ledger.recent(customer_id, service_id, limit)
    return [PaymentOut.model_validate(p) for p in payments]
