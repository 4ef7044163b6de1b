"""
Mercado Pago API client.

All outbound calls to the payment gateway go through this class: checkout
preference creation, payment lookup by id and search by external reference.
Every call is bounded by a timeout and wrapped in a circuit breaker. The
client performs no retries; transport and HTTP failures surface as
GatewayTransportError and the caller decides what to do.

Usage:
    client = MercadoPagoClient(access_token=settings.mercadopago_access_token, ...)
    preference = await client.create_preference(customer_id=1, service_id=2,
                                                 amount=Decimal("25000"), description="Plan 300MB")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

import httpx

from shared.config.logging import get_logger

from .circuit_breaker import CircuitBreaker, CircuitBreakerError, create_gateway_breaker
from .errors import GatewayNotConfiguredError, GatewayTransportError
from .reference import encode_reference

logger = get_logger(__name__)


@dataclass(frozen=True)
class GatewayPayment:
    """The subset of a Mercado Pago payment resource the reconciler reads."""

    id: str
    status: str | None
    status_detail: str | None = None
    transaction_amount: Decimal | None = None
    external_reference: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    date_created: datetime | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "GatewayPayment":
        amount = data.get("transaction_amount")
        created = data.get("date_created")
        return cls(
            id=str(data.get("id", "")),
            status=data.get("status"),
            status_detail=data.get("status_detail"),
            transaction_amount=Decimal(str(amount)) if amount is not None else None,
            external_reference=data.get("external_reference"),
            metadata=data.get("metadata") or {},
            date_created=datetime.fromisoformat(created.replace("Z", "+00:00")) if created else None,
        )


@dataclass(frozen=True)
class PreferenceResult:
    """A created checkout preference."""

    preference_id: str
    init_point: str
    sandbox_init_point: str
    transaction_id: str


class MercadoPagoClient:
    """
    Thin async wrapper over the Mercado Pago REST API.

    Configuration is passed in explicitly; the client never reads settings.
    `transport` lets tests plug in an httpx.MockTransport.
    """

    def __init__(
        self,
        access_token: str,
        api_url: str = "https://api.mercadopago.com",
        timeout: float = 30.0,
        notification_url: str | None = None,
        base_url: str = "http://localhost:3000",
        currency_id: str = "CLP",
        breaker: CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._access_token = access_token
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")
        self._notification_url = (
            notification_url or f"{self._base_url}/api/payments/mercadopago/webhook"
        )
        self._currency_id = currency_id
        self._transport = transport
        self.breaker = breaker or create_gateway_breaker()

    @property
    def configured(self) -> bool:
        return bool(self._access_token)

    # =========================================================================
    # HTTP plumbing
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Perform one protected call and return the decoded JSON body.

        Raises:
            GatewayNotConfiguredError: No access token.
            GatewayTransportError: Timeout, network error, non-2xx or open circuit.
        """
        if not self.configured:
            raise GatewayNotConfiguredError()

        url = f"{self._api_url}{path}"
        try:
            async with self.breaker.call():
                async with httpx.AsyncClient(
                    timeout=self._timeout, transport=self._transport
                ) as client:
                    response = await client.request(
                        method,
                        url,
                        json=json,
                        params=params,
                        headers={"Authorization": f"Bearer {self._access_token}"},
                    )
                    if not response.is_success:
                        logger.error(
                            "Mercado Pago request failed",
                            method=method,
                            path=path,
                            status_code=response.status_code,
                            response=response.text[:500],
                        )
                        raise GatewayTransportError(
                            f"Mercado Pago returned HTTP {response.status_code}",
                            status_code=response.status_code,
                        )
                    return response.json()
        except CircuitBreakerError as exc:
            logger.warning(
                "Mercado Pago circuit breaker open",
                path=path,
                retry_after=exc.retry_after,
            )
            raise GatewayTransportError(
                "Mercado Pago temporarily unavailable",
                retry_after=exc.retry_after,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "Mercado Pago transport error",
                method=method,
                path=path,
                error=str(exc),
            )
            raise GatewayTransportError(f"Mercado Pago transport error: {exc}") from exc
        except ValueError as exc:
            # Body was not JSON
            raise GatewayTransportError("Mercado Pago returned an invalid body") from exc

    # =========================================================================
    # Operations
    # =========================================================================

    async def create_preference(
        self,
        customer_id: int,
        service_id: int,
        amount: Decimal,
        description: str,
    ) -> PreferenceResult:
        """
        Create a checkout preference for one service payment.

        The customer/service pair travels twice: as structured metadata and
        encoded in the external reference, which also becomes the local
        transaction id.
        """
        reference = encode_reference(customer_id, service_id)
        body = {
            "items": [
                {
                    "id": f"srv-{service_id}",
                    "title": description,
                    "description": description,
                    "quantity": 1,
                    "currency_id": self._currency_id,
                    "unit_price": float(amount),
                }
            ],
            "external_reference": reference,
            "back_urls": {
                "success": f"{self._base_url}/payment/success",
                "failure": f"{self._base_url}/payment/failure",
                "pending": f"{self._base_url}/payment/pending",
            },
            "auto_return": "approved",
            "notification_url": self._notification_url,
            "metadata": {
                "customer_id": customer_id,
                "service_id": service_id,
            },
        }

        data = await self._request("POST", "/checkout/preferences", json=body)
        init_point = data.get("init_point", "")

        logger.info(
            "Mercado Pago preference created",
            preference_id=data.get("id"),
            transaction_id=reference,
            customer_id=customer_id,
            service_id=service_id,
        )
        return PreferenceResult(
            preference_id=str(data.get("id", "")),
            init_point=init_point,
            sandbox_init_point=data.get("sandbox_init_point") or init_point,
            transaction_id=reference,
        )

    async def fetch_payment_by_id(self, payment_id: str | int) -> GatewayPayment:
        """GET /v1/payments/{id}."""
        data = await self._request("GET", f"/v1/payments/{payment_id}")
        return self._parse_payments(data, path="/v1/payments/{id}", many=False)[0]

    async def search_by_external_reference(self, reference: str) -> list[GatewayPayment]:
        """Payments carrying the reference, most recent first."""
        data = await self._request(
            "GET",
            "/v1/payments/search",
            params={
                "external_reference": reference,
                "sort": "date_created",
                "criteria": "desc",
            },
        )
        return self._parse_payments(data, path="/v1/payments/search", many=True)

    @staticmethod
    def _parse_payments(data: Any, *, path: str, many: bool) -> list[GatewayPayment]:
        """Decode payment resources; a malformed body is a transport failure."""
        try:
            if many:
                return [GatewayPayment.from_api(item) for item in data.get("results") or []]
            return [GatewayPayment.from_api(data)]
        except (ValueError, ArithmeticError, TypeError, AttributeError) as exc:
            logger.error(
                "Mercado Pago returned an invalid payment",
                path=path,
                error=str(exc),
            )
            raise GatewayTransportError("Mercado Pago returned an invalid payment") from exc
