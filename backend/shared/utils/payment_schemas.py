"""
Pydantic schemas for the payments API.

All models read and write camelCase JSON (see CamelModel).
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

from shared.config.constants import GatewayNotificationType, Limits, PaymentStatus
from shared.utils.schemas import CamelModel


# =============================================================================
# Inbound webhooks
# =============================================================================


class WebhookPayload(CamelModel):
    """
    Generic payment webhook body.

    Immutable once validated. The signature covers every other field
    (see rest_api.services.payments.signature).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    transaction_id: str = Field(min_length=1, max_length=Limits.MAX_TRANSACTION_ID_LENGTH)
    status: PaymentStatus
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    customer_id: int = Field(gt=0)
    service_id: int = Field(gt=0)
    timestamp: str
    signature: str = ""

    @field_validator("timestamp")
    @classmethod
    def _iso_timestamp(cls, value: str) -> str:
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValueError("timestamp must be an ISO 8601 date") from exc
        return value

    def signable(self) -> dict[str, Any]:
        """Wire-shaped dict (camelCase keys) used for signing and verification."""
        return self.model_dump(by_alias=True)


class NotificationData(BaseModel):
    """`data` object of a Mercado Pago notification."""

    # Interpolated into the gateway lookup path, so digits only
    id: str = Field(pattern=r"^\d+$")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        # Mercado Pago sends numeric ids in some notification versions
        if isinstance(value, int):
            return str(value)
        return value


class PaymentNotification(BaseModel):
    """A `type: payment` notification: the only kind that triggers processing."""

    type: Literal["payment"]
    data: NotificationData
    action: str | None = None


class UnsupportedNotification(BaseModel):
    """Any other notification; acknowledged and ignored."""

    type: str | None = None
    reason: str


GatewayNotification = PaymentNotification | UnsupportedNotification


def parse_gateway_notification(body: Any) -> GatewayNotification:
    """
    Classify an opaque gateway notification body.

    Never raises: malformed bodies become UnsupportedNotification.
    """
    if not isinstance(body, dict):
        return UnsupportedNotification(reason="body is not an object")

    notification_type = body.get("type")
    if notification_type != GatewayNotificationType.PAYMENT:
        return UnsupportedNotification(
            type=notification_type if isinstance(notification_type, str) else None,
            reason="not a payment notification",
        )

    try:
        return PaymentNotification.model_validate(body)
    except PydanticValidationError:
        return UnsupportedNotification(type="payment", reason="missing or invalid payment id")


# =============================================================================
# Preference creation
# =============================================================================


class CreatePaymentRequest(CamelModel):
    """Start a checkout for one service payment."""

    customer_id: int = Field(gt=0)
    service_id: int = Field(gt=0)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    description: str = Field(min_length=1, max_length=Limits.MAX_DESCRIPTION_LENGTH)


class PreferenceResponse(CamelModel):
    preference_id: str
    init_point: str
    sandbox_init_point: str
    transaction_id: str


# =============================================================================
# Payment read models
# =============================================================================


class PaymentOut(CamelModel):
    """A persisted ledger entry."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int
    transaction_id: str
    amount: Decimal
    status: PaymentStatus
    processed_at: datetime | None = None
    customer_id: int
    service_id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_serializer("amount")
    def _amount_as_number(self, amount: Decimal) -> float:
        return float(amount)


class PaymentStatusResponse(CamelModel):
    """Result of a local-first status check."""

    transaction_id: str
    status: PaymentStatus
    amount: Decimal
    processed_at: datetime | None = None
    customer_id: int
    service_id: int
    source: Literal["local", "gateway"] = "local"

    @field_serializer("amount")
    def _amount_as_number(self, amount: Decimal) -> float:
        return float(amount)


class ReferenceMetadata(CamelModel):
    customer_id: int
    service_id: int


class GatewayStatusResponse(CamelModel):
    """Public status lookup straight against the gateway."""

    found: bool
    status: str
    payment_id: str | None = None
    amount: Decimal | None = None
    date: datetime | None = None
    metadata: ReferenceMetadata | None = None
    message: str | None = None

    @field_serializer("amount")
    def _amount_as_number(self, amount: Decimal | None) -> float | None:
        return float(amount) if amount is not None else None
