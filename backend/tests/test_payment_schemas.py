"""
Tests for payment request/notification schemas.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from shared.config.constants import GatewayNotificationType, PaymentStatus
from shared.utils.payment_schemas import (
    PaymentNotification,
    UnsupportedNotification,
    WebhookPayload,
    parse_gateway_notification,
)


VALID = {
    "transactionId": "tx-1",
    "status": "completed",
    "amount": 25000,
    "customerId": 1,
    "serviceId": 2,
    "timestamp": "2024-05-01T12:00:00Z",
    "signature": "abc",
}


class TestWebhookPayload:

    def test_parses_camel_case(self):
        payload = WebhookPayload.model_validate(VALID)

        assert payload.transaction_id == "tx-1"
        assert payload.status == PaymentStatus.COMPLETED
        assert payload.amount == Decimal("25000")

    @pytest.mark.parametrize("status", ["APPROVED", "Completed"])
    def test_status_must_be_lowercase(self, status):
        with pytest.raises(ValidationError):
            WebhookPayload.model_validate({**VALID, "status": status})

    @pytest.mark.parametrize(
        "field,value",
        [
            ("amount", 0),
            ("amount", -10),
            ("amount", "1.234"),
            ("customerId", 0),
            ("serviceId", -1),
            ("status", "settled"),
            ("timestamp", "not a date"),
            ("transactionId", ""),
        ],
    )
    def test_rejects_invalid(self, field, value):
        with pytest.raises(ValidationError):
            WebhookPayload.model_validate({**VALID, field: value})

    def test_signature_defaults_to_empty(self):
        body = {k: v for k, v in VALID.items() if k != "signature"}

        assert WebhookPayload.model_validate(body).signature == ""

    def test_is_immutable(self):
        payload = WebhookPayload.model_validate(VALID)

        with pytest.raises(ValidationError):
            payload.amount = Decimal("1")

    def test_signable_uses_wire_names(self):
        signable = WebhookPayload.model_validate(VALID).signable()

        assert set(signable) == {
            "transactionId", "status", "amount", "customerId", "serviceId", "timestamp", "signature",
        }


class TestParseGatewayNotification:

    def test_payment_with_numeric_id(self):
        notification = parse_gateway_notification({"type": "payment", "data": {"id": 123}})

        assert isinstance(notification, PaymentNotification)
        assert notification.data.id == "123"

    @pytest.mark.parametrize(
        "body",
        [None, [], "payment", {"type": "merchant_order"}, {"data": {"id": 1}}, {"type": 5}],
    )
    def test_non_payment_bodies(self, body):
        assert isinstance(parse_gateway_notification(body), UnsupportedNotification)

    def test_payment_without_data(self):
        notification = parse_gateway_notification({"type": "payment"})

        assert isinstance(notification, UnsupportedNotification)
        assert notification.type == "payment"

    def test_type_matches_gateway_topic(self):
        notification = parse_gateway_notification(
            {"type": GatewayNotificationType.PAYMENT, "data": {"id": "42"}, "action": "payment.created"}
        )

        assert isinstance(notification, PaymentNotification)
        assert notification.type == GatewayNotificationType.PAYMENT
        assert notification.action == "payment.created"

    @pytest.mark.parametrize(
        "payment_id",
        ["1/../../v1/customers", "12?x=1", "abc", "", "-5", "12 "],
    )
    def test_non_numeric_id_is_unsupported(self, payment_id):
        notification = parse_gateway_notification({"type": "payment", "data": {"id": payment_id}})

        assert isinstance(notification, UnsupportedNotification)
        assert notification.reason == "missing or invalid payment id"
