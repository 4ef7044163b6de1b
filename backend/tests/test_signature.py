"""
Tests for webhook signature computation and verification.
"""

import hashlib
import hmac

import pytest
from hypothesis import given, settings, strategies as st

from rest_api.services.payments import (
    ConfigurationMissingError,
    SignatureInvalidError,
    SignatureVerifier,
    canonicalize_payload,
    compute_signature,
    verify_mercadopago_signature,
    verify_signature,
)
from shared.utils.payment_schemas import WebhookPayload


SECRET = "unit-test-secret"


class TestCanonicalization:
    """Canonical form of a webhook payload."""

    def test_excludes_signature_and_sorts_keys(self):
        payload = {"b": 1, "signature": "abc", "a": "x"}

        assert canonicalize_payload(payload) == '{"a":"x","b":1}'

    def test_field_order_does_not_matter(self):
        first = {"transactionId": "tx-1", "amount": 100, "status": "completed"}
        second = {"status": "completed", "transactionId": "tx-1", "amount": 100}

        assert canonicalize_payload(first) == canonicalize_payload(second)

    def test_model_and_wire_dict_canonicalize_identically(self):
        body = {
            "transactionId": "tx-1",
            "status": "completed",
            "amount": 25000,
            "customerId": 3,
            "serviceId": 4,
            "timestamp": "2024-05-01T12:00:00Z",
            "signature": "",
        }
        payload = WebhookPayload.model_validate(body)

        assert canonicalize_payload(payload.signable()) == canonicalize_payload(body)

    def test_fractional_amount_kept(self):
        body = {
            "transactionId": "tx-1",
            "status": "approved",
            "amount": 19990.5,
            "customerId": 3,
            "serviceId": 4,
            "timestamp": "2024-05-01T12:00:00Z",
        }
        payload = WebhookPayload.model_validate(body)

        assert '"amount":19990.5' in canonicalize_payload(payload.signable())


class TestComputeSignature:
    """HMAC-SHA256 digest."""

    def test_matches_hmac_sha256_hex(self):
        expected = hmac.new(b"k", b"message", hashlib.sha256).hexdigest()

        assert compute_signature("message", "k") == expected

    @given(
        payload=st.dictionaries(
            keys=st.text(min_size=1, max_size=10).filter(lambda k: k != "signature"),
            values=st.one_of(st.integers(), st.text(max_size=20), st.booleans()),
            max_size=6,
        )
    )
    @settings(max_examples=50)
    def test_deterministic(self, payload):
        """Property: same payload and secret always produce the same digest."""
        first = compute_signature(canonicalize_payload(payload), SECRET)
        second = compute_signature(canonicalize_payload(dict(reversed(payload.items()))), SECRET)

        assert first == second

    @given(amount=st.integers(min_value=1, max_value=10_000_000))
    @settings(max_examples=50)
    def test_changing_a_field_changes_digest(self, amount):
        base = {"transactionId": "tx-1", "amount": amount}
        changed = {"transactionId": "tx-1", "amount": amount + 1}

        assert compute_signature(canonicalize_payload(base), SECRET) != compute_signature(
            canonicalize_payload(changed), SECRET
        )

    def test_signature_field_value_does_not_affect_digest(self):
        payload = {"transactionId": "tx-1", "signature": "one"}
        other = {"transactionId": "tx-1", "signature": "two"}

        assert compute_signature(canonicalize_payload(payload), SECRET) == compute_signature(
            canonicalize_payload(other), SECRET
        )


class TestVerifySignature:

    def test_valid_signature(self):
        payload = {"transactionId": "tx-1", "amount": 10}
        signature = compute_signature(canonicalize_payload(payload), SECRET)

        assert verify_signature(payload, signature, SECRET) is True

    def test_uppercase_hex_accepted(self):
        payload = {"transactionId": "tx-1", "amount": 10}
        signature = compute_signature(canonicalize_payload(payload), SECRET).upper()

        assert verify_signature(payload, signature, SECRET) is True

    def test_wrong_secret_rejected(self):
        payload = {"transactionId": "tx-1", "amount": 10}
        signature = compute_signature(canonicalize_payload(payload), "other")

        assert verify_signature(payload, signature, SECRET) is False

    @pytest.mark.parametrize("provided", [None, ""])
    def test_missing_signature_rejected(self, provided):
        assert verify_signature({"transactionId": "tx-1"}, provided, SECRET) is False


class TestSignatureVerifier:

    def test_ensure_valid_passes_for_signed_payload(self):
        verifier = SignatureVerifier(SECRET)
        payload = {"transactionId": "tx-1", "amount": 10}

        verifier.ensure_valid(payload, verifier.sign(payload))

    def test_ensure_valid_raises_on_mismatch(self):
        verifier = SignatureVerifier(SECRET)
        payload = {"transactionId": "tx-1", "amount": 10}

        with pytest.raises(SignatureInvalidError) as exc_info:
            verifier.ensure_valid(payload, "deadbeef")

        assert exc_info.value.transaction_id == "tx-1"

    def test_skips_verification_without_secret(self):
        verifier = SignatureVerifier("")

        assert verifier.enabled is False
        assert verifier.verify({"transactionId": "tx-1"}, "anything") is True
        assert verifier.sign({"transactionId": "tx-1"}) == ""

    def test_required_signature_without_secret_raises(self):
        verifier = SignatureVerifier(None, require_signature=True)

        with pytest.raises(ConfigurationMissingError):
            verifier.ensure_valid({"transactionId": "tx-1"}, "anything")


class TestMercadoPagoHeaderSignature:
    """x-signature header sent by Mercado Pago notifications."""

    def _header(self, data_id: str, request_id: str, ts: str, secret: str = SECRET) -> str:
        manifest = f"id:{data_id};request-id:{request_id};ts:{ts};"
        v1 = hmac.new(secret.encode(), manifest.encode(), hashlib.sha256).hexdigest()
        return f"ts={ts},v1={v1}"

    def test_valid_header(self):
        header = self._header("123456", "req-1", "1704908010")

        assert verify_mercadopago_signature(header, "req-1", "123456", SECRET) is True

    def test_tampered_data_id(self):
        header = self._header("123456", "req-1", "1704908010")

        assert verify_mercadopago_signature(header, "req-1", "999999", SECRET) is False

    @pytest.mark.parametrize(
        "x_signature,x_request_id",
        [(None, "req-1"), ("ts=1,v1=abc", None), ("garbage", "req-1"), ("ts=1", "req-1")],
    )
    def test_missing_or_malformed_headers(self, x_signature, x_request_id):
        assert verify_mercadopago_signature(x_signature, x_request_id, "123456", SECRET) is False
