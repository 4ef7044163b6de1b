"""
HMAC-SHA256 signatures for inbound payment webhooks.

The signed message is the canonical JSON form of the payload: the
"signature" field removed, keys sorted, compact separators. Field order
on the wire therefore never changes the digest.

Usage:
    verifier = SignatureVerifier(secret=settings.payment_webhook_secret)
    verifier.ensure_valid(payload.model_dump(by_alias=True), payload.signature)
"""

from __future__ import annotations

import hashlib
import hmac
import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from shared.config.logging import get_logger, mask_secret, audit_webhook_event

from .errors import ConfigurationMissingError, SignatureInvalidError

logger = get_logger(__name__)

SIGNATURE_FIELD = "signature"


def _json_default(value: Any) -> Any:
    # Decimal amounts serialize like JSON numbers: 25000 not "25000.00"
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def canonicalize_payload(payload: Mapping[str, Any]) -> str:
    """Serialize a payload deterministically, excluding the signature field."""
    unsigned = {k: v for k, v in payload.items() if k != SIGNATURE_FIELD}
    return json.dumps(
        unsigned,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_json_default,
    )


def compute_signature(canonical_payload: str, secret: str) -> str:
    """HMAC-SHA256 of the canonical payload as lowercase hex."""
    return hmac.new(
        secret.encode("utf-8"),
        canonical_payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_signature(payload: Mapping[str, Any], provided: str | None, secret: str) -> bool:
    """Constant-time comparison of the provided signature against the computed one."""
    if not provided:
        return False
    expected = compute_signature(canonicalize_payload(payload), secret)
    return hmac.compare_digest(expected, provided.strip().lower())


class SignatureVerifier:
    """
    Verifies inbound webhook signatures with a configured secret.

    Without a secret, verification is skipped and logged as a warning,
    unless require_signature is set, in which case every webhook is
    rejected with ConfigurationMissingError.
    """

    def __init__(self, secret: str | None, require_signature: bool = False):
        self._secret = secret or ""
        self._require_signature = require_signature

    @property
    def enabled(self) -> bool:
        return bool(self._secret)

    def sign(self, payload: Mapping[str, Any]) -> str:
        """
        Compute the signature for a payload.
        Returns an empty string when no secret is configured.
        """
        if not self._secret:
            return ""
        return compute_signature(canonicalize_payload(payload), self._secret)

    def verify(self, payload: Mapping[str, Any], provided: str | None) -> bool:
        """
        Check a payload's signature.

        Returns True when the signature matches or when verification is
        skipped because no secret is configured.

        Raises:
            ConfigurationMissingError: No secret and require_signature is set.
        """
        transaction_id = payload.get("transactionId")

        if not self._secret:
            if self._require_signature:
                audit_webhook_event(
                    "SIGNATURE_REJECTED",
                    source="generic",
                    transaction_id=transaction_id,
                    accepted=False,
                    reason="secret not configured",
                )
                raise ConfigurationMissingError()
            logger.warning(
                "Webhook signature verification skipped - no secret configured",
                transaction_id=transaction_id,
            )
            audit_webhook_event(
                "SIGNATURE_SKIPPED",
                source="generic",
                transaction_id=transaction_id,
            )
            return True

        if verify_signature(payload, provided, self._secret):
            audit_webhook_event(
                "SIGNATURE_VERIFIED",
                source="generic",
                transaction_id=transaction_id,
            )
            return True

        audit_webhook_event(
            "SIGNATURE_REJECTED",
            source="generic",
            transaction_id=transaction_id,
            accepted=False,
            reason="signature mismatch",
            received=mask_secret(provided),
        )
        return False

    def ensure_valid(self, payload: Mapping[str, Any], provided: str | None) -> None:
        """
        Raise unless the payload may be processed.

        Raises:
            SignatureInvalidError: Signature mismatch.
            ConfigurationMissingError: No secret and require_signature is set.
        """
        if not self.verify(payload, provided):
            raise SignatureInvalidError(payload.get("transactionId"))


# =============================================================================
# Mercado Pago notification headers
# =============================================================================


def parse_mercadopago_signature_header(x_signature: str) -> dict[str, str]:
    """Split "ts=1700000000,v1=abc..." into {"ts": ..., "v1": ...}."""
    parts: dict[str, str] = {}
    for part in x_signature.split(","):
        if "=" in part:
            key, value = part.split("=", 1)
            parts[key.strip()] = value.strip()
    return parts


def verify_mercadopago_signature(
    x_signature: str | None,
    x_request_id: str | None,
    data_id: str,
    secret: str,
) -> bool:
    """
    Verify the x-signature header Mercado Pago attaches to notifications.

    The signed manifest is "id:{data_id};request-id:{x_request_id};ts:{ts};"
    (HMAC-SHA256 with the webhook secret, compared against v1).
    """
    if not x_signature or not x_request_id:
        audit_webhook_event(
            "SIGNATURE_REJECTED",
            source="mercadopago",
            accepted=False,
            reason="missing signature headers",
            data_id=data_id,
        )
        return False

    parts = parse_mercadopago_signature_header(x_signature)
    ts = parts.get("ts")
    v1 = parts.get("v1")
    if not ts or not v1:
        audit_webhook_event(
            "SIGNATURE_REJECTED",
            source="mercadopago",
            accepted=False,
            reason="malformed x-signature",
            data_id=data_id,
        )
        return False

    # Mercado Pago lowercases alphanumeric ids in the manifest
    manifest = f"id:{data_id.lower()};request-id:{x_request_id};ts:{ts};"
    expected = compute_signature(manifest, secret)

    if not hmac.compare_digest(expected, v1):
        audit_webhook_event(
            "SIGNATURE_REJECTED",
            source="mercadopago",
            accepted=False,
            reason="signature mismatch",
            data_id=data_id,
            expected=mask_secret(expected),
            received=mask_secret(v1),
        )
        return False

    audit_webhook_event("SIGNATURE_VERIFIED", source="mercadopago", data_id=data_id)
    return True
