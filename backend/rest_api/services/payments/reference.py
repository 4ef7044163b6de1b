"""
External reference codec.

The reference handed to the gateway has the form
    cli-{customerId}-srv-{serviceId}-{unixMillis}
and doubles as the local transaction id for payments started through a
checkout preference. Decoding never raises; 0 means "could not resolve".
"""

import re
import time

_CUSTOMER_PATTERN = re.compile(r"cli-(\d+)-srv-")
_SERVICE_PATTERN = re.compile(r"srv-(\d+)-")


def encode_reference(customer_id: int, service_id: int, now_ms: int | None = None) -> str:
    """Build a reference for a customer/service pair stamped with the current time."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"cli-{customer_id}-srv-{service_id}-{now_ms}"


def _extract(pattern: re.Pattern[str], reference: str | None) -> int:
    if not reference:
        return 0
    match = pattern.search(reference)
    return int(match.group(1)) if match else 0


def decode_customer_id(reference: str | None) -> int:
    return _extract(_CUSTOMER_PATTERN, reference)


def decode_service_id(reference: str | None) -> int:
    return _extract(_SERVICE_PATTERN, reference)
