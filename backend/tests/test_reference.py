"""
Tests for the external reference codec.
"""

import re

from hypothesis import given, strategies as st

from rest_api.services.payments import decode_customer_id, decode_service_id, encode_reference


class TestEncode:

    def test_format(self):
        assert encode_reference(12, 34, now_ms=1700000000123) == "cli-12-srv-34-1700000000123"

    def test_defaults_to_current_millis(self):
        reference = encode_reference(1, 2)

        assert re.fullmatch(r"cli-1-srv-2-\d{13}", reference)


class TestDecode:

    @given(
        customer_id=st.integers(min_value=1, max_value=2**53),
        service_id=st.integers(min_value=1, max_value=2**53),
    )
    def test_round_trip(self, customer_id, service_id):
        """Property: decoding an encoded reference returns the original ids."""
        reference = encode_reference(customer_id, service_id)

        assert decode_customer_id(reference) == customer_id
        assert decode_service_id(reference) == service_id

    def test_invalid_reference_returns_zero(self):
        assert decode_customer_id("not-a-valid-reference") == 0
        assert decode_service_id("not-a-valid-reference") == 0

    def test_empty_and_none(self):
        assert decode_customer_id("") == 0
        assert decode_customer_id(None) == 0
        assert decode_service_id(None) == 0

    def test_legacy_reference_without_timestamp(self):
        # Service pattern needs the trailing separator
        assert decode_customer_id("cli-7-srv-8") == 7
        assert decode_service_id("cli-7-srv-8") == 0
