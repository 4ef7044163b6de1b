"""
Tests for the payment ledger: idempotency, atomicity and history queries.
"""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from rest_api.models import Payment, ServiceType
from rest_api.repositories import PaymentRepository
from rest_api.services.payments import (
    CustomerNotFoundError,
    PaymentLedger,
    ServiceNotFoundError,
)
from shared.utils.payment_schemas import WebhookPayload


def _payload(transaction_id: str = "tx-ledger-1", status: str = "completed", **overrides) -> WebhookPayload:
    data = {
        "transaction_id": transaction_id,
        "status": status,
        "amount": Decimal("25000"),
        "customer_id": 1,
        "service_id": 1,
        "timestamp": "2024-05-01T12:00:00Z",
    }
    data.update(overrides)
    return WebhookPayload(**data)


def _count(db_session) -> int:
    return db_session.scalar(select(func.count()).select_from(Payment))


class TestRecordPayment:
    """Recording a verified payload."""

    def test_records_new_payment(self, db_session, seed_customer):
        ledger = PaymentLedger(db_session)

        payment = ledger.record_payment(_payload())

        assert payment.id is not None
        assert payment.transaction_id == "tx-ledger-1"
        assert payment.status == "completed"
        assert payment.amount == Decimal("25000")
        assert payment.processed_at is not None
        assert _count(db_session) == 1

    def test_duplicate_returns_existing_row(self, db_session, seed_customer):
        ledger = PaymentLedger(db_session)

        first = ledger.record_payment(_payload())
        second = ledger.record_payment(_payload(amount=Decimal("99999")))

        assert second.id == first.id
        assert second.amount == Decimal("25000")
        assert _count(db_session) == 1

    def test_status_is_set_once(self, db_session, seed_customer):
        ledger = PaymentLedger(db_session)

        ledger.record_payment(_payload(status="pending"))
        again = ledger.record_payment(_payload(status="completed"))

        assert again.status == "pending"

    def test_unknown_customer_writes_nothing(self, db_session, seed_service):
        ledger = PaymentLedger(db_session)

        with pytest.raises(CustomerNotFoundError) as exc_info:
            ledger.record_payment(_payload(customer_id=404))

        assert exc_info.value.customer_id == 404
        assert _count(db_session) == 0

    def test_unknown_service_writes_nothing(self, db_session, seed_customer):
        ledger = PaymentLedger(db_session)

        with pytest.raises(ServiceNotFoundError):
            ledger.record_payment(_payload(service_id=404))

        assert _count(db_session) == 0

    def test_soft_deleted_customer_is_missing(self, db_session, seed_customer):
        seed_customer.soft_delete()
        db_session.commit()
        ledger = PaymentLedger(db_session)

        with pytest.raises(CustomerNotFoundError):
            ledger.record_payment(_payload())

        assert _count(db_session) == 0

    def test_concurrent_duplicate_returns_winner(self, db_session, seed_customer, monkeypatch):
        """A delivery that loses the race on the unique index gets the winner's row."""
        ledger = PaymentLedger(db_session)
        winner = ledger.record_payment(_payload("tx-race"))

        original = PaymentRepository.find_by_transaction_id
        calls = {"n": 0}

        def stale_first_read(self, transaction_id):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return original(self, transaction_id)

        monkeypatch.setattr(PaymentRepository, "find_by_transaction_id", stale_first_read)

        result = PaymentLedger(db_session).record_payment(_payload("tx-race"))

        assert result.id == winner.id
        assert calls["n"] == 2
        assert _count(db_session) == 1


class TestHistory:
    """latest_settled and recent queries."""

    def test_latest_settled_skips_unsettled(self, db_session, seed_customer):
        ledger = PaymentLedger(db_session)
        ledger.record_payment(_payload("tx-a", status="completed"))
        ledger.record_payment(_payload("tx-b", status="approved"))
        ledger.record_payment(_payload("tx-c", status="rejected"))
        ledger.record_payment(_payload("tx-d", status="pending"))

        latest = ledger.latest_settled(1, 1)

        assert latest is not None
        assert latest.transaction_id == "tx-b"

    def test_latest_settled_none(self, db_session, seed_customer):
        ledger = PaymentLedger(db_session)
        ledger.record_payment(_payload("tx-a", status="failed"))

        assert ledger.latest_settled(1, 1) is None

    def test_recent_orders_newest_first(self, db_session, seed_customer):
        ledger = PaymentLedger(db_session)
        for i in range(5):
            ledger.record_payment(_payload(f"tx-{i}"))

        recent = ledger.recent(1, 1, limit=3)

        assert [p.transaction_id for p in recent] == ["tx-4", "tx-3", "tx-2"]

    @pytest.mark.parametrize("limit,expected", [(0, 1), (-5, 1), (2, 2), (500, 6)])
    def test_recent_clamps_limit(self, db_session, seed_customer, limit, expected):
        ledger = PaymentLedger(db_session)
        for i in range(6):
            ledger.record_payment(_payload(f"tx-{i}"))

        assert len(ledger.recent(1, 1, limit=limit)) == expected

    def test_recent_is_scoped_to_pair(self, db_session, seed_customer):
        ledger = PaymentLedger(db_session)
        ledger.record_payment(_payload("tx-mine"))

        assert ledger.recent(1, 2) == []


class TestServiceCatalogMapping:
    """Columns the ledger reads from the service catalog."""

    def test_monthly_price_round_trips_as_decimal(self, db_session, seed_service):
        db_session.expire_all()

        service = db_session.get(ServiceType, seed_service.id)

        assert isinstance(service.monthly_price, Decimal)
        assert service.monthly_price == Decimal("25000")

    def test_monthly_price_is_optional(self, db_session):
        db_session.add(ServiceType(id=2, name="Plan sin precio"))
        db_session.commit()

        assert db_session.get(ServiceType, 2).monthly_price is None
