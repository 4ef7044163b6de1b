"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Settings are read at import time: configure the test environment first
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["PAYMENT_WEBHOOK_SECRET"] = ""
os.environ["MERCADOPAGO_ACCESS_TOKEN"] = ""
os.environ["MERCADOPAGO_WEBHOOK_SECRET"] = ""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.core.dependencies import get_gateway_client, get_signature_verifier
from rest_api.models import Base, Customer, ServiceType
from rest_api.services.payments import (
    CircuitBreaker,
    CircuitBreakerConfig,
    GatewayPayment,
    PreferenceResult,
    SignatureVerifier,
    canonicalize_payload,
    compute_signature,
)
from shared.infrastructure.db import get_db
from shared.security.auth import sign_jwt


WEBHOOK_SECRET = "test-webhook-secret"


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# =============================================================================
# Fake gateway
# =============================================================================


class FakeGateway:
    """
    In-memory stand-in for MercadoPagoClient.

    Payments are registered per external reference and per id; set `error`
    to make every call raise it.
    """

    def __init__(self):
        self.configured = True
        self.breaker = CircuitBreaker(CircuitBreakerConfig(name="fake-gateway"))
        self.by_reference: dict[str, list[GatewayPayment]] = {}
        self.by_id: dict[str, GatewayPayment] = {}
        self.preferences: list[dict] = []
        self.error: Exception | None = None
        self.calls: list[tuple[str, str]] = []

    def add_payment(
        self,
        reference: str,
        status: str = "approved",
        amount: str = "25000",
        payment_id: str = "9001",
        metadata: dict | None = None,
    ) -> GatewayPayment:
        payment = GatewayPayment(
            id=payment_id,
            status=status,
            transaction_amount=Decimal(amount),
            external_reference=reference,
            metadata=metadata or {},
            date_created=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        )
        self.by_reference.setdefault(reference, []).insert(0, payment)
        self.by_id[payment_id] = payment
        return payment

    async def fetch_payment_by_id(self, payment_id):
        self.calls.append(("fetch", str(payment_id)))
        if self.error:
            raise self.error
        return self.by_id[str(payment_id)]

    async def search_by_external_reference(self, reference):
        self.calls.append(("search", reference))
        if self.error:
            raise self.error
        return list(self.by_reference.get(reference, []))

    async def create_preference(self, customer_id, service_id, amount, description):
        self.calls.append(("create", f"{customer_id}/{service_id}"))
        if self.error:
            raise self.error
        reference = f"cli-{customer_id}-srv-{service_id}-1700000000000"
        self.preferences.append(
            {"customer_id": customer_id, "service_id": service_id, "amount": amount, "description": description}
        )
        return PreferenceResult(
            preference_id="pref-123",
            init_point="https://www.mercadopago.cl/checkout/v1/redirect?pref_id=pref-123",
            sandbox_init_point="https://sandbox.mercadopago.cl/checkout/v1/redirect?pref_id=pref-123",
            transaction_id=reference,
        )


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seed_service(db_session):
    """Create a test internet plan."""
    service = ServiceType(id=1, name="Fibra 300 Mbps", monthly_price=Decimal("25000"))
    db_session.add(service)
    db_session.commit()
    db_session.refresh(service)
    return service


@pytest.fixture
def seed_customer(db_session, seed_service):
    """Create an active test customer."""
    customer = Customer(
        id=1,
        name="Juan Pérez",
        rut="12.345.678-9",
        phone="+56912345678",
        email="juan@example.cl",
        address="Av. Siempre Viva 742",
        commune="Providencia",
        city="Santiago",
        service_type_id=seed_service.id,
    )
    db_session.add(customer)
    db_session.commit()
    db_session.refresh(customer)
    return customer


# =============================================================================
# Payment fixtures
# =============================================================================


@pytest.fixture
def verifier():
    return SignatureVerifier(WEBHOOK_SECRET)


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def make_webhook_body():
    """Build a webhook body, signed with the test secret unless told otherwise."""

    def _make(
        transaction_id: str = "tx-0001",
        status: str = "completed",
        amount=25000,
        customer_id: int = 1,
        service_id: int = 1,
        sign: bool = True,
    ) -> dict:
        body = {
            "transactionId": transaction_id,
            "status": status,
            "amount": amount,
            "customerId": customer_id,
            "serviceId": service_id,
            "timestamp": "2024-05-01T12:00:00.000Z",
            "signature": "",
        }
        if sign:
            body["signature"] = compute_signature(canonicalize_payload(body), WEBHOOK_SECRET)
        return body

    return _make


# =============================================================================
# API fixtures
# =============================================================================


@pytest.fixture(scope="function")
def client(db_session, fake_gateway, verifier):
    """
    Create a test client with database, gateway and secret overrides.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway_client] = lambda: fake_gateway
    app.dependency_overrides[get_signature_verifier] = lambda: verifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _auth_headers(*roles: str) -> dict[str, str]:
    token = sign_jwt({"sub": "42", "email": "staff@isp.cl", "roles": list(roles)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return _auth_headers("ADMIN")


@pytest.fixture
def technician_headers():
    return _auth_headers("TECHNICIAN")


@pytest.fixture
def readonly_headers():
    return _auth_headers("READ_ONLY")
