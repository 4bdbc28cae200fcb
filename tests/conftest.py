"""Test configuration and fixtures."""

import os
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
import structlog
from fastapi.testclient import TestClient

from core.dependencies import get_gateway
from core.settings import Settings
from main import app
from payments.coordinator import PaymentSessionCoordinator
from payments.errors import GatewayError
from payments.models import IntentCreated, PaymentDetails
from payments.session_store import InMemorySessionStore

# Module-level loggers must stay uncached so capture_logs() sees their events
structlog.configure(cache_logger_on_first_use=False)


class FakeGateway:
    """Stands in for PayPalGateway; records what the coordinator sends it."""

    def __init__(self):
        self.created = []
        self.executed = []
        self.create_error = None
        self.execute_error = None
        self._counter = 0

    def create_intent(self, request):
        self.created.append(request)
        if self.create_error:
            raise self.create_error
        self._counter += 1
        return IntentCreated(
            intent_id=f"PAY-{self._counter}",
            approval_url=(
                "https://www.sandbox.paypal.com/cgi-bin/webscr"
                f"?cmd=_express-checkout&token=EC-{self._counter}"
            ),
        )

    def execute_intent(self, intent_id, payer_id):
        self.executed.append((intent_id, payer_id))
        if self.execute_error:
            raise self.execute_error
        return PaymentDetails(
            id=intent_id,
            state="approved",
            intent="sale",
            payer_id=payer_id,
            raw={"id": intent_id, "state": "approved"},
        )

    def get_intent(self, intent_id):
        return PaymentDetails(id=intent_id, state="created", intent="sale")

    def list_intents(self, limit=10, offset=0):
        return [
            PaymentDetails(id=f"PAY-{i}", state="approved", intent="sale")
            for i in range(offset, offset + limit)
        ]


class Clock:
    """Settable clock for token expiry tests."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Setup test environment variables before each test."""
    original_env = dict(os.environ)

    os.environ.update(
        {
            "PAYPAL_CLIENT_ID": "test_client_id",
            "PAYPAL_SECRET": "test_secret",
            "PAYPAL_MODE": "sandbox",
            "PAYPAL_LOG_ENABLED": "false",
            "PAYPAL_PLAN_GOLD": "P-GOLD123",
            "APP_NAME": "Test Checkout",
            "ENVIRONMENT": "test",
            "DEBUG": "true",
        }
    )

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def mock_settings():
    return Settings(
        PAYPAL_CLIENT_ID="test_client_id",
        PAYPAL_SECRET="test_secret",
        PAYPAL_PLAN_GOLD="P-GOLD123",
        APP_NAME="Test Checkout",
        DEBUG=True,
        ENVIRONMENT="test",
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def coordinator(gateway, store, clock):
    return PaymentSessionCoordinator(gateway, store, clock=clock)


@pytest.fixture
def widget_cart():
    return [
        {"name": "Widget", "sku": "W1", "quantity": 2, "price": Decimal("9.99")},
        {"name": "Gadget", "sku": "G1", "quantity": 1, "price": Decimal("5.00")},
    ]


@pytest.fixture
def gateway_error():
    return GatewayError("INTERNAL_SERVICE_ERROR", "An internal service error occurred.")


@pytest.fixture
def client(mock_settings, gateway):
    """Test client with the PayPal gateway swapped for FakeGateway."""
    app.dependency_overrides[get_gateway] = lambda: gateway

    with patch("core.dependencies._settings", mock_settings):
        with TestClient(app) as test_client:
            yield test_client

    app.dependency_overrides.clear()
