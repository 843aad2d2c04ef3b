"""
Billing Service - Component Test Configuration

Service-specific fixtures with mocked dependencies.
"""
import pytest

from microservices.billing_service.billing_service import BillingService
from microservices.billing_service.invoice_service import InvoiceService
from microservices.billing_service.payment_service import PaymentService

from tests.component.tdd.billing_service.mocks import MockLagoClient
from tests.contracts.billing.data_contract import BillingTestDataFactory


@pytest.fixture
def factory():
    """Provide BillingTestDataFactory"""
    return BillingTestDataFactory


@pytest.fixture
def mock_lago_client():
    """Provide MockLagoClient"""
    return MockLagoClient()


@pytest.fixture
def billing_service(mock_lago_client, mock_event_bus):
    """Create BillingService with mocked dependencies"""
    return BillingService(mock_lago_client, event_bus=mock_event_bus)


@pytest.fixture
def billing_service_no_event_bus(mock_lago_client):
    """Create BillingService without event bus"""
    return BillingService(mock_lago_client, event_bus=None)


@pytest.fixture
def payment_service(mock_lago_client, mock_event_bus):
    """Create PaymentService with mocked dependencies"""
    return PaymentService(mock_lago_client, event_bus=mock_event_bus, default_currency="MWK")


@pytest.fixture
def invoice_service(mock_lago_client, mock_event_bus):
    """Create InvoiceService with mocked dependencies"""
    return InvoiceService(mock_lago_client, event_bus=mock_event_bus)
