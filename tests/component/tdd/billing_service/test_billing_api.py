"""
TDD Test: Billing API

Routes, result -> HTTP status mapping and error bodies, with the services
wired to MockLagoClient and MockEventBus through dependency overrides.
"""
import base64
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from microservices.billing_service import main
from microservices.billing_service.billing_service import BillingService
from microservices.billing_service.clients.lago_client import RejectionReason
from microservices.billing_service.invoice_service import InvoiceService
from microservices.billing_service.models import FailedStage, OperationResult
from microservices.billing_service.payment_service import PaymentService

from tests.component.tdd.billing_service.mocks import rejected, unavailable

pytestmark = [pytest.mark.component]


@pytest.fixture
def client(mock_lago_client, mock_event_bus):
    billing = BillingService(mock_lago_client, event_bus=mock_event_bus)
    payments = PaymentService(mock_lago_client, event_bus=mock_event_bus)
    invoices = InvoiceService(mock_lago_client, event_bus=mock_event_bus)

    async def billing_override():
        return billing

    async def payments_override():
        return payments

    async def invoices_override():
        return invoices

    main.app.dependency_overrides[main.get_billing_service] = billing_override
    main.app.dependency_overrides[main.get_payment_service] = payments_override
    main.app.dependency_overrides[main.get_invoice_service] = invoices_override
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()


class TestStatusMapping:

    @pytest.mark.parametrize(
        "stage, reason, gateway_status, expected",
        [
            (FailedStage.VALIDATION, None, None, 400),
            (FailedStage.TIMESTAMP, None, None, 400),
            (FailedStage.GATEWAY, "bad_request", 400, 400),
            (FailedStage.GATEWAY, "unprocessable_entity", 422, 400),
            (FailedStage.GATEWAY, "unauthorized", 401, 400),
            (FailedStage.GATEWAY, "not_found", 404, 404),
            (FailedStage.GATEWAY, "unavailable", None, 502),
            (FailedStage.GATEWAY, "invalid_response", 200, 502),
            (FailedStage.GATEWAY, "other", 503, 502),
            (FailedStage.PUBLISH, None, None, 500),
            (FailedStage.UNEXPECTED, None, None, 500),
        ],
    )
    def test_status_for_failure(self, stage, reason, gateway_status, expected):
        result = OperationResult(
            success=False,
            message="failed",
            failed_stage=stage,
            gateway_reason=reason,
            gateway_status=gateway_status,
        )
        assert main.status_code_for(result) == expected

    def test_success_is_200(self):
        assert main.status_code_for(OperationResult(success=True, message="ok")) == 200


class TestUsageEventRoute:

    def test_event_usage_accepted(self, client, factory):
        body = {"event": factory.make_usage_event_data(timestamp="2025-06-11T11:49:02Z")}

        response = client.post("/api/v1/billing/event-usage", json=body)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["converted_timestamp"] == 1749642542
        assert data["transaction_id"].startswith("tx_")

    def test_bad_timestamp_is_400(self, client, factory):
        body = {"event": factory.make_usage_event_data(timestamp="11/49/2025 25:61:00")}

        response = client.post("/api/v1/billing/event-usage", json=body)

        assert response.status_code == 400
        assert response.json()["failed_stage"] == "timestamp"

    def test_missing_wrapper_is_400(self, client, mock_lago_client):
        response = client.post("/api/v1/billing/event-usage", json={"external_subscription_id": "sub_1"})

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["failed_stage"] == "validation"
        assert data["errors"]
        assert mock_lago_client.call_count() == 0

    def test_lago_down_is_502(self, client, mock_lago_client, factory):
        mock_lago_client.set_result("send_usage_event", unavailable())

        response = client.post("/api/v1/billing/event-usage", json={"event": factory.make_usage_event_data()})

        assert response.status_code == 502
        assert response.json()["gateway_reason"] == "unavailable"

    def test_publish_failure_is_500(self, client, mock_event_bus, factory):
        mock_event_bus.set_ack(False)

        response = client.post("/api/v1/billing/event-usage", json={"event": factory.make_usage_event_data()})

        assert response.status_code == 500
        assert response.json()["failed_stage"] == "publish"


class TestPaymentRoutes:

    def test_create_payment(self, client, factory):
        response = client.post("/api/v1/payments", json={"payment": factory.make_payment_data(amount_cents=2500)})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["amount_cents"] == 2500
        assert data["payment_id"]

    def test_zero_amount_is_400(self, client, mock_lago_client, factory):
        response = client.post("/api/v1/payments", json={"payment": factory.make_payment_data(amount_cents=0)})

        assert response.status_code == 400
        assert "amount" in response.json()["message"]
        assert mock_lago_client.call_count() == 0

    def test_non_numeric_amount_is_400(self, client, factory):
        response = client.post("/api/v1/payments", json={"payment": factory.make_payment_data(amount_cents="lots")})

        assert response.status_code == 400
        assert response.json()["failed_stage"] == "validation"

    def test_retrieve_unknown_payment_is_404(self, client, mock_lago_client):
        mock_lago_client.set_result(
            "retrieve_payment", rejected(404, RejectionReason.NOT_FOUND, "Payment not found: pay_x")
        )

        response = client.get("/api/v1/payments/pay_x")

        assert response.status_code == 404
        assert response.json()["message"] == "Payment not found: pay_x"

    def test_list_payments_clamps_paging(self, client, mock_lago_client):
        response = client.get("/api/v1/payments", params={"page": 0, "page_size": 1000})

        assert response.status_code == 200
        assert response.json()["page"] == 1
        assert response.json()["page_size"] == 100
        assert mock_lago_client.last_call("list_payments").page_size == 100

    def test_list_payments_bad_date_is_400(self, client, mock_lago_client):
        response = client.get("/api/v1/payments", params={"from_date": "not-a-date"})

        assert response.status_code == 400
        assert response.json()["failed_stage"] == "timestamp"
        assert mock_lago_client.call_count() == 0

    def test_current_time_is_not_a_payment_id(self, client, mock_lago_client):
        response = client.get("/api/v1/payments/current-time")

        assert response.status_code == 200
        formats = response.json()["formats"]
        assert set(formats) == {
            "date_only",
            "iso8601_z",
            "iso8601_with_milliseconds",
            "iso8601_no_z",
            "space_separated",
            "unix_timestamp",
        }
        assert mock_lago_client.call_count("retrieve_payment") == 0


class TestInvoiceRoutes:

    def test_list_invoices(self, client, mock_lago_client):
        response = client.get("/api/v1/invoices", params={"status": "finalized", "per_page": 250})

        assert response.status_code == 200
        assert len(response.json()["invoices"]) == 1
        assert mock_lago_client.last_call("list_invoices").per_page == 100

    def test_get_invoice(self, client, mock_lago_client):
        response = client.get(f"/api/v1/invoices/{mock_lago_client.invoice.lago_id}")

        assert response.status_code == 200
        assert response.json()["invoice"]["number"] == mock_lago_client.invoice.number

    def test_download_is_attachment(self, client, mock_lago_client):
        response = client.get("/api/v1/invoices/inv_1/download")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        disposition = response.headers["content-disposition"]
        assert disposition.startswith("attachment;")
        assert f"Invoice_{mock_lago_client.invoice.number}_" in disposition
        assert response.content == mock_lago_client.pdf_bytes

    def test_pdf_is_base64_json(self, client, mock_lago_client):
        response = client.get("/api/v1/invoices/inv_1/pdf")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["invoice_id"] == "inv_1"
        assert data["content_type"] == "application/pdf"
        assert base64.b64decode(data["content"]) == mock_lago_client.pdf_bytes
        assert data["size_bytes"] == len(mock_lago_client.pdf_bytes)
        assert data["generated_at"]
        assert "pdf_content" not in data

    def test_raw_pdf_is_inline(self, client, mock_lago_client):
        response = client.get("/api/v1/invoices/inv_1/pdf/raw")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == "inline"
        assert response.content == mock_lago_client.pdf_bytes

    def test_pdf_for_unknown_invoice_is_404(self, client, mock_lago_client):
        mock_lago_client.set_result(
            "download_invoice_pdf", rejected(404, RejectionReason.NOT_FOUND, "Invoice not found: inv_x")
        )

        response = client.get("/api/v1/invoices/inv_x/pdf")

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_raw_pdf_for_unknown_invoice_is_404(self, client, mock_lago_client):
        mock_lago_client.set_result(
            "download_invoice_pdf", rejected(404, RejectionReason.NOT_FOUND, "Invoice not found: inv_x")
        )

        response = client.get("/api/v1/invoices/inv_x/pdf/raw")

        assert response.status_code == 404
        assert response.json()["message"] == "Failed to download invoice PDF: Invoice not found: inv_x"

    def test_status(self, client):
        response = client.get("/api/v1/invoices/inv_1/status")

        assert response.status_code == 200
        assert response.json()["invoice_status"]["invoice_id"] == "inv_1"

    def test_finalize_and_refresh(self, client):
        assert client.put("/api/v1/invoices/inv_1/finalize").json()["message"] == "Invoice finalized successfully"
        assert client.put("/api/v1/invoices/inv_1/refresh").json()["message"] == "Invoice refreshed successfully"


class TestServiceState:

    def test_uninitialized_service_is_503(self):
        main.app.dependency_overrides.clear()
        response = TestClient(main.app).post("/api/v1/payments", json={"payment": {"invoice_id": "inv_1"}})

        assert response.status_code == 503
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "Billing service not initialized"
        assert "detail" not in data

    def test_health_reports_dependencies(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "billing_service"
        assert set(data["dependencies"]) == {"lago", "nats"}


class TestEventBusStartup:

    @pytest.fixture
    def nats(self, monkeypatch):
        bus = MagicMock()
        bus.create_stream = AsyncMock(return_value=True)
        close = AsyncMock()
        monkeypatch.setattr(main, "get_event_bus", AsyncMock(return_value=bus))
        monkeypatch.setattr(main, "close_event_bus", close)
        return bus, close

    async def test_bus_ready(self, nats):
        bus, close = nats

        assert await main.start_event_bus() is bus
        assert bus.create_stream.call_args.args[0] == "billing-events"
        close.assert_not_awaited()

    async def test_stream_error_releases_connection(self, nats):
        bus, close = nats
        bus.create_stream.side_effect = RuntimeError("jetstream not enabled")

        assert await main.start_event_bus() is None
        close.assert_awaited_once()

    async def test_stream_not_created_releases_connection(self, nats):
        bus, close = nats
        bus.create_stream.return_value = False

        assert await main.start_event_bus() is None
        close.assert_awaited_once()

    async def test_connect_failure(self, monkeypatch):
        close = AsyncMock()
        monkeypatch.setattr(main, "get_event_bus", AsyncMock(side_effect=ConnectionError("no servers")))
        monkeypatch.setattr(main, "close_event_bus", close)

        assert await main.start_event_bus() is None
        close.assert_awaited_once()
