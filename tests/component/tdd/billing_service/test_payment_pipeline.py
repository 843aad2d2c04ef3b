"""
TDD Test: Payment Pipeline

create (validate -> normalize paid_at -> Lago -> billing.payment.created),
retrieve and list. Reads never publish.
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from microservices.billing_service.clients.lago_client import GatewaySuccess, RejectionReason
from microservices.billing_service.events.models import BillingEventType
from microservices.billing_service.models import FailedStage, LagoPaymentList
from microservices.billing_service.translator import translate_payment_query

from tests.component.tdd.billing_service.mocks import rejected, unavailable

pytestmark = [pytest.mark.component, pytest.mark.asyncio]

CREATED = BillingEventType.PAYMENT_CREATED.value


class TestCreatePayment:

    async def test_payment_created_and_published(self, payment_service, mock_lago_client, mock_event_bus, factory):
        request = factory.make_create_payment_request(amount_cents=150000, paid_at="2025-02-20T14:30:00Z")

        result = await payment_service.create_payment(request)

        assert result.success is True
        assert result.message == "Payment created successfully"
        assert result.payment_id is not None
        assert result.invoice_id == request.payment.invoice_id
        assert result.amount_cents == 150000
        assert result.currency == "MWK"
        assert result.original_paid_at == "2025-02-20T14:30:00Z"
        assert result.converted_paid_at == datetime(2025, 2, 20, 14, 30, tzinfo=timezone.utc)

        payload = mock_lago_client.last_call("create_payment")
        assert payload.paid_at == "2025-02-20"
        assert payload.to_request()["payment"]["amount_cents"] == 150000

        event = mock_event_bus.assert_event_published(CREATED, {"id": result.payment_id})
        assert event["data"]["amount_cents"] == 150000
        assert Decimal(event["data"]["amount_major_units"]) == Decimal("1500")

    async def test_empty_paid_at_is_today(self, payment_service, mock_lago_client, factory):
        now = datetime(2025, 7, 4, 22, 15, tzinfo=timezone.utc)

        result = await payment_service.create_payment(
            factory.make_create_payment_request(paid_at=None), now=now
        )

        assert result.success is True
        assert mock_lago_client.last_call("create_payment").paid_at == "2025-07-04"
        assert result.converted_paid_at == datetime(2025, 7, 4, tzinfo=timezone.utc)

    async def test_explicit_currency_is_upper_cased(self, payment_service, factory):
        result = await payment_service.create_payment(factory.make_create_payment_request(currency="usd"))

        assert result.success is True
        assert result.currency == "USD"

    async def test_reference_omitted_when_empty(self, payment_service, mock_lago_client, factory):
        await payment_service.create_payment(factory.make_create_payment_request(reference=""))

        body = mock_lago_client.last_call("create_payment").to_request()["payment"]
        assert "reference" not in body


class TestCreatePaymentRejected:

    async def test_non_positive_amount(self, payment_service, mock_lago_client, mock_event_bus, factory, assertions):
        for amount in factory.make_invalid_amounts():
            result = await payment_service.create_payment(
                factory.make_create_payment_request(amount_cents=amount)
            )

            assertions.assert_failed_at(result, "validation")
            assert "amount" in result.message

        assert mock_lago_client.call_count() == 0
        mock_event_bus.assert_no_events_published()

    async def test_all_violations_reported(self, payment_service, factory):
        result = await payment_service.create_payment(
            factory.make_create_payment_request(invoice_id=" ", amount_cents=0, currency="MWKK")
        )

        assert result.failed_stage == FailedStage.VALIDATION
        assert result.errors == [
            "invoice_id is required",
            "amount_cents must be greater than 0",
            "currency must be exactly 3 characters",
        ]

    async def test_unparseable_paid_at(self, payment_service, mock_lago_client, factory, assertions):
        result = await payment_service.create_payment(
            factory.make_create_payment_request(paid_at="yesterday")
        )

        assertions.assert_failed_at(result, "timestamp")
        assert "Invalid paid_at format" in result.message
        assert result.original_paid_at == "yesterday"
        assert mock_lago_client.call_count() == 0

    async def test_unknown_invoice(self, payment_service, mock_lago_client, mock_event_bus, factory, assertions):
        mock_lago_client.set_result(
            "create_payment",
            rejected(404, RejectionReason.NOT_FOUND, "Not Found - Invoice may not exist"),
        )

        result = await payment_service.create_payment(factory.make_create_payment_request())

        assertions.assert_failed_at(result, "gateway")
        assert "not found" in result.message.lower()
        assert result.gateway_status == 404
        assert result.payment_id is None
        mock_event_bus.assert_no_events_published()

    async def test_unprocessable_entity(self, payment_service, mock_lago_client, factory):
        mock_lago_client.set_result(
            "create_payment",
            rejected(422, RejectionReason.UNPROCESSABLE_ENTITY, "Unprocessable Entity"),
        )

        result = await payment_service.create_payment(factory.make_create_payment_request())

        assert result.failed_stage == FailedStage.GATEWAY
        assert result.gateway_reason == "unprocessable_entity"


class TestCreatePaymentPublishFailure:

    async def test_payment_exists_but_publish_failed(self, payment_service, mock_lago_client, mock_event_bus, factory, assertions):
        mock_event_bus.set_ack(False)

        result = await payment_service.create_payment(factory.make_create_payment_request())

        assertions.assert_failed_at(result, "publish")
        assert mock_lago_client.call_count("create_payment") == 1
        assert result.payment_id is not None
        assert result.payment_id in result.message


class TestRetrievePayment:

    async def test_payment_found(self, payment_service, mock_lago_client, mock_event_bus):
        result = await payment_service.retrieve_payment("pay_123")

        assert result.success is True
        assert result.payment.id == "pay_123"
        assert result.payment.is_successful is True
        mock_event_bus.assert_no_events_published()

    async def test_payment_not_found(self, payment_service, mock_lago_client, assertions):
        mock_lago_client.set_result(
            "retrieve_payment",
            rejected(404, RejectionReason.NOT_FOUND, "Payment not found: pay_missing"),
        )

        result = await payment_service.retrieve_payment("pay_missing")

        assertions.assert_failed_at(result, "gateway")
        assert result.message == "Payment not found: pay_missing"
        assert result.payment is None

    async def test_blank_payment_id(self, payment_service, mock_lago_client, assertions):
        result = await payment_service.retrieve_payment("  ")

        assertions.assert_failed_at(result, "validation")
        assert mock_lago_client.call_count() == 0


class TestListPayments:

    async def test_list_returns_page(self, payment_service, mock_lago_client, mock_event_bus):
        query = translate_payment_query(page=2, page_size=10)

        result = await payment_service.list_payments(query)

        assert result.success is True
        assert len(result.payments) == 3
        assert result.total_count == 3
        assert result.page == 2
        assert result.page_size == 10
        mock_event_bus.assert_no_events_published()

    async def test_status_and_date_filters_applied(self, payment_service, mock_lago_client, factory):
        mock_lago_client.set_result("list_payments", GatewaySuccess(payload=_payment_list(factory)))
        query = translate_payment_query(status="SUCCEEDED", from_date="2025-02-01", to_date="2025-02-28")

        result = await payment_service.list_payments(query)

        assert result.success is True
        assert [p.id for p in result.payments] == ["pay_feb_ok"]
        assert result.total_count == 3

    async def test_lago_down(self, payment_service, mock_lago_client, assertions):
        mock_lago_client.set_result("list_payments", unavailable())

        result = await payment_service.list_payments(translate_payment_query())

        assertions.assert_failed_at(result, "gateway")
        assert result.payments == []


def _payment_list(factory):
    return LagoPaymentList.model_validate(
        factory.make_lago_payment_list_json([
            factory.make_lago_payment_json(lago_id="pay_feb_ok", status="succeeded", paid_at="2025-02-10T10:00:00Z"),
            factory.make_lago_payment_json(lago_id="pay_feb_failed", status="failed", paid_at="2025-02-11T10:00:00Z"),
            factory.make_lago_payment_json(lago_id="pay_mar_ok", status="succeeded", paid_at="2025-03-02T10:00:00Z"),
        ])
    )
