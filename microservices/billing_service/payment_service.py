"""
Payment Service Business Logic

Creates payments in Lago (publishing billing.payment.created on success) and
reads them back. Reads never publish and nothing is cached locally.
"""

import logging
from datetime import datetime
from typing import Optional

from . import assembler
from .events.publishers import publish_payment_created
from .models import (
    CreatePaymentRequest,
    FailedStage,
    PaymentListQuery,
    PaymentListResult,
    PaymentResult,
    RetrievePaymentResult,
)
from .protocols import (
    BillingValidationError,
    EventBusProtocol,
    LagoClientProtocol,
    TimestampFormatError,
)
from .translator import (
    filter_payments,
    payment_from_created,
    payment_from_lago,
    translate_payment,
)

logger = logging.getLogger(__name__)


class PaymentService:
    """Payment pipeline against Lago"""

    def __init__(
        self,
        lago_client: LagoClientProtocol,
        event_bus: Optional[EventBusProtocol] = None,
        default_currency: str = "MWK",
    ):
        self.lago_client = lago_client
        self.event_bus = event_bus
        self.default_currency = default_currency

    async def create_payment(
        self,
        request: CreatePaymentRequest,
        now: Optional[datetime] = None,
    ) -> PaymentResult:
        """
        Record a payment against a Lago invoice

        The payment is not rolled back in Lago when publishing fails; the
        result then reports success=False with failed_stage=publish.
        """
        data = request.payment

        try:
            logger.info(
                f"Processing payment creation for invoice: {data.invoice_id}, amount: {data.amount_cents}"
            )

            try:
                translated = translate_payment(request, self.default_currency, now=now)
            except BillingValidationError as e:
                logger.warning(f"Rejected payment: {e}")
                return assembler.failed(
                    PaymentResult,
                    FailedStage.VALIDATION,
                    assembler.validation_message(e.errors),
                    errors=e.errors,
                    invoice_id=data.invoice_id,
                    processed_at=assembler.utc_now(),
                    original_paid_at=data.paid_at,
                )
            except TimestampFormatError as e:
                logger.error(f"Invalid paid_at format: {e.value!r}")
                return assembler.failed(
                    PaymentResult,
                    FailedStage.TIMESTAMP,
                    assembler.PAID_AT_HINT,
                    errors=[str(e)],
                    invoice_id=data.invoice_id,
                    processed_at=assembler.utc_now(),
                    original_paid_at=data.paid_at,
                )

            logger.info(
                f"Converted paid_at from '{data.paid_at or 'current date'}' to {translated.paid_at.date_string}"
            )

            outcome = await self.lago_client.create_payment(translated.payload)
            if not outcome.ok:
                logger.error(
                    f"Failed to create payment in Lago for invoice: {translated.invoice_id}. "
                    f"Error: {outcome.message}"
                )
                return assembler.failed(
                    PaymentResult,
                    FailedStage.GATEWAY,
                    f"Failed to create payment: {outcome.message}",
                    gateway_failure=outcome,
                    processed_at=assembler.utc_now(),
                    **assembler.payment_fields(translated),
                )

            payment = payment_from_created(translated, outcome.payload)

            if not await publish_payment_created(self.event_bus, payment):
                return assembler.failed(
                    PaymentResult,
                    FailedStage.PUBLISH,
                    f"Payment {payment.id} created in Lago but the billing.payment.created event was not published",
                    payment_id=payment.id,
                    status=payment.status,
                    processed_at=assembler.utc_now(),
                    **assembler.payment_fields(translated),
                )

            logger.info(
                f"Payment created successfully. Payment ID: {payment.id}, Invoice ID: {payment.invoice_id}"
            )
            return assembler.payment_created(translated, payment)

        except Exception as e:
            logger.error(f"Error processing payment creation for invoice: {data.invoice_id}: {e}", exc_info=True)
            return assembler.failed(
                PaymentResult,
                FailedStage.UNEXPECTED,
                f"Error processing payment creation: {e}",
                invoice_id=data.invoice_id,
                processed_at=assembler.utc_now(),
                original_paid_at=data.paid_at,
            )

    async def retrieve_payment(self, payment_id: str) -> RetrievePaymentResult:
        """Fetch one payment from Lago"""
        try:
            if not payment_id or not payment_id.strip():
                return assembler.failed(
                    RetrievePaymentResult,
                    FailedStage.VALIDATION,
                    "Payment ID is required",
                    errors=["payment_id is required"],
                )

            logger.info(f"Retrieving payment: {payment_id}")
            outcome = await self.lago_client.retrieve_payment(payment_id)
            if not outcome.ok:
                logger.warning(f"Payment not found or failed to retrieve: {payment_id}. Error: {outcome.message}")
                message = (
                    f"Payment not found: {payment_id}"
                    if outcome.not_found
                    else f"Failed to retrieve payment: {outcome.message}"
                )
                return assembler.failed(
                    RetrievePaymentResult,
                    FailedStage.GATEWAY,
                    message,
                    gateway_failure=outcome,
                )

            logger.info(f"Payment retrieved successfully: {payment_id}")
            return assembler.succeeded(
                RetrievePaymentResult,
                "Payment retrieved successfully",
                payment=payment_from_lago(outcome.payload),
            )

        except Exception as e:
            logger.error(f"Error retrieving payment: {payment_id}: {e}", exc_info=True)
            return assembler.failed(
                RetrievePaymentResult,
                FailedStage.UNEXPECTED,
                f"Error retrieving payment: {e}",
            )

    async def list_payments(self, query: PaymentListQuery) -> PaymentListResult:
        """
        List payments; Lago filters by invoice, the status and paid_at
        filters are applied to the returned page
        """
        page_fields = {"page": query.page, "page_size": query.page_size}
        try:
            logger.info(
                f"Listing payments: Page={query.page}, PageSize={query.page_size}, InvoiceId={query.invoice_id}"
            )
            outcome = await self.lago_client.list_payments(query)
            if not outcome.ok:
                logger.error(f"Failed to list payments. Error: {outcome.message}")
                return assembler.failed(
                    PaymentListResult,
                    FailedStage.GATEWAY,
                    f"Failed to retrieve payments: {outcome.message}",
                    gateway_failure=outcome,
                    **page_fields,
                )

            payments = filter_payments(
                [payment_from_lago(p) for p in outcome.payload.payments],
                query,
            )
            logger.info(f"Retrieved {len(payments)} payments")
            return assembler.succeeded(
                PaymentListResult,
                "Payments retrieved successfully",
                payments=payments,
                total_count=outcome.payload.meta.total_count,
                **page_fields,
            )

        except Exception as e:
            logger.error(f"Error listing payments: {e}", exc_info=True)
            return assembler.failed(
                PaymentListResult,
                FailedStage.UNEXPECTED,
                f"Error listing payments: {e}",
                **page_fields,
            )


__all__ = ["PaymentService"]
