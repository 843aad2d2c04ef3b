"""
Response Assembler

Builds the caller-facing result objects. Every outcome, including failures
at any stage, becomes a well-formed result with ``success`` and ``message``.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional, Type, TypeVar

from .clients.lago_client import GatewayFailure
from .models import (
    CurrentTimeResponse,
    FailedStage,
    Invoice,
    InvoiceStatus,
    OperationResult,
    Payment,
    PaymentResult,
    TimeFormats,
    UsageEventResult,
)
from .translator import TranslatedPayment, TranslatedUsageEvent

R = TypeVar("R", bound=OperationResult)

USAGE_TIMESTAMP_HINT = (
    "Invalid timestamp format. Please use ISO 8601 format "
    "(e.g., '2025-06-11T11:49:02Z') or leave empty for current time"
)
PAID_AT_HINT = "Invalid paid_at format. Please use date format like '2025-02-20' or ISO 8601 format"
DATE_FILTER_HINT = "Invalid date filter. Please use date format like '2025-02-20' or ISO 8601 format"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def succeeded(result_cls: Type[R], message: str, **fields: Any) -> R:
    return result_cls(success=True, message=message, **fields)


def failed(
    result_cls: Type[R],
    stage: FailedStage,
    message: str,
    gateway_failure: Optional[GatewayFailure] = None,
    errors: Optional[List[str]] = None,
    **fields: Any,
) -> R:
    """Failed result naming the stage; gateway failures carry Lago's status"""
    if gateway_failure is not None:
        fields.setdefault("gateway_status", gateway_failure.status_code)
        reason = gateway_failure.reason.value if gateway_failure.reason else gateway_failure.kind.value
        fields.setdefault("gateway_reason", reason)
    return result_cls(
        success=False,
        message=message,
        failed_stage=stage,
        errors=list(errors or []),
        **fields,
    )


def validation_message(errors: List[str]) -> str:
    return "Validation failed: " + "; ".join(errors)


# ====================
# Usage events
# ====================

def usage_event_fields(translated: TranslatedUsageEvent) -> dict:
    return {
        "transaction_id": translated.event.transaction_id,
        "original_timestamp": translated.timestamp.original,
        "converted_timestamp": translated.timestamp.epoch_seconds,
    }


def usage_event_processed(translated: TranslatedUsageEvent) -> UsageEventResult:
    return succeeded(
        UsageEventResult,
        "Event usage processed successfully",
        processed_at=utc_now(),
        **usage_event_fields(translated),
    )


# ====================
# Payments
# ====================

def payment_fields(translated: TranslatedPayment) -> dict:
    return {
        "invoice_id": translated.invoice_id,
        "amount_cents": translated.amount_cents,
        "currency": translated.currency,
        "reference": translated.reference,
        "original_paid_at": translated.paid_at.original,
        "converted_paid_at": translated.paid_at.instant,
    }


def payment_created(translated: TranslatedPayment, payment: Payment) -> PaymentResult:
    return succeeded(
        PaymentResult,
        "Payment created successfully",
        payment_id=payment.id,
        status=payment.status,
        processed_at=utc_now(),
        **payment_fields(translated),
    )


# ====================
# Invoices
# ====================

def invoice_file_name(number: str, now: Optional[datetime] = None) -> str:
    """Invoice_<number>_<YYYYMMDD>.pdf"""
    return f"Invoice_{number}_{(now or utc_now()).strftime('%Y%m%d')}.pdf"


def invoice_status(invoice: Invoice, invoice_id: Optional[str] = None) -> InvoiceStatus:
    return InvoiceStatus(
        invoice_id=invoice_id or invoice.lago_id,
        number=invoice.number,
        status=invoice.status,
        payment_status=invoice.payment_status,
        invoice_type=invoice.invoice_type,
        issuing_date=invoice.issuing_date,
        payment_due_date=invoice.payment_due_date,
        total_amount_cents=invoice.total_amount_cents,
        currency=invoice.currency,
        customer_name=invoice.customer.name,
        customer_email=invoice.customer.email,
        pdf_available=bool(invoice.file_url),
    )


# ====================
# Time reference
# ====================

def time_reference(now: Optional[datetime] = None) -> CurrentTimeResponse:
    """Current UTC time in every layout the timestamp parser accepts"""
    now = (now or utc_now()).astimezone(timezone.utc)
    return CurrentTimeResponse(
        current_time_utc=now,
        formats=TimeFormats(
            date_only=now.strftime("%Y-%m-%d"),
            iso8601_z=now.strftime("%Y-%m-%dT%H:%M:%SZ"),
            iso8601_with_milliseconds=now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z",
            iso8601_no_z=now.strftime("%Y-%m-%dT%H:%M:%S"),
            space_separated=now.strftime("%Y-%m-%d %H:%M:%S"),
            unix_timestamp=int(now.timestamp()),
        ),
    )


__all__ = [
    "USAGE_TIMESTAMP_HINT",
    "PAID_AT_HINT",
    "DATE_FILTER_HINT",
    "utc_now",
    "succeeded",
    "failed",
    "validation_message",
    "usage_event_fields",
    "usage_event_processed",
    "payment_fields",
    "payment_created",
    "invoice_file_name",
    "invoice_status",
    "time_reference",
]
