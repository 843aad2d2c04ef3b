"""
Request Translator

Maps inbound usage/payment/invoice requests onto the Lago wire shapes and
maps Lago payment records back onto the Payment entity. Pure: nothing here
touches the network, and inputs are never mutated.
"""

import copy
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Union

from .models import (
    CreatePaymentRequest,
    InvoiceQuery,
    LagoEventPayload,
    LagoPaymentDetails,
    LagoPaymentPayload,
    Payment,
    PaymentData,
    PaymentListQuery,
    UsageEvent,
    UsageEventData,
    UsageEventRequest,
)
from .protocols import BillingValidationError, TimestampFormatError
from .temporal import NormalizedTime, TemporalKind, normalize

TRANSACTION_ID_PREFIX = "tx_"

MAX_PER_PAGE = 100
DEFAULT_PAGE_SIZE = 20


@dataclass(frozen=True)
class TranslatedUsageEvent:
    event: UsageEvent
    payload: LagoEventPayload
    timestamp: NormalizedTime
    generated_transaction_id: bool


@dataclass(frozen=True)
class TranslatedPayment:
    payload: LagoPaymentPayload
    invoice_id: str
    amount_cents: int
    currency: str
    reference: Optional[str]
    paid_at: NormalizedTime


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def generate_transaction_id() -> str:
    """tx_ followed by 32 lowercase hex characters"""
    return f"{TRANSACTION_ID_PREFIX}{uuid.uuid4().hex}"


# ====================
# Usage events
# ====================

def validate_usage_event(data: UsageEventData) -> List[str]:
    errors = []
    if _blank(data.external_subscription_id):
        errors.append("external_subscription_id is required")
    if _blank(data.code):
        errors.append("code is required")
    return errors


def translate_usage_event(
    request: Union[UsageEventRequest, UsageEventData],
    now: Optional[datetime] = None,
) -> TranslatedUsageEvent:
    """
    Validate a usage event and build the Lago payload.

    Raises:
        BillingValidationError: every missing required field
        TimestampFormatError: unparseable timestamp
    """
    data = request.event if isinstance(request, UsageEventRequest) else request

    errors = validate_usage_event(data)
    if errors:
        raise BillingValidationError(errors)

    timestamp = normalize(data.timestamp, TemporalKind.INSTANT, now)

    generated = _blank(data.transaction_id)
    transaction_id = generate_transaction_id() if generated else data.transaction_id.strip()
    properties = copy.deepcopy(data.properties)

    event = UsageEvent(
        transaction_id=transaction_id,
        external_subscription_id=data.external_subscription_id.strip(),
        event_code=data.code.strip(),
        occurred_at=timestamp.instant,
        properties=properties,
    )
    payload = LagoEventPayload(
        transaction_id=event.transaction_id,
        external_subscription_id=event.external_subscription_id,
        code=event.event_code,
        timestamp=timestamp.epoch_seconds,
        properties=copy.deepcopy(properties),
    )
    return TranslatedUsageEvent(
        event=event,
        payload=payload,
        timestamp=timestamp,
        generated_transaction_id=generated,
    )


# ====================
# Payments
# ====================

def validate_payment(data: PaymentData) -> List[str]:
    errors = []
    if _blank(data.invoice_id):
        errors.append("invoice_id is required")
    if data.amount_cents <= 0:
        errors.append("amount_cents must be greater than 0")
    if not _blank(data.currency):
        code = data.currency.strip()
        if len(code) != 3:
            errors.append("currency must be exactly 3 characters")
    return errors


def translate_payment(
    request: Union[CreatePaymentRequest, PaymentData],
    default_currency: str = "MWK",
    now: Optional[datetime] = None,
) -> TranslatedPayment:
    """
    Validate a payment and build the Lago payload.

    Raises:
        BillingValidationError: every violated field rule
        TimestampFormatError: unparseable paid_at
    """
    data = request.payment if isinstance(request, CreatePaymentRequest) else request

    errors = validate_payment(data)
    if errors:
        raise BillingValidationError(errors)

    paid_at = normalize(data.paid_at, TemporalKind.DATE, now)
    currency = (default_currency if _blank(data.currency) else data.currency).strip().upper()
    reference = None if _blank(data.reference) else data.reference

    payload = LagoPaymentPayload(
        invoice_id=data.invoice_id.strip(),
        amount_cents=data.amount_cents,
        reference=reference,
        paid_at=paid_at.date_string,
    )
    return TranslatedPayment(
        payload=payload,
        invoice_id=payload.invoice_id,
        amount_cents=payload.amount_cents,
        currency=currency,
        reference=reference,
        paid_at=paid_at,
    )


def _lago_paid_at(value: Optional[str]) -> Optional[datetime]:
    if _blank(value):
        return None
    try:
        return normalize(value, TemporalKind.INSTANT).instant
    except TimestampFormatError:
        return None


def payment_from_lago(details: LagoPaymentDetails) -> Payment:
    """Project a Lago payment record onto the Payment entity"""
    return Payment(
        id=details.lago_id,
        invoice_id=details.lago_invoice_id or "",
        amount_cents=details.amount_cents,
        currency=details.amount_currency or "",
        reference=details.reference,
        paid_at=_lago_paid_at(details.paid_at),
        status=details.status or "",
        created_at=details.created_at,
        updated_at=details.updated_at,
    )


def payment_from_created(
    translated: TranslatedPayment,
    details: LagoPaymentDetails,
    now: Optional[datetime] = None,
) -> Payment:
    """Payment entity for a payment Lago just accepted"""
    return Payment(
        id=details.lago_id,
        invoice_id=translated.invoice_id,
        amount_cents=translated.amount_cents,
        currency=translated.currency,
        reference=translated.reference,
        paid_at=translated.paid_at.instant,
        status=details.status or "",
        created_at=details.created_at or now or datetime.now(timezone.utc),
        updated_at=details.updated_at,
    )


# ====================
# Queries
# ====================

def _optional_date(value: Optional[str], kind: TemporalKind) -> Optional[NormalizedTime]:
    if _blank(value):
        return None
    return normalize(value, kind)


def translate_invoice_query(
    external_customer_id: Optional[str] = None,
    external_subscription_id: Optional[str] = None,
    status: Optional[str] = None,
    payment_status: Optional[str] = None,
    issuing_date_from: Optional[str] = None,
    issuing_date_to: Optional[str] = None,
    page: int = 1,
    per_page: int = DEFAULT_PAGE_SIZE,
) -> InvoiceQuery:
    """
    Build invoice filters; page >= 1, per_page in [1, 100].

    Raises:
        TimestampFormatError: unparseable issuing date
    """
    date_from = _optional_date(issuing_date_from, TemporalKind.DATE)
    date_to = _optional_date(issuing_date_to, TemporalKind.DATE)
    return InvoiceQuery(
        external_customer_id=external_customer_id,
        external_subscription_id=external_subscription_id,
        status=status,
        payment_status=payment_status,
        issuing_date_from=date_from.instant.date() if date_from else None,
        issuing_date_to=date_to.instant.date() if date_to else None,
        page=max(1, page),
        per_page=min(max(1, per_page), MAX_PER_PAGE),
    )


def translate_payment_query(
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    invoice_id: Optional[str] = None,
    status: Optional[str] = None,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
) -> PaymentListQuery:
    """
    Build payment list filters; page < 1 -> 1, page_size < 1 -> 20, > 100 -> 100.

    Raises:
        TimestampFormatError: unparseable from/to date
    """
    if page_size < 1:
        page_size = DEFAULT_PAGE_SIZE
    start = _optional_date(from_date, TemporalKind.INSTANT)
    end = _optional_date(to_date, TemporalKind.INSTANT)
    return PaymentListQuery(
        page=max(1, page),
        page_size=min(page_size, MAX_PER_PAGE),
        invoice_id=None if _blank(invoice_id) else invoice_id.strip(),
        status=None if _blank(status) else status.strip(),
        from_date=start.instant if start else None,
        to_date=end.instant if end else None,
    )


def filter_payments(payments: List[Payment], query: PaymentListQuery) -> List[Payment]:
    """Filters Lago does not apply server side"""
    result = payments
    if query.from_date is not None:
        result = [p for p in result if p.paid_at is not None and p.paid_at >= query.from_date]
    if query.to_date is not None:
        result = [p for p in result if p.paid_at is not None and p.paid_at <= query.to_date]
    if query.status:
        wanted = query.status.lower()
        result = [p for p in result if p.status.lower() == wanted]
    return result


__all__ = [
    "TRANSACTION_ID_PREFIX",
    "TranslatedUsageEvent",
    "TranslatedPayment",
    "generate_transaction_id",
    "validate_usage_event",
    "translate_usage_event",
    "validate_payment",
    "translate_payment",
    "payment_from_lago",
    "payment_from_created",
    "translate_invoice_query",
    "translate_payment_query",
    "filter_payments",
]
