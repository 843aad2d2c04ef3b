"""
Billing Event Publishers

Publish the events produced by billing_service. Each publisher sends one
message and waits for the JetStream acknowledgement; the return value tells
the caller whether the event was durably recorded.
"""

import logging
from typing import Optional

from core.nats_client import Event, ServiceSource

from ..models import Invoice, InvoiceQuery, Payment, UsageEvent
from .models import (
    BillingEventType,
    InvoiceDownloadedEventData,
    InvoiceRetrievedEventData,
    InvoicesRetrievedEventData,
)

logger = logging.getLogger(__name__)


async def _publish(event_bus, event_type: BillingEventType, data: dict, key: str) -> bool:
    if event_bus is None:
        logger.error(f"❌ No event bus available, {event_type.value} not published for {key}")
        return False

    event = Event(
        event_type=event_type,
        source=ServiceSource.BILLING_SERVICE,
        data=data,
    )
    result = await event_bus.publish_event(event)

    if result:
        logger.info(f"✅ Published {event_type.value} event for {key}")
    else:
        logger.error(f"❌ Failed to publish {event_type.value} event for {key}")
    return bool(result)


async def publish_usage_event_processed(event_bus, usage_event: UsageEvent) -> bool:
    """
    Publish a usage event Lago accepted

    Args:
        event_bus: Event bus instance
        usage_event: The translated usage event

    Returns:
        bool: Whether the broker acknowledged the event
    """
    try:
        return await _publish(
            event_bus,
            BillingEventType.USAGE_EVENT_PROCESSED,
            usage_event.model_dump(mode="json"),
            usage_event.transaction_id,
        )
    except Exception as e:
        logger.error(f"Error publishing usage event {usage_event.transaction_id}: {e}", exc_info=True)
        return False


async def publish_payment_created(event_bus, payment: Payment) -> bool:
    """
    Publish a payment Lago created

    Args:
        event_bus: Event bus instance
        payment: Payment entity built from the Lago response

    Returns:
        bool: Whether the broker acknowledged the event
    """
    try:
        return await _publish(
            event_bus,
            BillingEventType.PAYMENT_CREATED,
            payment.model_dump(mode="json"),
            payment.id,
        )
    except Exception as e:
        logger.error(f"Error publishing payment {payment.id}: {e}", exc_info=True)
        return False


async def publish_invoices_retrieved(event_bus, query: InvoiceQuery, result_count: int) -> bool:
    try:
        data = InvoicesRetrievedEventData(
            query=query.model_dump(mode="json"),
            result_count=result_count,
        )
        return await _publish(
            event_bus,
            BillingEventType.INVOICES_RETRIEVED,
            data.model_dump(mode="json"),
            f"{result_count} invoices",
        )
    except Exception as e:
        logger.error(f"Error publishing invoices retrieved event: {e}", exc_info=True)
        return False


async def publish_invoice_retrieved(event_bus, invoice: Invoice) -> bool:
    try:
        data = InvoiceRetrievedEventData(
            invoice_id=invoice.lago_id,
            invoice_number=invoice.number,
            customer_id=invoice.customer.external_id,
        )
        return await _publish(
            event_bus,
            BillingEventType.INVOICE_RETRIEVED,
            data.model_dump(mode="json"),
            invoice.lago_id,
        )
    except Exception as e:
        logger.error(f"Error publishing invoice retrieved event for {invoice.lago_id}: {e}", exc_info=True)
        return False


async def publish_invoice_downloaded(
    event_bus,
    invoice: Invoice,
    file_size_bytes: int,
    invoice_id: Optional[str] = None,
) -> bool:
    invoice_id = invoice_id or invoice.lago_id
    try:
        data = InvoiceDownloadedEventData(
            invoice_id=invoice_id,
            invoice_number=invoice.number,
            customer_id=invoice.customer.external_id,
            customer_name=invoice.customer.name,
            file_size_bytes=file_size_bytes,
        )
        return await _publish(
            event_bus,
            BillingEventType.INVOICE_DOWNLOADED,
            data.model_dump(mode="json"),
            invoice_id,
        )
    except Exception as e:
        logger.error(f"Error publishing invoice downloaded event for {invoice_id}: {e}", exc_info=True)
        return False


__all__ = [
    "publish_usage_event_processed",
    "publish_payment_created",
    "publish_invoices_retrieved",
    "publish_invoice_retrieved",
    "publish_invoice_downloaded",
]
