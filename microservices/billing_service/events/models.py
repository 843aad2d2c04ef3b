"""
Billing Event Data Models

Subjects and payloads of the events published by billing_service.

Event Architecture:
- BillingEventType: Events published by billing_service
- Stream: billing-events (subjects: billing.>), file storage
- Usage events and payments are published as the domain entity itself;
  invoice reads are published as audit records defined here
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Event Type Definitions (Service-Specific)
# =============================================================================

class BillingEventType(str, Enum):
    """
    Events published by billing_service.

    These are the authoritative subjects for this service.
    Other services should reference these when subscribing.
    """
    # Forwarded to Lago
    USAGE_EVENT_PROCESSED = "billing.event.processed"
    PAYMENT_CREATED = "billing.payment.created"

    # Invoice audit
    INVOICES_RETRIEVED = "billing.invoices.retrieved"
    INVOICE_RETRIEVED = "billing.invoice.retrieved"
    INVOICE_DOWNLOADED = "billing.invoice.downloaded"


class BillingStreamConfig:
    """Stream configuration for billing_service"""
    STREAM_NAME = "billing-events"
    SUBJECTS = ["billing.>"]
    MAX_MESSAGES = 100000


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Audit Event Data
# =============================================================================

class InvoicesRetrievedEventData(BaseModel):
    """
    Invoice list read

    NATS Subject: billing.invoices.retrieved
    """
    event_type: str = "InvoicesRetrieved"
    query: Dict[str, Any] = Field(default_factory=dict, description="Filters sent to Lago")
    result_count: int = Field(..., ge=0)
    timestamp: datetime = Field(default_factory=_utc_now)


class InvoiceRetrievedEventData(BaseModel):
    """
    Single invoice read

    NATS Subject: billing.invoice.retrieved
    """
    event_type: str = "InvoiceRetrieved"
    invoice_id: str
    invoice_number: str
    customer_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utc_now)


class InvoiceDownloadedEventData(BaseModel):
    """
    Invoice PDF download

    NATS Subject: billing.invoice.downloaded
    """
    event_type: str = "InvoiceDownloaded"
    invoice_id: str
    invoice_number: str
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    file_size_bytes: int = Field(..., ge=0)
    timestamp: datetime = Field(default_factory=_utc_now)


__all__ = [
    "BillingEventType",
    "BillingStreamConfig",
    "InvoicesRetrievedEventData",
    "InvoiceRetrievedEventData",
    "InvoiceDownloadedEventData",
]
