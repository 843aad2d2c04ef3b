"""
Billing Service Events

Event models, subjects and publishers of billing_service
"""

# Models
from .models import (
    BillingEventType,
    BillingStreamConfig,
    InvoiceDownloadedEventData,
    InvoiceRetrievedEventData,
    InvoicesRetrievedEventData,
)

# Publishers
from .publishers import (
    publish_invoice_downloaded,
    publish_invoice_retrieved,
    publish_invoices_retrieved,
    publish_payment_created,
    publish_usage_event_processed,
)

__all__ = [
    # Models
    "BillingEventType",
    "BillingStreamConfig",
    "InvoicesRetrievedEventData",
    "InvoiceRetrievedEventData",
    "InvoiceDownloadedEventData",
    # Publishers
    "publish_usage_event_processed",
    "publish_payment_created",
    "publish_invoices_retrieved",
    "publish_invoice_retrieved",
    "publish_invoice_downloaded",
]
