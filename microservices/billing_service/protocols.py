"""
Billing Service Protocols

Defines interfaces for dependency injection and testing.
Following the protocol-based architecture pattern.
"""

from typing import TYPE_CHECKING, Any, List, Optional, Protocol

from .models import (
    InvoiceQuery,
    LagoEventPayload,
    LagoPaymentPayload,
    PaymentListQuery,
)

if TYPE_CHECKING:
    from .clients.lago_client import GatewayResult


# ====================
# Billing Gateway Protocol
# ====================


class LagoClientProtocol(Protocol):
    """Protocol for the external billing engine client"""

    async def send_usage_event(self, payload: LagoEventPayload) -> "GatewayResult":
        """POST /api/v1/events"""
        ...

    async def create_payment(self, payload: LagoPaymentPayload) -> "GatewayResult":
        """POST /api/v1/payments"""
        ...

    async def retrieve_payment(self, payment_id: str) -> "GatewayResult":
        """GET /api/v1/payments/{id}"""
        ...

    async def list_payments(self, query: PaymentListQuery) -> "GatewayResult":
        """GET /api/v1/payments"""
        ...

    async def list_invoices(self, query: InvoiceQuery) -> "GatewayResult":
        """GET /api/v1/invoices"""
        ...

    async def get_invoice(self, invoice_id: str) -> "GatewayResult":
        """GET /api/v1/invoices/{id}"""
        ...

    async def download_invoice_pdf(self, invoice_id: str) -> "GatewayResult":
        """GET /api/v1/invoices/{id}/download"""
        ...

    async def finalize_invoice(self, invoice_id: str) -> "GatewayResult":
        """PUT /api/v1/invoices/{id}/finalize"""
        ...

    async def refresh_invoice(self, invoice_id: str) -> "GatewayResult":
        """PUT /api/v1/invoices/{id}/refresh"""
        ...

    async def close(self) -> None:
        """Close the HTTP connection pool"""
        ...


# ====================
# Event Bus Protocol
# ====================


class EventBusProtocol(Protocol):
    """Protocol for event bus operations"""

    async def publish_event(self, event: Any) -> bool:
        """Publish an event and wait for the broker acknowledgement"""
        ...

    async def close(self) -> None:
        """Close event bus connection"""
        ...


# ====================
# Custom Exceptions (no I/O operations)
# ====================


class BillingServiceError(Exception):
    """Base exception for billing service errors"""

    pass


class BillingValidationError(BillingServiceError):
    """Raised when caller input is malformed or incomplete"""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class TimestampFormatError(BillingServiceError):
    """Raised when a timestamp or date string matches no supported format"""

    def __init__(self, value: str, kind: Optional[str] = None):
        super().__init__(f"Unrecognized {kind or 'timestamp'} format: {value!r}")
        self.value = value
        self.kind = kind


__all__ = [
    "LagoClientProtocol",
    "EventBusProtocol",
    "BillingServiceError",
    "BillingValidationError",
    "TimestampFormatError",
]
