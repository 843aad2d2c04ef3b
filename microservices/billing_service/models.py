"""
Billing Service Data Models

Inbound requests, the domain entities forwarded to and read back from the
Lago billing engine, the Lago wire shapes, and the caller-facing results.
"""

import base64
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, JsonValue, computed_field


# ====================
# Enums
# ====================

class FailedStage(str, Enum):
    """Pipeline stage that produced a failed result"""
    VALIDATION = "validation"
    TIMESTAMP = "timestamp"
    GATEWAY = "gateway"
    PUBLISH = "publish"
    UNEXPECTED = "unexpected"


class PaymentStatus(str, Enum):
    """Payment statuses reported by Lago (others pass through as plain strings)"""
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# ====================
# Inbound requests
# ====================

class UsageEventData(BaseModel):
    """Usage event as sent by upstream callers"""
    transaction_id: Optional[str] = Field(None, description="Idempotency key, generated when absent")
    external_subscription_id: Optional[str] = Field(None, description="Lago subscription external id")
    code: Optional[str] = Field(None, description="Billable metric code")
    timestamp: Optional[str] = Field(None, description="ISO 8601 or similar; empty means now")
    properties: Dict[str, JsonValue] = Field(default_factory=dict)


class UsageEventRequest(BaseModel):
    """Body of POST /api/v1/billing/event-usage"""
    event: UsageEventData


class PaymentData(BaseModel):
    """Payment as sent by upstream callers"""
    invoice_id: Optional[str] = Field(None, description="Lago invoice id")
    amount_cents: int = Field(0, description="Amount in minor currency units")
    reference: Optional[str] = None
    paid_at: Optional[str] = Field(None, description="Date like 2025-02-20 or ISO 8601; empty means today")
    currency: Optional[str] = Field(None, description="ISO 4217 code, defaults to the configured currency")


class CreatePaymentRequest(BaseModel):
    """Body of POST /api/v1/payments"""
    payment: PaymentData


# ====================
# Domain entities
# ====================

class UsageEvent(BaseModel):
    """A translated usage event; published on billing.event.processed"""
    model_config = ConfigDict(frozen=True)

    transaction_id: str
    external_subscription_id: str
    event_code: str
    occurred_at: datetime
    properties: Dict[str, JsonValue] = Field(default_factory=dict)


class Payment(BaseModel):
    """A payment known to Lago; published on billing.payment.created"""
    model_config = ConfigDict(frozen=True)

    id: str
    invoice_id: str
    amount_cents: int
    currency: str
    reference: Optional[str] = None
    paid_at: Optional[datetime] = None
    status: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def amount_major_units(self) -> Decimal:
        return Decimal(self.amount_cents) / Decimal(100)

    @computed_field
    @property
    def is_successful(self) -> bool:
        return self.status.lower() == PaymentStatus.SUCCEEDED.value


# ====================
# Lago wire models
# ====================

class LagoEventPayload(BaseModel):
    """POST /api/v1/events body (inside the ``event`` envelope)"""
    transaction_id: str
    external_subscription_id: str
    code: str
    timestamp: int = Field(..., description="Unix epoch seconds")
    properties: Dict[str, JsonValue] = Field(default_factory=dict)

    def to_request(self) -> Dict[str, Any]:
        return {"event": self.model_dump(mode="json")}


class LagoPaymentPayload(BaseModel):
    """POST /api/v1/payments body (inside the ``payment`` envelope)"""
    invoice_id: str
    amount_cents: int
    reference: Optional[str] = None
    paid_at: str = Field(..., description="YYYY-MM-DD")

    def to_request(self) -> Dict[str, Any]:
        return {"payment": self.model_dump(mode="json", exclude_none=True)}


class LagoPaymentDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lago_id: str
    lago_invoice_id: Optional[str] = None
    amount_cents: int = 0
    amount_currency: Optional[str] = None
    reference: Optional[str] = None
    status: Optional[str] = None
    paid_at: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LagoPaymentEnvelope(BaseModel):
    payment: LagoPaymentDetails


class PaginationMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current_page: int = 0
    next_page: Optional[int] = None
    prev_page: Optional[int] = None
    total_pages: int = 0
    total_count: int = 0


class LagoPaymentList(BaseModel):
    payments: List[LagoPaymentDetails] = Field(default_factory=list)
    meta: PaginationMeta = Field(default_factory=PaginationMeta)


class InvoiceCustomer(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lago_id: Optional[str] = None
    external_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


class InvoiceSubscription(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lago_id: Optional[str] = None
    external_id: Optional[str] = None
    lago_customer_id: Optional[str] = None
    plan_code: Optional[str] = None


class InvoiceFeeItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None
    code: Optional[str] = None
    name: Optional[str] = None
    invoice_display_name: Optional[str] = None


class InvoiceFee(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lago_id: Optional[str] = None
    lago_group_id: Optional[str] = None
    item: Optional[InvoiceFeeItem] = None
    amount_cents: int = 0
    amount_currency: Optional[str] = None
    taxes_amount_cents: int = 0
    units: Decimal = Decimal("0")
    events_count: int = 0


class Invoice(BaseModel):
    """Read-only projection of a Lago invoice; totals are never derived locally"""
    model_config = ConfigDict(extra="ignore")

    lago_id: str
    sequential_id: Optional[int] = None
    number: str = ""
    issuing_date: Optional[str] = None
    payment_due_date: Optional[str] = None
    net_payment_term: Optional[int] = None
    invoice_type: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    currency: Optional[str] = None
    fees_amount_cents: int = 0
    coupons_amount_cents: int = 0
    taxes_amount_cents: int = 0
    credit_notes_amount_cents: int = 0
    sub_total_excluding_taxes_amount_cents: int = 0
    sub_total_including_taxes_amount_cents: int = 0
    total_amount_cents: int = 0
    prepaid_credit_amount_cents: int = 0
    version_number: Optional[int] = None
    file_url: Optional[str] = None
    customer: InvoiceCustomer = Field(default_factory=InvoiceCustomer)
    subscriptions: List[InvoiceSubscription] = Field(default_factory=list)
    fees: List[InvoiceFee] = Field(default_factory=list)


class InvoiceEnvelope(BaseModel):
    invoice: Invoice


class InvoiceList(BaseModel):
    invoices: List[Invoice] = Field(default_factory=list)
    meta: PaginationMeta = Field(default_factory=PaginationMeta)


# ====================
# Queries
# ====================

class InvoiceQuery(BaseModel):
    """Filters for GET /api/v1/invoices"""
    external_customer_id: Optional[str] = None
    external_subscription_id: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    issuing_date_from: Optional[date] = None
    issuing_date_to: Optional[date] = None
    page: int = 1
    per_page: int = 20

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        for name in ("external_customer_id", "external_subscription_id", "status", "payment_status"):
            value = getattr(self, name)
            if value and value.strip():
                params[name] = value
        if self.issuing_date_from:
            params["issuing_date_from"] = self.issuing_date_from.isoformat()
        if self.issuing_date_to:
            params["issuing_date_to"] = self.issuing_date_to.isoformat()
        params["page"] = self.page
        params["per_page"] = self.per_page
        return params


class PaymentListQuery(BaseModel):
    """Filters for GET /api/v1/payments; status and dates are applied locally"""
    page: int = 1
    page_size: int = 20
    invoice_id: Optional[str] = None
    status: Optional[str] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": self.page, "per_page": self.page_size}
        if self.invoice_id:
            params["invoice_id"] = self.invoice_id
        return params


# ====================
# Results
# ====================

class OperationResult(BaseModel):
    """Fields shared by every caller-facing result"""
    success: bool
    message: str
    failed_stage: Optional[FailedStage] = None
    gateway_status: Optional[int] = Field(None, description="HTTP status returned by Lago on failure")
    gateway_reason: Optional[str] = None
    errors: List[str] = Field(default_factory=list)


class UsageEventResult(OperationResult):
    transaction_id: Optional[str] = None
    processed_at: datetime
    original_timestamp: Optional[str] = None
    converted_timestamp: Optional[int] = Field(None, description="Unix epoch seconds sent to Lago")


class PaymentResult(OperationResult):
    payment_id: Optional[str] = None
    invoice_id: Optional[str] = None
    amount_cents: int = 0
    currency: Optional[str] = None
    reference: Optional[str] = None
    status: Optional[str] = None
    processed_at: datetime
    original_paid_at: Optional[str] = None
    converted_paid_at: Optional[datetime] = None


class RetrievePaymentResult(OperationResult):
    payment: Optional[Payment] = None


class PaymentListResult(OperationResult):
    payments: List[Payment] = Field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 20


class InvoiceListResult(OperationResult):
    invoices: List[Invoice] = Field(default_factory=list)
    meta: Optional[PaginationMeta] = None


class InvoiceResult(OperationResult):
    invoice: Optional[Invoice] = None


class InvoiceDownload(BaseModel):
    invoice_id: str
    number: str
    customer_name: Optional[str] = None
    content_type: str = "application/pdf"
    file_name: str
    pdf_content: bytes = Field(default=b"", exclude=True)

    @computed_field
    @property
    def size_bytes(self) -> int:
        return len(self.pdf_content)


class InvoiceDownloadResult(OperationResult):
    download: Optional[InvoiceDownload] = None


class InvoicePdfResult(OperationResult):
    """PDF for API consumers; the JSON form carries the bytes base64 encoded"""
    invoice_id: str
    content_type: str = "application/pdf"
    generated_at: Optional[datetime] = None
    pdf_content: bytes = Field(default=b"", exclude=True)

    @computed_field
    @property
    def content(self) -> str:
        return base64.b64encode(self.pdf_content).decode("ascii")

    @computed_field
    @property
    def size_bytes(self) -> int:
        return len(self.pdf_content)


class InvoiceStatus(BaseModel):
    invoice_id: str
    number: str
    status: Optional[str] = None
    payment_status: Optional[str] = None
    invoice_type: Optional[str] = None
    issuing_date: Optional[str] = None
    payment_due_date: Optional[str] = None
    total_amount_cents: int = 0
    currency: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    pdf_available: bool = False


class InvoiceStatusResult(OperationResult):
    invoice_status: Optional[InvoiceStatus] = None


# ====================
# Service endpoints
# ====================

class TimeFormats(BaseModel):
    date_only: str
    iso8601_z: str
    iso8601_with_milliseconds: str
    iso8601_no_z: str
    space_separated: str
    unix_timestamp: int


class CurrentTimeResponse(BaseModel):
    current_time_utc: datetime
    formats: TimeFormats
    note: str = "Use date_only for paid_at, or any ISO 8601 format"


class HealthResponse(BaseModel):
    status: str
    service: str
    port: int
    version: str
    dependencies: Dict[str, str] = Field(default_factory=dict)
