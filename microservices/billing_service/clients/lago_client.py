"""
Lago Client for Billing Service

HTTP client for the Lago billing engine. Every call is a single round trip
and returns a GatewaySuccess or a GatewayFailure; nothing is retried and
engine rejections, transport problems and unreadable bodies stay distinct.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

import httpx

from core.config.gateway_config import GatewayConfig
from core.service_client_base import BaseServiceClient

from ..models import (
    InvoiceEnvelope,
    InvoiceList,
    InvoiceQuery,
    LagoEventPayload,
    LagoPaymentEnvelope,
    LagoPaymentList,
    LagoPaymentPayload,
    PaymentListQuery,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GatewayFailureKind(str, Enum):
    REJECTED = "rejected"                  # Lago answered with a non-2xx status
    UNAVAILABLE = "unavailable"            # connection error or timeout
    INVALID_RESPONSE = "invalid_response"  # 2xx with a body we cannot read


class RejectionReason(str, Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    UNPROCESSABLE_ENTITY = "unprocessable_entity"
    NOT_FOUND = "not_found"
    OTHER = "other"


@dataclass(frozen=True)
class GatewaySuccess(Generic[T]):
    payload: T
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class GatewayFailure:
    kind: GatewayFailureKind
    message: str
    status_code: Optional[int] = None
    reason: Optional[RejectionReason] = None

    @property
    def ok(self) -> bool:
        return False

    @property
    def not_found(self) -> bool:
        return self.reason is RejectionReason.NOT_FOUND


GatewayResult = Union[GatewaySuccess[Any], GatewayFailure]


UNAUTHORIZED_MESSAGE = "Unauthorized - Check API key configuration"
UNPROCESSABLE_MESSAGE = "Unprocessable Entity - Check data format and required fields"
DEFAULT_BAD_REQUEST_MESSAGE = "Bad Request - Check query parameters"
DEFAULT_NOT_FOUND_MESSAGE = "Not Found - Requested resource does not exist"


def classify_rejection(
    response: httpx.Response,
    bad_request_message: str = DEFAULT_BAD_REQUEST_MESSAGE,
    not_found_message: str = DEFAULT_NOT_FOUND_MESSAGE,
) -> GatewayFailure:
    """Map a non-2xx Lago response onto a rejection with a readable message"""
    status = response.status_code
    if status == 400:
        reason, message = RejectionReason.BAD_REQUEST, bad_request_message
    elif status == 401:
        reason, message = RejectionReason.UNAUTHORIZED, UNAUTHORIZED_MESSAGE
    elif status == 404:
        reason, message = RejectionReason.NOT_FOUND, not_found_message
    elif status == 422:
        reason, message = RejectionReason.UNPROCESSABLE_ENTITY, UNPROCESSABLE_MESSAGE
    else:
        reason, message = RejectionReason.OTHER, f"HTTP {status}: {response.reason_phrase}"
    return GatewayFailure(
        kind=GatewayFailureKind.REJECTED,
        message=message,
        status_code=status,
        reason=reason,
    )


class LagoClient(BaseServiceClient):
    """
    Client for the Lago REST API

    One pooled httpx.AsyncClient is shared by every call; the client is safe
    for concurrent use from many request handlers.
    """

    service_name = "lago"

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Lago client

        Args:
            config: Base URL, API key and timeouts (loaded from env if not provided)
            transport: Custom httpx transport (tests inject httpx.MockTransport)
        """
        self.config = config or GatewayConfig.from_env()
        super().__init__(
            base_url=self.config.base_url,
            api_key=self.config.api_key,
            timeout=self.config.timeout,
            transport=transport,
        )
        self.pdf_timeout = self.config.pdf_timeout
        logger.info(f"✅ LagoClient initialized with BaseUrl: {self.base_url}")

    async def _exchange(
        self,
        operation: str,
        send: Callable[[], Awaitable[httpx.Response]],
        parse: Callable[[httpx.Response], T],
        bad_request_message: str = DEFAULT_BAD_REQUEST_MESSAGE,
        not_found_message: str = DEFAULT_NOT_FOUND_MESSAGE,
    ) -> GatewayResult:
        try:
            response = await send()
        except httpx.TimeoutException as e:
            message = f"Request timeout occurred while {operation}"
            logger.error(f"❌ {message}: {e!r}")
            return GatewayFailure(kind=GatewayFailureKind.UNAVAILABLE, message=message)
        except httpx.RequestError as e:
            message = f"HTTP error occurred while {operation}: {e}"
            logger.error(f"❌ {message}")
            return GatewayFailure(kind=GatewayFailureKind.UNAVAILABLE, message=message)

        if not response.is_success:
            failure = classify_rejection(response, bad_request_message, not_found_message)
            logger.error(
                f"❌ Failed {operation} in Lago. Status: {response.status_code}, "
                f"Reason: {response.reason_phrase}, Response: {response.text[:500]}"
            )
            return failure

        try:
            payload = parse(response)
        except ValueError as e:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
            message = f"Invalid response from Lago while {operation}: {e}"
            logger.error(f"❌ {message}")
            return GatewayFailure(
                kind=GatewayFailureKind.INVALID_RESPONSE,
                message=message,
                status_code=response.status_code,
            )

        logger.info(f"✅ Lago {operation} succeeded (HTTP {response.status_code})")
        return GatewaySuccess(payload=payload, status_code=response.status_code)

    # ========================================
    # Events
    # ========================================

    async def send_usage_event(self, payload: LagoEventPayload) -> GatewayResult:
        """Send a usage event; the response body is not needed"""
        logger.info(
            f"Sending event to Lago: {payload.transaction_id}, "
            f"Subscription: {payload.external_subscription_id}, Code: {payload.code}"
        )
        return await self._exchange(
            "sending usage event",
            lambda: self.post("/api/v1/events", json=payload.to_request()),
            lambda response: None,
            bad_request_message="Bad Request - Check subscription id, event code and properties",
            not_found_message="Not Found - Subscription may not exist",
        )

    # ========================================
    # Payments
    # ========================================

    async def create_payment(self, payload: LagoPaymentPayload) -> GatewayResult:
        logger.info(
            f"Creating payment in Lago: InvoiceId={payload.invoice_id}, "
            f"AmountCents={payload.amount_cents}, PaidAt={payload.paid_at}"
        )
        return await self._exchange(
            "creating payment",
            lambda: self.post("/api/v1/payments", json=payload.to_request()),
            lambda response: LagoPaymentEnvelope.model_validate_json(response.content).payment,
            bad_request_message="Bad Request - Check if invoice exists and amount is valid",
            not_found_message="Not Found - Invoice may not exist",
        )

    async def retrieve_payment(self, payment_id: str) -> GatewayResult:
        logger.info(f"Retrieving payment from Lago: PaymentId={payment_id}")
        return await self._exchange(
            "retrieving payment",
            lambda: self.get(f"/api/v1/payments/{payment_id}"),
            lambda response: LagoPaymentEnvelope.model_validate_json(response.content).payment,
            not_found_message=f"Payment not found: {payment_id}",
        )

    async def list_payments(self, query: PaymentListQuery) -> GatewayResult:
        logger.info(
            f"Listing payments from Lago: Page={query.page}, PerPage={query.page_size}, "
            f"InvoiceId={query.invoice_id}"
        )
        return await self._exchange(
            "listing payments",
            lambda: self.get("/api/v1/payments", params=query.to_params()),
            lambda response: LagoPaymentList.model_validate_json(response.content),
        )

    # ========================================
    # Invoices
    # ========================================

    async def list_invoices(self, query: InvoiceQuery) -> GatewayResult:
        logger.info(
            f"Fetching invoices from Lago: Page={query.page}, PerPage={query.per_page}, "
            f"Status={query.status or 'All'}"
        )
        return await self._exchange(
            "fetching invoices",
            lambda: self.get("/api/v1/invoices", params=query.to_params()),
            lambda response: InvoiceList.model_validate_json(response.content),
        )

    async def get_invoice(self, invoice_id: str) -> GatewayResult:
        logger.info(f"Fetching invoice from Lago: {invoice_id}")
        return await self._exchange(
            "fetching invoice",
            lambda: self.get(f"/api/v1/invoices/{invoice_id}"),
            lambda response: InvoiceEnvelope.model_validate_json(response.content).invoice,
            not_found_message=f"Invoice not found: {invoice_id}",
        )

    async def download_invoice_pdf(self, invoice_id: str) -> GatewayResult:
        """Fetch the invoice PDF bytes using the long PDF timeout"""
        logger.info(f"Downloading invoice PDF from Lago: {invoice_id}")
        return await self._exchange(
            "downloading invoice PDF",
            lambda: self.get(
                f"/api/v1/invoices/{invoice_id}/download",
                headers={"Accept": "application/pdf"},
                timeout=self.pdf_timeout,
            ),
            _pdf_content,
            not_found_message=f"Invoice not found: {invoice_id}",
        )

    async def finalize_invoice(self, invoice_id: str) -> GatewayResult:
        logger.info(f"Finalizing invoice in Lago: {invoice_id}")
        return await self._exchange(
            "finalizing invoice",
            lambda: self.put(f"/api/v1/invoices/{invoice_id}/finalize", json={}),
            lambda response: InvoiceEnvelope.model_validate_json(response.content).invoice,
            not_found_message=f"Invoice not found: {invoice_id}",
        )

    async def refresh_invoice(self, invoice_id: str) -> GatewayResult:
        logger.info(f"Refreshing invoice in Lago: {invoice_id}")
        return await self._exchange(
            "refreshing invoice",
            lambda: self.put(f"/api/v1/invoices/{invoice_id}/refresh", json={}),
            lambda response: InvoiceEnvelope.model_validate_json(response.content).invoice,
            not_found_message=f"Invoice not found: {invoice_id}",
        )


def _pdf_content(response: httpx.Response) -> bytes:
    if not response.content:
        raise ValueError("PDF content not available")
    return response.content


__all__ = [
    "LagoClient",
    "GatewayFailureKind",
    "RejectionReason",
    "GatewaySuccess",
    "GatewayFailure",
    "GatewayResult",
    "classify_rejection",
]
