"""
Billing Microservice API

REST API that forwards usage events, payments and invoice requests to Lago
and publishes the resulting domain events on NATS JetStream
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from core.config import get_settings
from core.logger import setup_service_logger
from core.nats_client import NATSEventBus, close_event_bus, get_event_bus

from . import assembler
from .billing_service import BillingService
from .clients.lago_client import GatewayFailureKind, RejectionReason
from .events.models import BillingStreamConfig
from .factory import BillingServices, create_billing_services
from .invoice_service import InvoiceService
from .models import (
    CreatePaymentRequest,
    CurrentTimeResponse,
    FailedStage,
    HealthResponse,
    InvoiceListResult,
    OperationResult,
    PaymentListResult,
    UsageEventRequest,
)
from .payment_service import PaymentService
from .protocols import TimestampFormatError
from .translator import translate_invoice_query, translate_payment_query

config = get_settings()

logger = setup_service_logger(config.service_name, level=config.log_level, config=config.logging)

SERVICE_PORT = config.service_port or 8216
SERVICE_VERSION = "1.0.0"

# Global state
services: Optional[BillingServices] = None
event_bus: Optional[NATSEventBus] = None


async def start_event_bus() -> Optional[NATSEventBus]:
    """Connect to NATS and ensure the billing stream; None when either step fails"""
    try:
        bus = await get_event_bus(config.service_name, config.messaging)
        ready = await bus.create_stream(
            BillingStreamConfig.STREAM_NAME,
            BillingStreamConfig.SUBJECTS,
            max_msgs=BillingStreamConfig.MAX_MESSAGES,
        )
        if not ready:
            raise RuntimeError(f"stream '{BillingStreamConfig.STREAM_NAME}' is not available")
        logger.info("✅ Event bus initialized successfully")
        return bus
    except Exception as e:
        logger.warning(f"⚠️  Failed to initialize event bus: {e}. Publishing operations will fail.")
        try:
            await close_event_bus()
        except Exception as close_error:
            logger.error(f"Error closing event bus: {close_error}")
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    global services, event_bus

    try:
        event_bus = await start_event_bus()
        services = create_billing_services(config, event_bus=event_bus)
        logger.info(f"Billing service started on port {SERVICE_PORT}")
        yield

    finally:
        if services:
            await services.close()
            logger.info("Lago client closed")
        if event_bus:
            try:
                await close_event_bus()
                logger.info("Billing event bus closed")
            except Exception as e:
                logger.error(f"Error closing event bus: {e}")


app = FastAPI(
    title="Billing Service",
    description="Forwards usage events, payments and invoice requests to Lago",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)


# ====================
# Dependency injection
# ====================

def _services() -> BillingServices:
    if not services:
        raise HTTPException(status_code=503, detail="Billing service not initialized")
    return services


async def get_billing_service() -> BillingService:
    return _services().billing


async def get_payment_service() -> PaymentService:
    return _services().payments


async def get_invoice_service() -> InvoiceService:
    return _services().invoices


# ====================
# Result -> HTTP
# ====================

_UPSTREAM_ERRORS = {GatewayFailureKind.UNAVAILABLE.value, GatewayFailureKind.INVALID_RESPONSE.value}


def status_code_for(result: OperationResult) -> int:
    """HTTP status for a result: 400 caller error, 404 unknown entity, 502 Lago down, 500 otherwise"""
    if result.success:
        return 200
    if result.failed_stage in (FailedStage.VALIDATION, FailedStage.TIMESTAMP):
        return 400
    if result.failed_stage == FailedStage.GATEWAY:
        if result.gateway_reason == RejectionReason.NOT_FOUND.value:
            return 404
        if result.gateway_reason in _UPSTREAM_ERRORS:
            return 502
        if result.gateway_status and result.gateway_status >= 500:
            return 502
        return 400
    return 500


def respond(result: OperationResult) -> JSONResponse:
    return JSONResponse(status_code=status_code_for(result), content=result.model_dump(mode="json"))


def _bad_date(result_cls, error: TimestampFormatError, **fields) -> JSONResponse:
    return respond(
        assembler.failed(
            result_cls,
            FailedStage.TIMESTAMP,
            assembler.DATE_FILTER_HINT,
            errors=[str(error)],
            **fields,
        )
    )


# ====================
# Health and time reference
# ====================

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check"""
    dependencies = {
        "lago": "configured" if services else "not_initialized",
        "nats": "healthy" if event_bus and event_bus.is_connected else "unhealthy",
    }
    return HealthResponse(
        status="healthy" if dependencies["nats"] == "healthy" and services else "degraded",
        service=config.service_name,
        port=SERVICE_PORT,
        version=SERVICE_VERSION,
        dependencies=dependencies,
    )


@app.get("/api/v1/payments/current-time", response_model=CurrentTimeResponse)
async def get_current_time():
    """Current UTC time in the formats accepted for timestamps and paid_at"""
    return assembler.time_reference()


# ====================
# Usage events
# ====================

@app.post("/api/v1/billing/event-usage")
async def create_event_usage(
    request: UsageEventRequest,
    billing_service: BillingService = Depends(get_billing_service),
):
    """Forward a usage event to Lago"""
    logger.info(
        f"Received event usage request for subscription: {request.event.external_subscription_id}"
    )
    return respond(await billing_service.process_usage_event(request))


# ====================
# Payments
# ====================

@app.post("/api/v1/payments")
async def create_payment(
    request: CreatePaymentRequest,
    payment_service: PaymentService = Depends(get_payment_service),
):
    """Record a payment against a Lago invoice"""
    return respond(await payment_service.create_payment(request))


@app.get("/api/v1/payments")
async def list_payments(
    page: int = 1,
    page_size: int = 20,
    invoice_id: Optional[str] = None,
    status: Optional[str] = None,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
    payment_service: PaymentService = Depends(get_payment_service),
):
    """List payments, optionally filtered"""
    try:
        query = translate_payment_query(page, page_size, invoice_id, status, from_date, to_date)
    except TimestampFormatError as e:
        return _bad_date(PaymentListResult, e, page=max(1, page), page_size=page_size)
    return respond(await payment_service.list_payments(query))


@app.get("/api/v1/payments/{payment_id}")
async def retrieve_payment(
    payment_id: str,
    payment_service: PaymentService = Depends(get_payment_service),
):
    """Fetch one payment from Lago"""
    return respond(await payment_service.retrieve_payment(payment_id))


# ====================
# Invoices
# ====================

@app.get("/api/v1/invoices")
async def list_invoices(
    external_customer_id: Optional[str] = None,
    external_subscription_id: Optional[str] = None,
    status: Optional[str] = None,
    payment_status: Optional[str] = None,
    issuing_date_from: Optional[str] = None,
    issuing_date_to: Optional[str] = None,
    page: int = 1,
    per_page: int = 20,
    invoice_service: InvoiceService = Depends(get_invoice_service),
):
    """List invoices; page >= 1 and per_page is capped at 100"""
    try:
        query = translate_invoice_query(
            external_customer_id=external_customer_id,
            external_subscription_id=external_subscription_id,
            status=status,
            payment_status=payment_status,
            issuing_date_from=issuing_date_from,
            issuing_date_to=issuing_date_to,
            page=page,
            per_page=per_page,
        )
    except TimestampFormatError as e:
        return _bad_date(InvoiceListResult, e)
    return respond(await invoice_service.list_invoices(query))


@app.get("/api/v1/invoices/{invoice_id}")
async def get_invoice(
    invoice_id: str,
    invoice_service: InvoiceService = Depends(get_invoice_service),
):
    return respond(await invoice_service.get_invoice(invoice_id))


@app.get("/api/v1/invoices/{invoice_id}/download")
async def download_invoice(
    invoice_id: str,
    invoice_service: InvoiceService = Depends(get_invoice_service),
):
    """Invoice PDF as an attachment"""
    result = await invoice_service.download_invoice(invoice_id)
    if not result.success:
        return respond(result)
    download = result.download
    return Response(
        content=download.pdf_content,
        media_type=download.content_type,
        headers={"Content-Disposition": f'attachment; filename="{download.file_name}"'},
    )


@app.get("/api/v1/invoices/{invoice_id}/pdf")
async def get_invoice_pdf(
    invoice_id: str,
    invoice_service: InvoiceService = Depends(get_invoice_service),
):
    """Invoice PDF as base64 JSON for API consumers"""
    return respond(await invoice_service.get_invoice_pdf(invoice_id))


@app.get("/api/v1/invoices/{invoice_id}/pdf/raw")
async def get_invoice_pdf_raw(
    invoice_id: str,
    invoice_service: InvoiceService = Depends(get_invoice_service),
):
    """Invoice PDF bytes for inline display"""
    result = await invoice_service.get_invoice_pdf(invoice_id)
    if not result.success:
        return respond(result)
    return Response(
        content=result.pdf_content,
        media_type="application/pdf",
        headers={"Content-Disposition": "inline"},
    )


@app.get("/api/v1/invoices/{invoice_id}/status")
async def get_invoice_status(
    invoice_id: str,
    invoice_service: InvoiceService = Depends(get_invoice_service),
):
    return respond(await invoice_service.get_invoice_status(invoice_id))


@app.put("/api/v1/invoices/{invoice_id}/finalize")
async def finalize_invoice(
    invoice_id: str,
    invoice_service: InvoiceService = Depends(get_invoice_service),
):
    return respond(await invoice_service.finalize_invoice(invoice_id))


@app.put("/api/v1/invoices/{invoice_id}/refresh")
async def refresh_invoice(
    invoice_id: str,
    invoice_service: InvoiceService = Depends(get_invoice_service),
):
    return respond(await invoice_service.refresh_invoice(invoice_id))


# ====================
# Error handling
# ====================

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies get the same result shape as every other failure"""
    errors = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    ]
    result = OperationResult(
        success=False,
        message=assembler.validation_message(errors),
        failed_stage=FailedStage.VALIDATION,
        errors=errors,
    )
    return JSONResponse(status_code=400, content=result.model_dump(mode="json"))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    result = OperationResult(success=False, message=str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=result.model_dump(mode="json"),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception in {request.url}: {exc}", exc_info=True)
    result = OperationResult(
        success=False,
        message="Internal server error occurred",
        failed_stage=FailedStage.UNEXPECTED,
    )
    return JSONResponse(status_code=500, content=result.model_dump(mode="json"))


def run():
    import uvicorn
    uvicorn.run(
        "microservices.billing_service.main:app",
        host=config.service_host,
        port=SERVICE_PORT,
        reload=config.debug,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    run()
