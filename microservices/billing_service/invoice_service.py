"""
Invoice Service Business Logic

Read-through access to Lago invoices. Listing, fetching and downloading
publish an audit event, and a failed publish fails the operation. Finalize,
refresh and raw PDF access do not publish.
"""

import logging
from datetime import datetime
from typing import Optional, Type, TypeVar

from . import assembler
from .events.publishers import (
    publish_invoice_downloaded,
    publish_invoice_retrieved,
    publish_invoices_retrieved,
)
from .models import (
    FailedStage,
    InvoiceDownload,
    InvoiceDownloadResult,
    InvoiceListResult,
    InvoicePdfResult,
    InvoiceQuery,
    InvoiceResult,
    InvoiceStatusResult,
    OperationResult,
)
from .protocols import EventBusProtocol, LagoClientProtocol

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=OperationResult)

_PAST_TENSE = {"finalize": "finalized", "refresh": "refreshed"}


def _missing_invoice_id(result_cls: Type[R], **fields) -> R:
    return assembler.failed(
        result_cls,
        FailedStage.VALIDATION,
        "Invoice ID is required",
        errors=["invoice_id is required"],
        **fields,
    )


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class InvoiceService:
    """Invoice pipeline against Lago"""

    def __init__(
        self,
        lago_client: LagoClientProtocol,
        event_bus: Optional[EventBusProtocol] = None,
    ):
        self.lago_client = lago_client
        self.event_bus = event_bus

    async def list_invoices(self, query: InvoiceQuery) -> InvoiceListResult:
        try:
            logger.info(
                f"Fetching invoices with query: Page={query.page}, PerPage={query.per_page}, "
                f"Status={query.status or 'All'}"
            )
            outcome = await self.lago_client.list_invoices(query)
            if not outcome.ok:
                return assembler.failed(
                    InvoiceListResult,
                    FailedStage.GATEWAY,
                    f"Failed to retrieve invoices: {outcome.message}",
                    gateway_failure=outcome,
                )

            invoices = outcome.payload.invoices
            logger.info(f"Successfully retrieved {len(invoices)} invoices")

            if not await publish_invoices_retrieved(self.event_bus, query, len(invoices)):
                return assembler.failed(
                    InvoiceListResult,
                    FailedStage.PUBLISH,
                    "Invoices retrieved but the billing.invoices.retrieved audit event was not published",
                )

            return assembler.succeeded(
                InvoiceListResult,
                "Invoices retrieved successfully",
                invoices=invoices,
                meta=outcome.payload.meta,
            )

        except Exception as e:
            logger.error(f"Error fetching invoices with query: {query}: {e}", exc_info=True)
            return assembler.failed(
                InvoiceListResult,
                FailedStage.UNEXPECTED,
                f"Error retrieving invoices: {e}",
            )

    async def get_invoice(self, invoice_id: str) -> InvoiceResult:
        try:
            if _blank(invoice_id):
                return _missing_invoice_id(InvoiceResult)

            logger.info(f"Fetching invoice by ID: {invoice_id}")
            outcome = await self.lago_client.get_invoice(invoice_id)
            if not outcome.ok:
                return assembler.failed(
                    InvoiceResult,
                    FailedStage.GATEWAY,
                    outcome.message if outcome.not_found else f"Failed to retrieve invoice: {outcome.message}",
                    gateway_failure=outcome,
                )

            invoice = outcome.payload
            logger.info(f"Successfully retrieved invoice: {invoice.number}")

            if not await publish_invoice_retrieved(self.event_bus, invoice):
                return assembler.failed(
                    InvoiceResult,
                    FailedStage.PUBLISH,
                    f"Invoice {invoice_id} retrieved but the billing.invoice.retrieved audit event was not published",
                )

            return assembler.succeeded(
                InvoiceResult,
                "Invoice retrieved successfully",
                invoice=invoice,
            )

        except Exception as e:
            logger.error(f"Error fetching invoice by ID: {invoice_id}: {e}", exc_info=True)
            return assembler.failed(
                InvoiceResult,
                FailedStage.UNEXPECTED,
                f"Error retrieving invoice: {e}",
            )

    async def download_invoice(
        self,
        invoice_id: str,
        now: Optional[datetime] = None,
    ) -> InvoiceDownloadResult:
        """Fetch invoice metadata, then its PDF, and name the file"""
        try:
            if _blank(invoice_id):
                return _missing_invoice_id(InvoiceDownloadResult)

            logger.info(f"Downloading invoice: {invoice_id}")
            metadata = await self.lago_client.get_invoice(invoice_id)
            if not metadata.ok:
                logger.warning(f"Invoice not available for download: {invoice_id}: {metadata.message}")
                return assembler.failed(
                    InvoiceDownloadResult,
                    FailedStage.GATEWAY,
                    metadata.message if metadata.not_found else f"Failed to retrieve invoice: {metadata.message}",
                    gateway_failure=metadata,
                )
            invoice = metadata.payload

            pdf = await self.lago_client.download_invoice_pdf(invoice_id)
            if not pdf.ok:
                logger.warning(f"PDF content not available for invoice: {invoice_id}: {pdf.message}")
                return assembler.failed(
                    InvoiceDownloadResult,
                    FailedStage.GATEWAY,
                    f"Failed to download invoice PDF: {pdf.message}",
                    gateway_failure=pdf,
                )

            download = InvoiceDownload(
                invoice_id=invoice_id,
                number=invoice.number,
                customer_name=invoice.customer.name,
                file_name=assembler.invoice_file_name(invoice.number, now),
                pdf_content=pdf.payload,
            )
            logger.info(
                f"Successfully downloaded invoice PDF: {invoice.number}, Size: {download.size_bytes} bytes"
            )

            if not await publish_invoice_downloaded(
                self.event_bus, invoice, download.size_bytes, invoice_id=invoice_id
            ):
                return assembler.failed(
                    InvoiceDownloadResult,
                    FailedStage.PUBLISH,
                    f"Invoice {invoice_id} downloaded but the billing.invoice.downloaded audit event was not published",
                )

            return assembler.succeeded(
                InvoiceDownloadResult,
                "Invoice downloaded successfully",
                download=download,
            )

        except Exception as e:
            logger.error(f"Error downloading invoice: {invoice_id}: {e}", exc_info=True)
            return assembler.failed(
                InvoiceDownloadResult,
                FailedStage.UNEXPECTED,
                f"Error downloading invoice: {e}",
            )

    async def get_invoice_pdf(
        self,
        invoice_id: str,
        now: Optional[datetime] = None,
    ) -> InvoicePdfResult:
        """PDF bytes for API consumers and inline display"""
        try:
            if _blank(invoice_id):
                return _missing_invoice_id(InvoicePdfResult, invoice_id=invoice_id or "")

            logger.info(f"Getting PDF content for invoice: {invoice_id}")
            outcome = await self.lago_client.download_invoice_pdf(invoice_id)
            if not outcome.ok:
                logger.warning(f"No PDF content available for invoice: {invoice_id}")
                return assembler.failed(
                    InvoicePdfResult,
                    FailedStage.GATEWAY,
                    f"Failed to download invoice PDF: {outcome.message}",
                    gateway_failure=outcome,
                    invoice_id=invoice_id,
                )

            logger.info(
                f"Successfully retrieved PDF content for invoice: {invoice_id}, Size: {len(outcome.payload)} bytes"
            )
            return assembler.succeeded(
                InvoicePdfResult,
                "Invoice PDF retrieved successfully",
                invoice_id=invoice_id,
                pdf_content=outcome.payload,
                generated_at=now or assembler.utc_now(),
            )

        except Exception as e:
            logger.error(f"Error getting PDF content for invoice: {invoice_id}: {e}", exc_info=True)
            return assembler.failed(
                InvoicePdfResult,
                FailedStage.UNEXPECTED,
                f"Error retrieving invoice PDF: {e}",
                invoice_id=invoice_id or "",
            )

    async def finalize_invoice(self, invoice_id: str) -> InvoiceResult:
        return await self._transition(invoice_id, "finalize")

    async def refresh_invoice(self, invoice_id: str) -> InvoiceResult:
        return await self._transition(invoice_id, "refresh")

    async def _transition(self, invoice_id: str, action: str) -> InvoiceResult:
        try:
            if _blank(invoice_id):
                return _missing_invoice_id(InvoiceResult)

            logger.info(f"Invoice {action} requested: {invoice_id}")
            if action == "finalize":
                outcome = await self.lago_client.finalize_invoice(invoice_id)
            else:
                outcome = await self.lago_client.refresh_invoice(invoice_id)

            if not outcome.ok:
                return assembler.failed(
                    InvoiceResult,
                    FailedStage.GATEWAY,
                    outcome.message if outcome.not_found else f"Failed to {action} invoice: {outcome.message}",
                    gateway_failure=outcome,
                )

            logger.info(f"Invoice {action} completed: {invoice_id}")
            return assembler.succeeded(
                InvoiceResult,
                f"Invoice {_PAST_TENSE[action]} successfully",
                invoice=outcome.payload,
            )

        except Exception as e:
            logger.error(f"Error during invoice {action}: {invoice_id}: {e}", exc_info=True)
            return assembler.failed(
                InvoiceResult,
                FailedStage.UNEXPECTED,
                f"Error during invoice {action}: {e}",
            )

    async def get_invoice_status(self, invoice_id: str) -> InvoiceStatusResult:
        """Status projection of an invoice, read through get_invoice"""
        result = await self.get_invoice(invoice_id)
        if not result.success:
            return InvoiceStatusResult(**result.model_dump(exclude={"invoice"}))

        return assembler.succeeded(
            InvoiceStatusResult,
            "Invoice status retrieved successfully",
            invoice_status=assembler.invoice_status(result.invoice, invoice_id),
        )


__all__ = ["InvoiceService"]
