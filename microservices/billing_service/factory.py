"""
Billing Service Factory

Factory for creating the billing services with real dependencies.
This is the ONLY module that imports concrete implementations.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from core.config import BillingConfig, get_settings

from .billing_service import BillingService
from .clients.lago_client import LagoClient
from .invoice_service import InvoiceService
from .payment_service import PaymentService
from .protocols import EventBusProtocol, LagoClientProtocol

logger = logging.getLogger(__name__)


@dataclass
class BillingServices:
    """The three pipelines sharing one Lago connection pool and one event bus"""

    lago_client: LagoClientProtocol
    billing: BillingService
    payments: PaymentService
    invoices: InvoiceService

    async def close(self) -> None:
        await self.lago_client.close()


def create_lago_client(
    config: Optional[BillingConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> LagoClient:
    config = config or get_settings()
    return LagoClient(config.gateway, transport=transport)


def create_billing_services(
    config: Optional[BillingConfig] = None,
    event_bus: Optional[EventBusProtocol] = None,
    lago_client: Optional[LagoClientProtocol] = None,
) -> BillingServices:
    """
    Create the billing services with all real dependencies

    Args:
        config: Service configuration (global settings if not provided)
        event_bus: Event bus for domain events; without one every publish fails
        lago_client: Lago client override (a new pooled client if not provided)

    Returns:
        BillingServices bundle
    """
    config = config or get_settings()
    lago_client = lago_client or create_lago_client(config)

    if event_bus is None:
        logger.warning("⚠️ No event bus: operations that publish events will report failure")

    return BillingServices(
        lago_client=lago_client,
        billing=BillingService(lago_client, event_bus=event_bus),
        payments=PaymentService(
            lago_client,
            event_bus=event_bus,
            default_currency=config.default_currency,
        ),
        invoices=InvoiceService(lago_client, event_bus=event_bus),
    )


__all__ = ["BillingServices", "create_lago_client", "create_billing_services"]
