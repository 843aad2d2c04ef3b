"""
Billing Service Business Logic

Usage event pipeline: validate, normalize the timestamp, forward the event to
Lago and, once Lago accepts it, publish billing.event.processed.
"""

import logging
from datetime import datetime
from typing import Optional

from . import assembler
from .events.publishers import publish_usage_event_processed
from .models import FailedStage, UsageEventRequest, UsageEventResult
from .protocols import (
    BillingValidationError,
    EventBusProtocol,
    LagoClientProtocol,
    TimestampFormatError,
)
from .translator import translate_usage_event

logger = logging.getLogger(__name__)


class BillingService:
    """Forwards usage events to Lago"""

    def __init__(
        self,
        lago_client: LagoClientProtocol,
        event_bus: Optional[EventBusProtocol] = None,
    ):
        self.lago_client = lago_client
        self.event_bus = event_bus

    async def process_usage_event(
        self,
        request: UsageEventRequest,
        now: Optional[datetime] = None,
    ) -> UsageEventResult:
        """
        Process one usage event end to end

        Args:
            request: Event wrapper as received from the caller
            now: Clock override used when the timestamp is omitted

        Returns:
            UsageEventResult; never raises
        """
        data = request.event
        original_timestamp = data.timestamp

        try:
            logger.info(f"Processing event usage for subscription: {data.external_subscription_id}")

            try:
                translated = translate_usage_event(request, now=now)
            except BillingValidationError as e:
                logger.warning(f"Rejected usage event: {e}")
                return assembler.failed(
                    UsageEventResult,
                    FailedStage.VALIDATION,
                    assembler.validation_message(e.errors),
                    errors=e.errors,
                    transaction_id=data.transaction_id,
                    processed_at=assembler.utc_now(),
                    original_timestamp=original_timestamp,
                )
            except TimestampFormatError as e:
                logger.error(f"Invalid timestamp format: {e.value!r}")
                return assembler.failed(
                    UsageEventResult,
                    FailedStage.TIMESTAMP,
                    assembler.USAGE_TIMESTAMP_HINT,
                    errors=[str(e)],
                    transaction_id=data.transaction_id,
                    processed_at=assembler.utc_now(),
                    original_timestamp=original_timestamp,
                )

            logger.info(
                f"Converted timestamp from '{original_timestamp or 'current time'}' "
                f"to Unix timestamp: {translated.timestamp.epoch_seconds}"
            )

            outcome = await self.lago_client.send_usage_event(translated.payload)
            if not outcome.ok:
                logger.error(
                    f"Failed to send event to Lago for transaction: "
                    f"{translated.event.transaction_id}: {outcome.message}"
                )
                return assembler.failed(
                    UsageEventResult,
                    FailedStage.GATEWAY,
                    f"Failed to process event usage: {outcome.message}",
                    gateway_failure=outcome,
                    processed_at=assembler.utc_now(),
                    **assembler.usage_event_fields(translated),
                )

            published = await publish_usage_event_processed(self.event_bus, translated.event)
            if not published:
                # Lago already holds the event; the failure is reported, not compensated
                return assembler.failed(
                    UsageEventResult,
                    FailedStage.PUBLISH,
                    "Event usage sent to Lago but the billing.event.processed event was not published",
                    processed_at=assembler.utc_now(),
                    **assembler.usage_event_fields(translated),
                )

            logger.info(
                f"Event usage processed successfully. Transaction ID: {translated.event.transaction_id}"
            )
            return assembler.usage_event_processed(translated)

        except Exception as e:
            logger.error(
                f"Error processing event usage for subscription: {data.external_subscription_id}: {e}",
                exc_info=True,
            )
            return assembler.failed(
                UsageEventResult,
                FailedStage.UNEXPECTED,
                f"Error processing event usage: {e}",
                transaction_id=data.transaction_id,
                processed_at=assembler.utc_now(),
                original_timestamp=original_timestamp,
            )


__all__ = ["BillingService"]
