"""
NATS JetStream Client for Python Microservices

Thin wrapper around nats-py used by services to publish domain events to a
durable JetStream stream and wait for the broker acknowledgement.
"""

import json
import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import nats
from nats.aio.client import Client as NATS
from nats.errors import Error as NATSError
from nats.js.api import RetentionPolicy, StorageType, StreamConfig
from nats.js.client import JetStreamContext
from nats.js.errors import NotFoundError

from core.config.infra_config import MessagingConfig

logger = logging.getLogger(__name__)


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal and datetime types"""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        return super().default(obj)


class ServiceSource(Enum):
    """Service sources"""
    BILLING_SERVICE = "billing_service"


class Event:
    """
    Event model

    ``data`` is the message body; id, type, source and timestamp travel as
    message headers so consumers can read the entity JSON directly.
    """

    def __init__(
        self,
        event_type: Union[Enum, str],
        source: Union[Enum, str],
        data: Dict[str, Any],
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        self.id = str(uuid.uuid4())
        self.type = event_type.value if isinstance(event_type, Enum) else str(event_type)
        self.source = source.value if isinstance(source, Enum) else str(source)
        self.data = data
        self.subject = subject or self.type
        self.created_at = datetime.now(timezone.utc)
        self.metadata = metadata or {}

    @property
    def epoch_seconds(self) -> int:
        return int(self.created_at.timestamp())

    def payload(self) -> bytes:
        return json.dumps(self.data, cls=DecimalEncoder).encode()

    def headers(self) -> Dict[str, str]:
        headers = {
            # JetStream de-duplicates on this id within the stream's window
            "Nats-Msg-Id": self.id,
            "Billing-Event-Type": self.type,
            "Billing-Source": self.source,
            "Billing-Timestamp": str(self.epoch_seconds),
        }
        headers.update(self.metadata)
        return headers


class NATSEventBus:
    """
    NATS JetStream event bus.

    Publishes are persistent: ``publish_event`` only reports success once the
    stream has stored the message and returned its PubAck.
    """

    def __init__(self, service_name: str, config: Optional[MessagingConfig] = None):
        """
        Initialize NATS Event Bus.

        Args:
            service_name: Name of the service (used as the connection name)
            config: NATS connection settings (loaded from env if not provided)
        """
        self.service_name = service_name
        self.config = config or MessagingConfig.from_env()

        self._nc: Optional[NATS] = None
        self._js: Optional[JetStreamContext] = None

        logger.info(f"NATS EventBus initialized: {', '.join(self.config.servers)}")

    async def connect(self):
        """Connect to NATS and open a JetStream context"""
        try:
            self._nc = await nats.connect(
                servers=self.config.servers,
                name=self.service_name,
                user=self.config.nats_user,
                password=self.config.nats_password,
                connect_timeout=self.config.connect_timeout,
            )
            self._js = self._nc.jetstream()
            logger.info(f"Connected to NATS as {self.service_name}")
        except Exception as e:
            logger.error(f"Failed to connect to NATS: {e}")
            raise

    async def create_stream(self, name: str, subjects: List[str], max_msgs: int = -1) -> bool:
        """Ensure a file-backed JetStream stream exists (idempotent)"""
        if not self.is_connected:
            logger.error("Not connected to NATS")
            return False

        try:
            await self._js.stream_info(name)
            logger.debug(f"Stream '{name}' ready")
            return True
        except NotFoundError:
            pass

        try:
            await self._js.add_stream(
                StreamConfig(
                    name=name,
                    subjects=subjects,
                    retention=RetentionPolicy.LIMITS,
                    storage=StorageType.FILE,
                    max_msgs=max_msgs,
                )
            )
            logger.info(f"Created stream '{name}' for {subjects}")
            return True
        except NATSError as e:
            logger.error(f"Failed to create stream '{name}': {e}")
            return False

    async def publish_event(self, event: Event) -> bool:
        """
        Publish an event to JetStream and wait for the acknowledgement.

        Returns:
            True once the broker has persisted the message, False otherwise.
        """
        if not self.is_connected:
            logger.error("Not connected to NATS")
            return False

        try:
            ack = await self._js.publish(
                event.subject,
                event.payload(),
                timeout=self.config.publish_timeout,
                headers=event.headers(),
            )
        except NATSError as e:
            logger.error(f"Error publishing event {event.type} [{event.id}]: {e}")
            return False

        if ack.duplicate:
            logger.warning(f"Event {event.id} already stored in {ack.stream}, seq={ack.seq}")
        else:
            logger.info(f"Published event {event.type} [{event.id}] to stream {ack.stream}, seq={ack.seq}")
        return True

    async def close(self):
        """Drain and close the NATS connection"""
        if self._nc is not None and not self._nc.is_closed:
            await self._nc.drain()
        self._nc = None
        self._js = None
        logger.info("Disconnected from NATS")

    @property
    def is_connected(self) -> bool:
        """Check if connected to NATS"""
        return self._nc is not None and self._js is not None and self._nc.is_connected


# Singleton instance
_event_bus: Optional[NATSEventBus] = None


async def get_event_bus(
    service_name: str,
    config: Optional[MessagingConfig] = None,
) -> NATSEventBus:
    """
    Get or create event bus instance.

    Args:
        service_name: Name of the service using the event bus
        config: Optional NATS connection settings

    Returns:
        Connected NATSEventBus instance
    """
    global _event_bus

    if _event_bus is None:
        event_bus = NATSEventBus(service_name, config)
        await event_bus.connect()
        _event_bus = event_bus

    return _event_bus


async def close_event_bus():
    """Close and reset the singleton event bus"""
    global _event_bus

    if _event_bus is not None:
        await _event_bus.close()
        _event_bus = None


__all__ = [
    "DecimalEncoder",
    "ServiceSource",
    "Event",
    "NATSEventBus",
    "get_event_bus",
    "close_event_bus",
]
