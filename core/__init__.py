#!/usr/bin/env python3
"""
Core Module for the Billing Microservice

Shared infrastructure used by the billing service.

COMPONENTS:
    - config/: Environment-driven configuration (dataclasses + python-dotenv)
    - logger.py: Process-wide logging setup
    - nats_client.py: NATS JetStream event bus for domain events
    - service_client_base.py: Base httpx client for external HTTP APIs

USAGE:
    from core.config import settings
    from core.nats_client import get_event_bus

    event_bus = await get_event_bus("billing_service", settings.messaging)
"""

__version__ = "2.1.0"
