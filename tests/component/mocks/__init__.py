"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace real I/O dependencies (NATS).
"""

from .nats_mock import MockEventBus

# Service-specific mocks should be in tests/component/{golden,tdd}/{service}/mocks.py

__all__ = [
    'MockEventBus',
]
