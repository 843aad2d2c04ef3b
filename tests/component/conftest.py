"""
Component Test Layer Configuration (Layer 3)

Structure:
    tests/component/
    ├── tdd/         TDD (billing pipelines, Lago client, event bus, API)
    └── mocks/       Mock implementations

Usage:
    pytest tests/component -v
    pytest tests/component/tdd/billing_service -v
"""
import os
import sys

import pytest

# Set testing environment BEFORE any imports
os.environ["ENV"] = "testing"
os.environ["ENVIRONMENT"] = "testing"
os.environ.setdefault("LAGO_BASE_URL", "http://lago.test")
os.environ.setdefault("LAGO_API_KEY", "test_api_key")

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from tests.component.mocks import MockEventBus


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line(
        "markers", "component: marks tests as component tests"
    )


# =============================================================================
# Event Bus Mocks
# =============================================================================

@pytest.fixture
def mock_event_bus() -> MockEventBus:
    """Mock NATS event bus"""
    return MockEventBus()
