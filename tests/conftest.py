"""
Root conftest.py - Global fixtures and configuration for all test layers.

Test Layers (Top-Down TDD):
    - component/  : Component tests (mocked Lago and NATS)
    - unit/       : Unit tests (pure functions, no I/O)
"""
import os
import sys
from typing import Any

import pytest

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)


# =============================================================================
# Assertion Helpers
# =============================================================================

class AssertionHelpers:
    """Custom assertion helpers for tests"""

    @staticmethod
    def assert_failed_at(result: Any, stage: str):
        """Assert a result failed at the given pipeline stage"""
        assert result.success is False, f"Expected failure, got: {result}"
        assert result.failed_stage is not None and result.failed_stage.value == stage, \
            f"Expected failed_stage={stage}, got {result.failed_stage}: {result.message}"


@pytest.fixture
def assertions() -> AssertionHelpers:
    """Provide assertion helpers"""
    return AssertionHelpers()


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "component: Component tests")
    config.addinivalue_line("markers", "unit: Unit tests")


# =============================================================================
# Logging Configuration
# =============================================================================

@pytest.fixture(autouse=True)
def test_logger(request):
    """Log test start/end for debugging"""
    test_name = request.node.name
    print(f"\n{'='*60}")
    print(f"Starting: {test_name}")
    print(f"{'='*60}")

    yield

    print(f"\n{'='*60}")
    print(f"Finished: {test_name}")
    print(f"{'='*60}")
