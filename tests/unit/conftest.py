"""
Unit Test Layer Configuration (Layer 4)

Structure:
    tests/unit/
    └── tdd/         Pure billing logic: temporal normalizer, translator,
                     models, response assembler, configuration

Usage:
    pytest tests/unit -v                 # All unit tests
    pytest tests/unit -m unit -v         # By marker
"""
import os
import sys

import pytest

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))


def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
