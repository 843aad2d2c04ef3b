"""
Billing Service - Contracts Package

Test data factory for billing_service.
"""

from .data_contract import BillingTestDataFactory

__all__ = ["BillingTestDataFactory"]
